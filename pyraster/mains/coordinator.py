import contextlib
import logging
import threading
import time

from pyraster.acquisition.acquire import ScanExecutor
from pyraster.acquisition.buffer import IntensityBuffer
from pyraster.instruments.detectors import AnalogDetector, SimulatedDetector
from pyraster.instruments.galvos import GalvoOutput, SimulatedGalvoOutput
from pyraster.mains.display import Command, ViewportRenderer
from pyraster.utils.errors import DeviceFault, ScanError
from pyraster.utils.export import save_image
from pyraster.utils.math.transforms import voltage_to_angle

logger = logging.getLogger(__name__)


def create_galvo(config):
    if config['simulate_galvos']:
        return SimulatedGalvoOutput(voltage_range=config['voltage_range'])
    return GalvoOutput(config['device'], config['ao_chans'], config['voltage_range'], config['write_timeout'])


def create_detector(config):
    if config['simulate_detector']:
        return SimulatedDetector(config['intensity_min'], config['intensity_max'], seed=config['seed'])
    return AnalogDetector(config['device'], config['ai_chan'], config['input_range'], config['read_timeout'])


class ScanCoordinator:
    def __init__(self, config: dict, galvo, detector, window=None) -> None:
        '''owns the devices of one run and sequences the scan and viewer phases

        args:
            config: validated run configuration, see pyraster.utils.config
            galvo: output port, opened and released here
            detector: intensity source, opened and released here
            window: HeatmapWindow for live preview and viewing, None runs headless

        returns: none
        '''

        self.config = config
        self.galvo = galvo
        self.detector = detector
        self.window = window
        self.buffer = IntensityBuffer(config['img_size'])
        self.renderer = ViewportRenderer(**config)
        self.abort_event = threading.Event()
        self.phase = 'idle'
        self.last_frame = None
        self.saved = []

    def run(self, path):
        '''scan path, then view the result until the window is closed

        the galvo output and the detector are released and the window is closed on every exit path

        returns: ScanResult of the scan phase
        '''

        try:
            with self.acquired():
                result = self.scan(path)
                if self.config['save_path']:
                    self.save_snapshot(self.config['save_path'])
                if self.window is not None and not self.window.closed:
                    self.view()
        finally:
            if self.window is not None:
                self.window.close()
        self.phase = 'done'
        return result

    @contextlib.contextmanager
    def acquired(self):
        opened = []
        try:
            for device in (self.galvo, self.detector):
                device.open()
                opened.append(device)
            yield
        except BaseException as e:
            if isinstance(e, ScanError):
                logger.error('releasing devices after %s error', e.stage)
            self.release(opened, quiet=True)
            raise
        else:
            self.release(opened)

    def release(self, devices, quiet=False):
        '''close devices in reverse order, every device gets its close call

        quiet: log release faults instead of raising them, used while another error unwinds
        '''

        first_fault = None
        for device in reversed(devices):
            try:
                device.close()
            except Exception as e:
                logger.error('releasing %s failed: %s', type(device).__name__, e)
                if first_fault is None:
                    first_fault = e
        if first_fault is not None and not quiet:
            if isinstance(first_fault, ScanError):
                raise first_fault
            raise DeviceFault(f'releasing devices failed: {first_fault}') from first_fault

    def scan(self, path):
        self.phase = 'scan'
        extent = path.extent()
        if extent is not None:
            logger.info('scanning %d points, grid x %d..%d, y %d..%d', len(path), *extent)
            peak = max(max(abs(p.voltage_x), abs(p.voltage_y)) for p in path)
            logger.info('peak command %.3f V (%.2f deg)', peak,
                        voltage_to_angle(peak, self.config['voltage_range'], self.config['angle_range']))

        executor = ScanExecutor(
            self.galvo, self.detector, self.buffer,
            voltage_range=self.config['voltage_range'],
            settle=self.config['settle'],
            abort_event=self.abort_event,
            on_point=self.preview if self.window is not None else None,
        )
        result = executor.run(path)

        if self.window is not None:
            self.preview(force=True)
        return result

    def preview(self, index=None, point=None, force=False):
        '''live frame during the scan, throttled to preview_interval and never fatal'''

        now = time.monotonic()
        if not force and self.last_frame is not None and now - self.last_frame < self.config['preview_interval']:
            return
        self.last_frame = now

        try:
            self.window.show(self.renderer.render(self.buffer))
            self.window.poll()
        except Exception as e:
            logger.debug('dropped preview frame: %s', e)

        if self.handle_commands():
            logger.info('scan aborted by user')
            self.abort_event.set()

    def view(self):
        self.phase = 'view'
        logger.info('viewer mode active (esc to exit)')
        while not self.window.closed:
            self.window.show(self.renderer.render(self.buffer))
            self.window.poll(self.config['refresh'])
            if self.handle_commands():
                break
        self.window.close()

    def handle_commands(self) -> bool:
        '''apply queued window commands, returns True once exit was requested'''

        while True:
            command = self.window.next_command()
            if command is None:
                return False
            if command is Command.EXIT:
                return True
            if command is Command.SNAPSHOT:
                self.save_snapshot(self.config['save_path'] or 'snapshots/scan.tiff')
            else:
                self.renderer.apply(command)

    def save_snapshot(self, filename):
        try:
            saved = save_image(self.buffer.to_image(), filename)
        except OSError as e:
            logger.error('cannot save snapshot to %s: %s', filename, e)
            return None
        self.saved.append(saved)
        return saved
