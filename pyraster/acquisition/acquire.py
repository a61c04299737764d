import enum
import logging
import threading
import time

from pyraster.utils.errors import RangeViolation

logger = logging.getLogger(__name__)


class ScanState(enum.Enum):
    IDLE = 'idle'
    WRITING = 'writing'
    SETTLING = 'settling'
    ABORTED = 'aborted'


class ScanResult:
    def __init__(self, completed: int, total: int, aborted: bool, elapsed: float) -> None:
        self.completed = completed
        self.total = total
        self.aborted = aborted
        self.elapsed = elapsed

    def __repr__(self):
        state = 'aborted' if self.aborted else 'complete'
        return f'ScanResult({self.completed}/{self.total} points, {state}, {self.elapsed:.2f} s)'


class ScanExecutor:
    def __init__(self, galvo, detector, buffer, voltage_range: float, settle: float = 0.0,
                 abort_event: threading.Event = None, on_point=None) -> None:
        '''point by point output and acquisition loop

        args:
            galvo: opened output port with write(voltage_x, voltage_y)
            detector: opened input with read() -> intensity
            buffer: IntensityBuffer receiving one sample per point
            voltage_range: points beyond +/- this value abort the run before they are written
            settle: wait after each point in seconds
            abort_event: set it from outside to stop between two points
            on_point: optional callable(index, point), called after a point is recorded and before settling

        returns: none
        '''

        self.galvo = galvo
        self.detector = detector
        self.buffer = buffer
        self.voltage_range = voltage_range
        self.settle = settle
        self.abort_event = abort_event if abort_event is not None else threading.Event()
        self.on_point = on_point
        self.state = ScanState.IDLE

    def abort(self) -> None:
        self.abort_event.set()

    def in_range(self, point) -> bool:
        limit = self.voltage_range
        return -limit <= point.voltage_x <= limit and -limit <= point.voltage_y <= limit

    def run(self, path) -> ScanResult:
        '''drive the galvos through path in order

        raises RangeViolation for the first out of range point and lets DeviceFault from the galvos
        or the detector through; in both cases no later point is written

        returns: ScanResult
        '''

        completed = 0
        tic = time.perf_counter()

        try:
            for index, point in enumerate(path):
                if self.abort_event.is_set():
                    break

                if not self.in_range(point):
                    raise RangeViolation(index, point, self.voltage_range)

                self.state = ScanState.WRITING
                self.galvo.write(point.voltage_x, point.voltage_y)
                self.buffer.record(point.grid_x, point.grid_y, self.detector.read())
                completed += 1

                if self.on_point is not None:
                    self.on_point(index, point)

                self.state = ScanState.SETTLING
                if self.settle > 0 and self.abort_event.wait(self.settle):
                    break
        except BaseException:
            self.state = ScanState.ABORTED
            raise

        aborted = completed < len(path)
        self.state = ScanState.ABORTED if aborted else ScanState.IDLE
        result = ScanResult(completed, len(path), aborted, time.perf_counter() - tic)
        if aborted:
            logger.info('scan stopped after %d of %d points', completed, len(path))
        else:
            logger.info('scan complete: %d points in %.2f s', completed, result.elapsed)
        return result
