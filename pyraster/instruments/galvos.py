import logging

import nidaqmx
from nidaqmx.constants import VoltageUnits
from nidaqmx.errors import DaqError, DaqNotFoundError

from pyraster.utils.errors import DeviceFault

logger = logging.getLogger(__name__)


class GalvoOutput:
    def __init__(self, device: str = 'Dev1', ao_chans: list = ['ao0', 'ao1'], voltage_range: float = 5.0,
                 write_timeout: float = 10.0, **kwargs) -> None:
        '''analog output task holding the two galvo channels

        args:
            device: name of NI-DAQ device
            ao_chans: 2 analog output channels, x first
            voltage_range: channels are limited to +/- this value in V
            write_timeout: time a single write may block before it counts as a device fault

        returns: none
        '''

        self.device = device
        self.ao_chans = list(ao_chans)
        self.voltage_range = voltage_range
        self.write_timeout = write_timeout
        self.task = None

    @property
    def channels(self):
        return [f'{self.device}/{chan}' for chan in self.ao_chans]

    @property
    def is_open(self):
        return self.task is not None

    def open(self) -> None:
        '''create the task, add both channels and start it'''

        if self.task is not None:
            return
        try:
            self.task = nidaqmx.Task()
        except (DaqError, DaqNotFoundError) as e:
            raise DeviceFault(f'cannot create output task: {e}') from e

        try:
            for chan in self.channels:
                self.task.ao_channels.add_ao_voltage_chan(
                    chan, min_val=-self.voltage_range, max_val=self.voltage_range, units=VoltageUnits.VOLTS
                )
            self.task.start()
        except (DaqError, DaqNotFoundError) as e:
            task, self.task = self.task, None
            try:
                task.close()  # never leave a half configured task behind
            except DaqError as close_error:
                logger.error('closing the failed output task: %s', close_error)
            raise DeviceFault(str(e)) from e

        logger.info('galvo output started on %s (+/-%s V)', ', '.join(self.channels), self.voltage_range)

    def write(self, voltage_x: float, voltage_y: float) -> None:
        '''send one sample to each galvo and block until it is written'''

        if self.task is None:
            raise DeviceFault('galvo output is not open')
        try:
            self.task.write([voltage_x, voltage_y], auto_start=False, timeout=self.write_timeout)
        except DaqError as e:
            raise DeviceFault(str(e)) from e

    def close(self) -> None:
        '''stop and clear the task, the handle is dropped even if stopping fails'''

        if self.task is None:
            return
        task, self.task = self.task, None
        try:
            task.stop()
        except DaqError as e:
            raise DeviceFault(str(e)) from e
        finally:
            try:
                task.close()
            except DaqError as e:
                raise DeviceFault(f'cannot clear task: {e}') from e
            logger.info('galvo output released')

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc):
        self.close()


class SimulatedGalvoOutput:
    '''stand-in for GalvoOutput when no DAQ is attached, keeps every written pair'''

    def __init__(self, voltage_range: float = 5.0, **kwargs) -> None:
        self.voltage_range = voltage_range
        self.written = []
        self.is_open = False

    def open(self) -> None:
        self.is_open = True
        logger.info('simulated galvo output started')

    def write(self, voltage_x: float, voltage_y: float) -> None:
        if not self.is_open:
            raise DeviceFault('galvo output is not open')
        self.written.append((voltage_x, voltage_y))

    def close(self) -> None:
        if self.is_open:
            logger.info('simulated galvo output released after %d writes', len(self.written))
        self.is_open = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc):
        self.close()
