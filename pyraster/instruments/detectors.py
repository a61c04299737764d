import logging

import nidaqmx
import numpy as np
from nidaqmx.constants import TerminalConfiguration
from nidaqmx.errors import DaqError, DaqNotFoundError

from pyraster.utils.errors import DeviceFault

logger = logging.getLogger(__name__)


class SimulatedDetector:
    def __init__(self, low: int = 10, high: int = 255, seed=None) -> None:
        '''bounded random intensities in place of a detector

        args:
            low, high: inclusive range of the generated values
            seed: seed for the generator owned by this detector

        returns: none
        '''

        self.low = low
        self.high = high
        self.rng = np.random.default_rng(seed)

    def open(self) -> None:
        logger.info('simulated detector, intensities in [%d, %d]', self.low, self.high)

    def read(self) -> int:
        return int(self.rng.integers(self.low, self.high, endpoint=True))

    def close(self) -> None:
        pass


class AnalogDetector:
    def __init__(self, device: str = 'Dev1', ai_chan: str = 'ai0', input_range=(0.0, 10.0),
                 read_timeout: float = 10.0, **kwargs) -> None:
        '''single sample analog input, e.g. a PMT or lock-in output

        args:
            device: name of NI-DAQ device
            ai_chan: analog input channel name, e.g. 'ai0'
            input_range: (min, max) volts, mapped linearly onto 0-255
            read_timeout: time a single read may block

        returns: none
        '''

        self.device = device
        self.ai_chan = ai_chan
        self.input_range = tuple(input_range)
        self.read_timeout = read_timeout
        self.name = self.device + '/' + self.ai_chan
        self.task = None

    def open(self) -> None:
        if self.task is not None:
            return
        try:
            self.task = nidaqmx.Task()
        except (DaqError, DaqNotFoundError) as e:
            raise DeviceFault(f'cannot create input task: {e}') from e

        low, high = self.input_range
        try:
            self.task.ai_channels.add_ai_voltage_chan(
                self.name, terminal_config=TerminalConfiguration.RSE, min_val=low, max_val=high
            )
            self.task.start()
        except (DaqError, DaqNotFoundError) as e:
            task, self.task = self.task, None
            try:
                task.close()
            except DaqError as close_error:
                logger.error('closing the failed input task: %s', close_error)
            raise DeviceFault(str(e)) from e

        logger.info('detector input started on %s', self.name)

    def to_intensity(self, voltage: float) -> int:
        low, high = self.input_range
        return int(np.clip(round(255 * (voltage - low) / (high - low)), 0, 255))

    def read(self) -> int:
        if self.task is None:
            raise DeviceFault('detector input is not open')
        try:
            voltage = self.task.read(timeout=self.read_timeout)
        except DaqError as e:
            raise DeviceFault(str(e)) from e
        return self.to_intensity(voltage)

    def close(self) -> None:
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
            logger.info('detector input released')
