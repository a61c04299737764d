class ScanError(Exception):
    '''base for every fatal condition of a scan run

    the stage names which part of the run failed: config, load, bounds or device
    '''

    stage = 'scan'


class ConfigError(ScanError, ValueError):
    stage = 'config'


class LoadError(ScanError):
    stage = 'load'


class RangeViolation(ScanError):
    stage = 'bounds'

    def __init__(self, index, point, voltage_range):
        self.index = index
        self.point = point
        self.voltage_range = voltage_range
        super().__init__(
            f'point {index} at grid ({point.grid_x}, {point.grid_y}) commands '
            f'({point.voltage_x:.4f} V, {point.voltage_y:.4f} V), outside +/-{voltage_range} V'
        )


class DeviceFault(ScanError):
    stage = 'device'


class ParseWarning:
    '''a single skipped record of a point source, not an error'''

    def __init__(self, lineno, text, reason):
        self.lineno = lineno
        self.text = text
        self.reason = reason

    def __str__(self):
        return f'skipping malformed row {self.lineno}: {self.text!r} ({self.reason})'

    def __repr__(self):
        return f'ParseWarning({self.lineno}, {self.text!r}, {self.reason!r})'
