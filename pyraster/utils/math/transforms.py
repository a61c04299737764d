def index_to_angle(index: int, step_size: float) -> float:
    '''grid index to mechanical angle in degrees, no bounds checking'''
    return index * step_size


def angle_to_voltage(angle: float, voltage_range: float, angle_range: float) -> float:
    '''angle in degrees to galvo command voltage

    args:
        angle: target angle in degrees
        voltage_range: command voltage that reaches angle_range
        angle_range: angle reached at voltage_range, must be non-zero

    returns: voltage in V
    '''
    return voltage_range * angle / angle_range


def voltage_to_angle(voltage: float, voltage_range: float, angle_range: float) -> float:
    return angle_range * voltage / voltage_range


def grid_to_voltage(grid_x: int, grid_y: int, step_size: float,
                    voltage_range: float, angle_range: float) -> tuple[float, float]:
    '''voltage pair for one grid position, x and y share the same scale'''

    voltage_x = angle_to_voltage(index_to_angle(grid_x, step_size), voltage_range, angle_range)
    voltage_y = angle_to_voltage(index_to_angle(grid_y, step_size), voltage_range, angle_range)
    return voltage_x, voltage_y
