import json
import logging
import numbers

from pyraster.utils.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULTS = {
    "device": 'Dev1',  # NI-DAQ device name
    "ao_chans": ['ao0', 'ao1'],  # galvo x, galvo y
    "ai_chan": 'ai0',  # detector input, only used with a real detector
    "voltage_range": 5.0,  # +/- V accepted by the galvo drivers
    "angle_range": 22.5,  # mechanical degrees reached at voltage_range
    "step_size": 0.01,  # degrees per grid index
    "settle": 200e-6,  # s after each move
    "write_timeout": 10.0,  # s
    "read_timeout": 10.0,  # s
    "simulate_detector": True,
    "simulate_galvos": False,
    "intensity_min": 10,
    "intensity_max": 255,
    "input_range": [0.0, 10.0],  # V mapped onto 0-255 for a real detector
    "img_size": 200,
    "window_size": 800,
    "scale_factor": 4.0,
    "zoom_factor": 1.25,
    "pan_step": 20,
    "refresh": 0.03,  # s between viewer frames
    "preview_interval": 0.05,  # s between live frames during the scan
    "colormap": 'inferno',
    "save_path": None,
    "seed": None,
}


def load_config(filename=None, **overrides):
    '''build a run configuration

    args:
        filename: optional json file, its keys update the defaults
        overrides: keyword values, these get the final say

    returns: validated config dict
    '''

    config = dict(DEFAULTS)

    if filename:
        try:
            with open(filename, 'r', encoding='utf-8') as f:
                from_file = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f'cannot read config {filename}: {e}') from e
        if not isinstance(from_file, dict):
            raise ConfigError(f'config {filename} must hold a json object')
        _update(config, from_file, filename)
        logger.info('loaded config from %s', filename)

    _update(config, {k: v for k, v in overrides.items() if v is not None}, 'overrides')
    validate_config(config)
    return config


def _update(config, values, source):
    unknown = sorted(set(values) - set(DEFAULTS))
    if unknown:
        raise ConfigError(f'unknown config keys in {source}: {", ".join(unknown)}')
    config.update(values)


def _number(config, key):
    value = config[key]
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigError(f'{key} must be a number, got {value!r}')
    return value


def _integer(config, key):
    value = config[key]
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigError(f'{key} must be an integer, got {value!r}')
    return value


def validate_config(config):
    '''reject configurations that cannot drive a scan, before any device is touched'''

    if _number(config, 'angle_range') == 0:
        raise ConfigError('angle_range must be non-zero')
    if _number(config, 'voltage_range') <= 0:
        raise ConfigError('voltage_range must be positive')
    _number(config, 'step_size')
    if _number(config, 'settle') < 0:
        raise ConfigError('settle must not be negative')
    if _number(config, 'write_timeout') <= 0 or _number(config, 'read_timeout') <= 0:
        raise ConfigError('device timeouts must be positive')
    if _integer(config, 'img_size') <= 0:
        raise ConfigError('img_size must be positive')
    if _integer(config, 'window_size') <= 0:
        raise ConfigError('window_size must be positive')
    if _number(config, 'scale_factor') < 1.0:
        raise ConfigError('scale_factor must be at least 1.0')
    if _number(config, 'zoom_factor') <= 1.0:
        raise ConfigError('zoom_factor must be greater than 1.0')
    if _integer(config, 'pan_step') <= 0:
        raise ConfigError('pan_step must be positive')
    if _number(config, 'refresh') <= 0 or _number(config, 'preview_interval') < 0:
        raise ConfigError('refresh must be positive and preview_interval not negative')

    low, high = _integer(config, 'intensity_min'), _integer(config, 'intensity_max')
    if not 0 <= low <= high <= 255:
        raise ConfigError(f'simulated intensity range [{low}, {high}] must lie within [0, 255]')

    input_range = config['input_range']
    if not isinstance(input_range, (list, tuple)) or len(input_range) != 2 \
            or not all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in input_range) \
            or input_range[0] >= input_range[1]:
        raise ConfigError(f'input_range must be [min, max] volts, got {input_range!r}')

    ao_chans = config['ao_chans']
    if isinstance(ao_chans, str):
        ao_chans = config['ao_chans'] = [c.strip() for c in ao_chans.split(',')]  # 'ao0,ao1' from the command line
    if not isinstance(ao_chans, (list, tuple)) or len(ao_chans) != 2 \
            or not all(isinstance(c, str) for c in ao_chans):
        raise ConfigError(f'exactly two galvo output channels are needed, got {ao_chans!r}')

    return config
