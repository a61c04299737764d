import argparse
import logging
import sys

from pyraster.mains.coordinator import ScanCoordinator, create_detector, create_galvo
from pyraster.mains.display import HeatmapWindow
from pyraster.utils.config import load_config
from pyraster.utils.errors import LoadError, ScanError
from pyraster.utils.logging_config import setup_logging
from pyraster.utils.scan_path import build_scan_path, load_scan_path, raster_points, write_points

logger = logging.getLogger('pyraster.runners.run_scan')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Galvo point scan with live heatmap')
    parser.add_argument('points', nargs='?', help='csv of x,y grid indices, one header line')
    parser.add_argument('--config', help='json file overriding the default parameters')
    parser.add_argument('--raster', nargs=2, type=int, metavar=('NX', 'NY'),
                        help='scan a generated NX x NY raster instead of a point file')
    parser.add_argument('--bidirectional', action='store_true', help='serpentine raster')
    parser.add_argument('--write-points', metavar='CSV', help='write the generated raster and exit')
    parser.add_argument('--simulate-galvos', action='store_true', default=None,
                        help='do not touch the DAQ, only log the output')
    parser.add_argument('--real-detector', action='store_true',
                        help='read the detector input instead of simulating it')
    parser.add_argument('--headless', action='store_true', help='no window, scan only')
    parser.add_argument('--save', metavar='FILE', help='save the final image, e.g. scan.tiff')
    parser.add_argument('--settle', type=float, help='settle time per point in s')
    parser.add_argument('--seed', type=int, help='seed of the simulated detector')
    parser.add_argument('--log-file', help='copy the log into this file')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args(argv)
    if args.write_points and not args.raster:
        parser.error('--write-points needs --raster NX NY')
    return args


def build_path(args, config):
    if args.raster:
        numsteps_x, numsteps_y = args.raster
        points = raster_points(numsteps_x, numsteps_y, bidirectional=args.bidirectional)
        if args.write_points:
            write_points(args.write_points, points)
            return None
        path = build_scan_path(points, config['step_size'], config['voltage_range'], config['angle_range'])
        if not len(path):
            raise LoadError('the requested raster has no points')
        return path

    if not args.points:
        raise LoadError('no point file given, pass a csv or --raster NX NY')
    return load_scan_path(args.points, config['step_size'], config['voltage_range'], config['angle_range'])


def main(argv=None):
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    try:
        config = load_config(
            args.config,
            simulate_galvos=args.simulate_galvos,
            simulate_detector=False if args.real_detector else None,
            save_path=args.save,
            settle=args.settle,
            seed=args.seed,
        )
        path = build_path(args, config)
        if path is None:
            return 0

        window = None
        if not args.headless:
            window = HeatmapWindow(window_size=config['window_size'])

        coordinator = ScanCoordinator(config, create_galvo(config), create_detector(config), window)
        result = coordinator.run(path)
    except ScanError as e:
        logger.error('%s error: %s', e.stage, e)
        return 1
    except KeyboardInterrupt:
        logger.warning('interrupted')
        return 1

    logger.info('%s', result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
