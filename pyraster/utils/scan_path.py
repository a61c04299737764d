import csv
import logging
import operator
from typing import Iterable, NamedTuple

from pyraster.utils.errors import LoadError, ParseWarning
from pyraster.utils.math.transforms import grid_to_voltage

logger = logging.getLogger(__name__)


class ScanPoint(NamedTuple):
    grid_x: int
    grid_y: int
    voltage_x: float
    voltage_y: float


class ScanPath:
    '''ordered, read-only list of scan points, traversal order is list order

    skipped holds the ParseWarning of every record that was dropped while loading
    '''

    def __init__(self, points: Iterable[ScanPoint], skipped=None):
        self._points = tuple(points)
        self.skipped = list(skipped or [])

    def __len__(self):
        return len(self._points)

    def __iter__(self):
        return iter(self._points)

    def __getitem__(self, index):
        return self._points[index]

    def __repr__(self):
        return f'ScanPath({len(self._points)} points, {len(self.skipped)} skipped)'

    def extent(self):
        '''(min_x, max_x, min_y, max_y) of the grid indices, None for an empty path'''
        if not self._points:
            return None
        xs = [p.grid_x for p in self._points]
        ys = [p.grid_y for p in self._points]
        return min(xs), max(xs), min(ys), max(ys)


def _as_index(value):
    if isinstance(value, str):
        return int(value.strip())
    if isinstance(value, bool):
        raise TypeError('booleans are not grid indices')
    return operator.index(value)


def read_points(lines, skipped=None):
    '''parse a comma-delimited point source

    args:
        lines: iterable of text lines, the first one is a header and is discarded
        skipped: optional list that receives a ParseWarning per malformed row

    returns: generator of (grid_x, grid_y) pairs in file order
    '''

    reader = csv.reader(lines)
    next(reader, None)  # header

    for row in reader:
        if not row or all(not field.strip() for field in row):
            continue
        lineno = reader.line_num
        text = ','.join(row)
        if len(row) < 2:
            warning = ParseWarning(lineno, text, 'expected two columns')
        else:
            try:
                pair = _as_index(row[0]), _as_index(row[1])
            except ValueError as e:
                warning = ParseWarning(lineno, text, str(e))
            else:
                yield pair
                continue
        logger.warning('%s', warning)
        if skipped is not None:
            skipped.append(warning)


def build_scan_path(points, step_size, voltage_range, angle_range, skipped=None) -> ScanPath:
    '''precompute the voltages of every grid point, keeping input order

    voltages are not range checked here, the executor rejects them before they reach the galvos
    '''

    skipped = list(skipped or [])
    scan_points = []

    for n, pair in enumerate(points):
        try:
            grid_x, grid_y = pair
            grid_x, grid_y = _as_index(grid_x), _as_index(grid_y)
        except (TypeError, ValueError) as e:
            warning = ParseWarning(n + 1, repr(pair), str(e))
            logger.warning('%s', warning)
            skipped.append(warning)
            continue

        voltage_x, voltage_y = grid_to_voltage(grid_x, grid_y, step_size, voltage_range, angle_range)
        scan_points.append(ScanPoint(grid_x, grid_y, voltage_x, voltage_y))

    return ScanPath(scan_points, skipped)


def load_scan_path(filename, step_size, voltage_range, angle_range) -> ScanPath:
    '''read a point csv and materialize its scan path

    args:
        filename: csv with a header line and x,y grid indices per row
        step_size: degrees per grid index
        voltage_range, angle_range: linear voltage scale, see grid_to_voltage

    returns: ScanPath, raises LoadError if the file is unreadable or holds no usable points
    '''

    skipped = []
    try:
        with open(filename, 'r', newline='', encoding='utf-8') as f:
            pairs = list(read_points(f, skipped))
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(f'error opening file {filename}: {e}') from e

    path = build_scan_path(pairs, step_size, voltage_range, angle_range, skipped)
    if not len(path):
        raise LoadError(f'no points loaded from {filename}')

    logger.info('loaded %d points from %s (%d skipped)', len(path), filename, len(path.skipped))
    return path


def raster_points(numsteps_x, numsteps_y, offset_x=0, offset_y=0, bidirectional=False):
    '''grid pairs for a raster with x as the fast direction

    args:
        numsteps_x, numsteps_y: number of grid positions in both directions
        offset_x, offset_y: grid index of the first position
        bidirectional: reverse every other row so the fast axis never flies back

    returns: list of (grid_x, grid_y)
    '''

    x_row = list(range(offset_x, offset_x + numsteps_x))
    points = []
    for row in range(numsteps_y):
        xs = x_row[::-1] if bidirectional and row % 2 else x_row
        points.extend((x, offset_y + row) for x in xs)
    return points


def write_points(filename, points):
    '''write grid pairs in the format read_points accepts'''

    with open(filename, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['x', 'y'])
        writer.writerows(points)
    logger.info('wrote %d points to %s', len(points), filename)
