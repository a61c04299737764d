import collections
import enum
import logging

import matplotlib
import matplotlib.pyplot as plt
import numpy as np

from pyraster.acquisition.buffer import IntensityBuffer

logger = logging.getLogger(__name__)


class Command(enum.Enum):
    EXIT = 'exit'
    ZOOM_IN = 'zoom_in'
    ZOOM_OUT = 'zoom_out'
    PAN_UP = 'pan_up'
    PAN_DOWN = 'pan_down'
    PAN_LEFT = 'pan_left'
    PAN_RIGHT = 'pan_right'
    SNAPSHOT = 'snapshot'


KEYMAP = {
    'escape': Command.EXIT,
    'q': Command.EXIT,
    '+': Command.ZOOM_IN,
    '=': Command.ZOOM_IN,
    '-': Command.ZOOM_OUT,
    'w': Command.PAN_UP,
    'up': Command.PAN_UP,
    's': Command.PAN_DOWN,
    'down': Command.PAN_DOWN,
    'a': Command.PAN_LEFT,
    'left': Command.PAN_LEFT,
    'd': Command.PAN_RIGHT,
    'right': Command.PAN_RIGHT,
    'e': Command.SNAPSHOT,
}


class ViewportState:
    def __init__(self, scale_factor: float = 1.0, offset_x: int = 0, offset_y: int = 0) -> None:
        self.scale_factor = scale_factor
        self.offset_x = offset_x
        self.offset_y = offset_y

    def __eq__(self, other):
        if not isinstance(other, ViewportState):
            return NotImplemented
        return (self.scale_factor, self.offset_x, self.offset_y) == \
            (other.scale_factor, other.offset_x, other.offset_y)

    def __repr__(self):
        return f'ViewportState(scale_factor={self.scale_factor}, offset_x={self.offset_x}, offset_y={self.offset_y})'


def palette(colormap: str = 'inferno') -> np.ndarray:
    '''256 x 3 uint8 lookup table of a matplotlib colormap'''
    rgba = matplotlib.colormaps[colormap](np.arange(256))
    return np.round(rgba[:, :3] * 255).astype(np.uint8)


class ViewportRenderer:
    def __init__(self, img_size: int = 200, window_size: int = 800, scale_factor: float = 4.0,
                 zoom_factor: float = 1.25, pan_step: int = 20, colormap: str = 'inferno', **kwargs) -> None:
        '''color map, zoom and crop an intensity buffer for display

        args:
            img_size: extent of the buffer being shown
            window_size: largest visible width and height in display pixels
            scale_factor: initial zoom, at least 1.0
            zoom_factor: multiplier of one zoom step
            pan_step: display pixels moved by one pan step
            colormap: matplotlib colormap name

        returns: none
        '''

        self.img_size = img_size
        self.window_size = window_size
        self.zoom_factor = zoom_factor
        self.pan_step = pan_step
        self.lut = palette(colormap)
        self.state = ViewportState(max(1.0, scale_factor))
        self.clamp()

    def scaled_extent(self) -> int:
        return max(1, int(round(self.img_size * self.state.scale_factor)))

    def window_extent(self) -> int:
        return min(self.window_size, self.scaled_extent())

    def max_offset(self) -> int:
        return self.scaled_extent() - self.window_extent()

    def clamp(self) -> None:
        limit = self.max_offset()
        self.state.offset_x = int(min(max(self.state.offset_x, 0), limit))
        self.state.offset_y = int(min(max(self.state.offset_y, 0), limit))

    def zoom_in(self) -> None:
        self.state.scale_factor *= self.zoom_factor
        self.clamp()

    def zoom_out(self) -> None:
        self.state.scale_factor = max(1.0, self.state.scale_factor / self.zoom_factor)
        self.clamp()

    def pan(self, dx: int, dy: int) -> None:
        self.state.offset_x += dx
        self.state.offset_y += dy
        self.clamp()

    def apply(self, command: Command) -> bool:
        '''apply a navigation command, returns False for commands that are not navigation'''

        step = self.pan_step
        actions = {
            Command.ZOOM_IN: self.zoom_in,
            Command.ZOOM_OUT: self.zoom_out,
            Command.PAN_UP: lambda: self.pan(0, -step),
            Command.PAN_DOWN: lambda: self.pan(0, step),
            Command.PAN_LEFT: lambda: self.pan(-step, 0),
            Command.PAN_RIGHT: lambda: self.pan(step, 0),
        }
        action = actions.get(command)
        if action is None:
            return False
        action()
        logger.debug('%s -> %s', command.value, self.state)
        return True

    def render(self, buffer) -> np.ndarray:
        '''visible part of the color mapped, nearest-neighbor scaled buffer

        same result as scaling the whole image and cropping it, but only the window is computed

        returns: (h, w, 3) uint8 array
        '''

        data = buffer.data if isinstance(buffer, IntensityBuffer) else np.asarray(buffer, dtype=np.uint8)
        if data.shape != (self.img_size, self.img_size):
            raise ValueError(f'buffer shape {data.shape} does not match img_size {self.img_size}')

        scaled = self.scaled_extent()
        view = self.window_extent()
        rows = np.arange(self.state.offset_y, self.state.offset_y + view) * self.img_size // scaled
        cols = np.arange(self.state.offset_x, self.state.offset_x + view) * self.img_size // scaled
        return self.lut[data[np.ix_(rows, cols)]]


class HeatmapWindow:
    def __init__(self, title: str = 'Scan Heatmap', window_size: int = 800, dpi: int = 100) -> None:
        '''matplotlib window showing rendered frames and collecting key commands'''

        for name in [k for k in plt.rcParams if k.startswith('keymap.')]:
            plt.rcParams[name] = [key for key in plt.rcParams[name] if key not in KEYMAP]

        self.commands = collections.deque()
        self.closed = False
        self.img_handle = None

        self.fig = plt.figure(figsize=(window_size / dpi, window_size / dpi), dpi=dpi)
        self.ax = self.fig.add_axes([0, 0, 1, 1])
        self.ax.set_axis_off()
        if self.fig.canvas.manager is not None:
            self.fig.canvas.manager.set_window_title(title)

        self.fig.canvas.mpl_connect('key_press_event', self.on_key)
        self.fig.canvas.mpl_connect('close_event', self.on_close)
        plt.show(block=False)

    def on_key(self, event):
        command = KEYMAP.get(event.key)
        if command is not None:
            self.commands.append(command)

    def on_close(self, event):
        self.closed = True
        self.commands.append(Command.EXIT)

    def next_command(self):
        return self.commands.popleft() if self.commands else None

    def show(self, frame: np.ndarray) -> None:
        height, width = frame.shape[:2]
        if self.img_handle is None:
            self.img_handle = self.ax.imshow(frame, interpolation='nearest')
        else:
            self.img_handle.set_data(frame)
            self.img_handle.set_extent((-0.5, width - 0.5, height - 0.5, -0.5))
        self.ax.set_xlim(-0.5, width - 0.5)
        self.ax.set_ylim(height - 0.5, -0.5)
        self.fig.canvas.draw_idle()

    def poll(self, timeout: float = 0.0) -> None:
        '''let the window process events, waiting up to timeout seconds'''
        if self.closed:
            return
        if timeout > 0:
            self.fig.canvas.start_event_loop(timeout)
        else:
            self.fig.canvas.flush_events()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            plt.close(self.fig)
