import unittest
import warnings

import matplotlib
import matplotlib.pyplot as plt
import numpy
from matplotlib.backend_bases import CloseEvent, KeyEvent

from pyraster.acquisition.buffer import IntensityBuffer
from pyraster.mains.display import KEYMAP, Command, HeatmapWindow, ViewportRenderer, ViewportState, palette


class TestViewportRenderer(unittest.TestCase):

    def setUp(self):
        self.renderer = ViewportRenderer(img_size=200, window_size=800, scale_factor=4.0, zoom_factor=1.25, pan_step=20)
        self.buffer = IntensityBuffer(200)
        rng = numpy.random.default_rng(7)
        for grid_y in range(0, 200, 3):
            for grid_x in range(0, 200, 5):
                self.buffer.record(grid_x, grid_y, rng.integers(10, 255, endpoint=True))

    def test_render_is_idempotent(self):
        self.renderer.zoom_in()
        self.renderer.pan(37, 55)
        first = self.renderer.render(self.buffer)
        second = self.renderer.render(self.buffer)
        numpy.testing.assert_array_equal(first, second)
        self.assertEqual(self.renderer.state, ViewportState(5.0, 37, 55))

    def test_frame_is_window_sized_color_image(self):
        frame = self.renderer.render(self.buffer)
        self.assertEqual(frame.shape, (800, 800, 3))
        self.assertEqual(frame.dtype, numpy.uint8)

    def test_small_scaled_image_is_not_padded(self):
        renderer = ViewportRenderer(img_size=200, window_size=800, scale_factor=2.0)
        self.assertEqual(renderer.render(self.buffer).shape, (400, 400, 3))

    def test_nearest_neighbor_keeps_cell_boundaries(self):
        buffer = IntensityBuffer(200)
        buffer.record(0, 0, 255)
        buffer.record(1, 0, 20)
        frame = self.renderer.render(buffer)
        lut = palette('inferno')
        self.assertTrue((frame[0:4, 0:4] == lut[255]).all())
        self.assertTrue((frame[0:4, 4:8] == lut[20]).all())
        self.assertTrue((frame[4:8, 0:4] == lut[0]).all())

    def test_crop_starts_at_offsets(self):
        buffer = IntensityBuffer(200)
        buffer.record(199, 199, 255)
        self.renderer.zoom_in()
        self.renderer.pan(10000, 10000)
        frame = self.renderer.render(buffer)
        self.assertTrue((frame[-5:, -5:] == palette('inferno')[255]).all())
        self.assertTrue((frame[-6, -6] == palette('inferno')[0]).all())

    def test_zoom_in_then_pan_right_clamps_at_the_edge(self):
        self.renderer.apply(Command.ZOOM_IN)
        self.assertEqual(self.renderer.state.scale_factor, 5.0)
        self.assertEqual(self.renderer.scaled_extent(), 1000)
        for _ in range(50):
            self.renderer.apply(Command.PAN_RIGHT)
        self.assertEqual(self.renderer.state.offset_x, 1000 - 800)
        self.assertEqual(self.renderer.state.offset_y, 0)

    def test_pan_never_goes_negative(self):
        self.renderer.apply(Command.ZOOM_IN)
        self.renderer.apply(Command.PAN_DOWN)
        self.renderer.apply(Command.PAN_UP)
        self.renderer.apply(Command.PAN_UP)
        self.renderer.apply(Command.PAN_LEFT)
        self.assertEqual((self.renderer.state.offset_x, self.renderer.state.offset_y), (0, 0))

    def test_pan_has_no_room_when_image_fits_the_window(self):
        self.renderer.apply(Command.PAN_RIGHT)
        self.renderer.apply(Command.PAN_DOWN)
        self.assertEqual((self.renderer.state.offset_x, self.renderer.state.offset_y), (0, 0))

    def test_zoom_out_reclamps_offsets(self):
        self.renderer.apply(Command.ZOOM_IN)
        self.renderer.apply(Command.ZOOM_IN)
        self.renderer.pan(10000, 10000)
        self.renderer.apply(Command.ZOOM_OUT)
        limit = self.renderer.max_offset()
        self.assertEqual(self.renderer.state.offset_x, limit)
        self.assertEqual(self.renderer.state.offset_y, limit)
        self.renderer.apply(Command.ZOOM_OUT)
        self.assertEqual(self.renderer.state.offset_x, 0)

    def test_zoom_out_stops_at_one(self):
        for _ in range(20):
            self.renderer.apply(Command.ZOOM_OUT)
        self.assertEqual(self.renderer.state.scale_factor, 1.0)
        self.assertEqual(self.renderer.render(self.buffer).shape, (200, 200, 3))

    def test_zoom_in_has_no_upper_bound(self):
        for _ in range(40):
            self.renderer.apply(Command.ZOOM_IN)
        self.assertGreater(self.renderer.state.scale_factor, 4.0 * 1.25 ** 39)
        self.renderer.pan(123, 456)
        self.assertEqual(self.renderer.render(self.buffer).shape, (800, 800, 3))

    def test_non_navigation_commands_are_not_applied(self):
        self.assertFalse(self.renderer.apply(Command.EXIT))
        self.assertFalse(self.renderer.apply(Command.SNAPSHOT))
        self.assertEqual(self.renderer.state, ViewportState(4.0, 0, 0))

    def test_buffer_of_wrong_size_is_rejected(self):
        with self.assertRaises(ValueError):
            self.renderer.render(IntensityBuffer(10))

    def test_keymap(self):
        self.assertIs(KEYMAP['escape'], Command.EXIT)
        self.assertIs(KEYMAP['+'], Command.ZOOM_IN)
        self.assertIs(KEYMAP['-'], Command.ZOOM_OUT)
        for keys, command in [(('w', 'up'), Command.PAN_UP), (('s', 'down'), Command.PAN_DOWN),
                              (('a', 'left'), Command.PAN_LEFT), (('d', 'right'), Command.PAN_RIGHT)]:
            for key in keys:
                self.assertIs(KEYMAP[key], command)


class TestHeatmapWindow(unittest.TestCase):

    def setUp(self):
        plt.switch_backend('Agg')
        keymaps = {name: list(keys) for name, keys in matplotlib.rcParams.items() if name.startswith('keymap.')}
        self.addCleanup(matplotlib.rcParams.update, keymaps)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', UserWarning)  # Agg cannot show a window
            self.window = HeatmapWindow(window_size=200, dpi=100)
        self.addCleanup(plt.close, self.window.fig)

    def press(self, key):
        canvas = self.window.fig.canvas
        canvas.callbacks.process('key_press_event', KeyEvent('key_press_event', canvas, key))

    def test_keys_are_queued_as_commands(self):
        for key in ['+', 'd', 'x', 'e']:
            self.press(key)
        self.assertIs(self.window.next_command(), Command.ZOOM_IN)
        self.assertIs(self.window.next_command(), Command.PAN_RIGHT)
        self.assertIs(self.window.next_command(), Command.SNAPSHOT)
        self.assertIsNone(self.window.next_command())

    def test_closing_the_window_queues_exit(self):
        canvas = self.window.fig.canvas
        canvas.callbacks.process('close_event', CloseEvent('close_event', canvas))
        self.assertTrue(self.window.closed)
        self.assertIs(self.window.next_command(), Command.EXIT)
        self.window.poll(0.5)

    def test_clashing_default_keys_are_removed(self):
        for name, keys in matplotlib.rcParams.items():
            if name.startswith('keymap.'):
                self.assertFalse(set(keys) & set(KEYMAP), name)

    def test_extent_follows_the_frame_size(self):
        self.window.show(numpy.zeros((10, 10, 3), dtype=numpy.uint8))
        self.window.show(numpy.full((20, 20, 3), 200, dtype=numpy.uint8))
        self.assertEqual(self.window.img_handle.get_array().shape, (20, 20, 3))
        self.assertEqual(tuple(self.window.img_handle.get_extent()), (-0.5, 19.5, 19.5, -0.5))
        self.assertEqual(self.window.ax.get_xlim(), (-0.5, 19.5))
        self.assertEqual(self.window.ax.get_ylim(), (19.5, -0.5))

    def test_close(self):
        self.window.close()
        self.assertTrue(self.window.closed)
        self.assertFalse(plt.fignum_exists(self.window.fig.number))


if __name__ == '__main__':
    unittest.main()
