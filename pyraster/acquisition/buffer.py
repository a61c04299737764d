import numpy as np
from PIL import Image


class IntensityBuffer:
    def __init__(self, img_size: int = 200) -> None:
        '''fixed size grid of 8 bit intensities, addressed [grid_y, grid_x]

        args:
            img_size: width and height of the grid in grid positions

        returns: none
        '''

        self.img_size = img_size
        self._data = np.zeros((img_size, img_size), dtype=np.uint8)

    @property
    def data(self) -> np.ndarray:
        view = self._data.view()
        view.flags.writeable = False
        return view

    def contains(self, grid_x: int, grid_y: int) -> bool:
        return 0 <= grid_x < self.img_size and 0 <= grid_y < self.img_size

    def record(self, grid_x: int, grid_y: int, value) -> bool:
        '''store one sample, indices outside the grid are ignored

        returns: whether a cell was written
        '''

        if not self.contains(grid_x, grid_y):
            return False
        self._data[grid_y, grid_x] = int(np.clip(value, 0, 255))
        return True

    def clear(self) -> None:
        self._data.fill(0)

    def to_image(self) -> Image.Image:
        return Image.fromarray(self._data.copy())  # uint8 2D -> mode L
