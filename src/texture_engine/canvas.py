"""Canvas: the mutable RGBA pixel buffer shared by a layer stack.

Layout:
    - pixels: float32 array, shape (width * height, 4), row-major
    - index i ↔ (x = i % width, y = i // width)
    - image: (height, width, 4) view of the same memory

A PixelCursor is the evaluation context handed to a layer's pixel
algorithm. It covers a block of pixels (one row range) with array-valued
fields; every algorithm is element-wise over the block, so per-pixel
semantics are exactly those of a single-pixel cursor.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from PIL import Image

from src.utils import color as color_utils
from src.utils import compute
from src.utils.validators import validate_dimension


class Canvas:
    """Width×height RGBA float buffer.

    Attributes
    ----------
    width : int
        Pixels per row (> 0)
    height : int
        Number of rows (> 0)
    background : np.ndarray
        Fill color, shape (4,)
    pixels : np.ndarray
        Buffer, shape (width * height, 4), float32
    """

    def __init__(self, width: int, height: int, background=color_utils.CLEAR):
        self.width = validate_dimension(width, "width")
        self.height = validate_dimension(height, "height")
        self.background = color_utils.as_rgba(background).copy()
        self.pixels = np.empty((self.width * self.height, 4), dtype=np.float32)
        self.pixels[:] = self.background

    @classmethod
    def create(cls, width: int, height: int, background=color_utils.CLEAR) -> 'Canvas':
        """Allocate a canvas filled with `background`.

        Raises
        ------
        InvalidDimension
            If width or height is not a positive integer
        """
        return cls(width, height, background)

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def __len__(self) -> int:
        return self.pixels.shape[0]

    @property
    def image(self) -> np.ndarray:
        """(height, width, 4) view of the buffer (writes go through)."""
        return self.pixels.reshape(self.height, self.width, 4)

    def to_uint8(self) -> np.ndarray:
        """(height, width, 4) uint8 image, clamped to [0, 1] first."""
        return compute.to_uint8(self.image)

    def to_pil(self) -> Image.Image:
        """Pillow RGBA image for display by the host."""
        return Image.fromarray(self.to_uint8())

    def __repr__(self) -> str:
        return f"Canvas({self.width}x{self.height})"


def create_canvas(width: int, height: int, background=color_utils.CLEAR) -> Canvas:
    """Allocate a canvas filled with `background` (see Canvas.create)."""
    return Canvas.create(width, height, background)


@dataclass(frozen=True)
class PixelCursor:
    """Evaluation context for a block of pixels.

    Attributes
    ----------
    x, y : np.ndarray
        Sampling coordinates (already offset-adjusted), int64, shape (N,)
    index : np.ndarray
        Buffer indices of the pixels, int64, shape (N,)
    current : np.ndarray
        Buffer values before this layer touched them, float32, shape (N, 4)
    width, height : int
        Canvas dimensions
    """
    x: np.ndarray
    y: np.ndarray
    index: np.ndarray
    current: np.ndarray
    width: int
    height: int

    def __len__(self) -> int:
        return self.index.shape[0]


def make_cursor(
    snapshot: np.ndarray,
    width: int,
    height: int,
    rows: Tuple[int, int],
    shift: Tuple[int, int] = (0, 0)
) -> PixelCursor:
    """Build the cursor for rows [start, stop) in row-major order.

    Parameters
    ----------
    snapshot : np.ndarray
        Frozen pre-pass buffer, shape (width * height, 4)
    width, height : int
        Canvas dimensions
    rows : tuple of int
        (start, stop) row range
    shift : tuple of int
        Pixel offset added to the sampling coordinates
    """
    start, stop = rows
    index = np.arange(start * width, stop * width, dtype=np.int64)
    x = index % width + shift[0]
    y = index // width + shift[1]
    return PixelCursor(
        x=x,
        y=y,
        index=index,
        current=snapshot[start * width:stop * width],
        width=width,
        height=height,
    )
