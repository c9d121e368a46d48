"""Test the canvas buffer and pixel cursors.

Tests for src.texture_engine.canvas:
    - create_canvas fills every pixel with the background
    - non-positive / non-integer dimensions raise InvalidDimension
    - image view shares memory with pixels (row-major layout)
    - display conversion (to_uint8, to_pil)
    - make_cursor coordinates, indices and sampling shift

Run:
    pytest tests/test_canvas.py -v
"""

import numpy as np
import pytest

from src.texture_engine.canvas import Canvas, create_canvas, make_cursor
from src.utils.validators import ConfigurationError, InvalidDimension


def test_create_fills_background():
    canvas = create_canvas(3, 2, (0.1, 0.2, 0.3, 0.4))
    assert len(canvas) == 6
    assert canvas.pixels.shape == (6, 4)
    assert canvas.pixels.dtype == np.float32
    np.testing.assert_allclose(canvas.pixels, np.tile([0.1, 0.2, 0.3, 0.4], (6, 1)), atol=1e-7)


def test_create_accepts_non_power_of_two():
    canvas = Canvas.create(5, 3)
    assert canvas.size == (5, 3)


@pytest.mark.parametrize("width,height", [(0, 4), (4, 0), (-1, 4), (2.5, 4), (True, 4)])
def test_invalid_dimension(width, height):
    with pytest.raises(InvalidDimension):
        create_canvas(width, height)


def test_invalid_dimension_is_configuration_error():
    assert issubclass(InvalidDimension, ConfigurationError)
    assert issubclass(ConfigurationError, ValueError)


def test_image_view_is_row_major():
    canvas = create_canvas(4, 3)
    canvas.image[1, 2] = (1.0, 0.5, 0.25, 1.0)
    np.testing.assert_array_equal(canvas.pixels[1 * 4 + 2], [1.0, 0.5, 0.25, 1.0])


def test_to_uint8_clamps():
    canvas = create_canvas(2, 1)
    canvas.pixels[0] = (2.0, -1.0, 0.5, 1.0)
    out = canvas.to_uint8()
    assert out.shape == (1, 2, 4)
    np.testing.assert_array_equal(out[0, 0], [255, 0, 128, 255])


def test_to_pil():
    img = create_canvas(4, 2, "black").to_pil()
    assert img.size == (4, 2)
    assert img.mode == "RGBA"


def test_make_cursor_rows_and_shift():
    canvas = create_canvas(4, 3)
    canvas.pixels[:, 0] = np.arange(12)

    cursor = make_cursor(canvas.pixels, 4, 3, rows=(1, 3), shift=(2, -1))

    assert len(cursor) == 8
    np.testing.assert_array_equal(cursor.index, np.arange(4, 12))
    np.testing.assert_array_equal(cursor.x, [2, 3, 4, 5, 2, 3, 4, 5])
    np.testing.assert_array_equal(cursor.y, [0, 0, 0, 0, 1, 1, 1, 1])
    np.testing.assert_array_equal(cursor.current[:, 0], np.arange(4, 12))
    assert (cursor.width, cursor.height) == (4, 3)
