"""Source images for texture sampling.

Provides:
    - ArrayImage: sampled-image provider over an (H, W[, C]) array or Pillow image
    - bilinear_sample(): vectorized bilinear lookup with clamp/repeat edges
    - readable_snapshot(): scoped acquisition of a readable copy of a source

Sampled-image protocol (what a TextureSample layer expects from the host):
    width : int
    height : int
    sample(u, v) -> np.ndarray   # (..., 4) RGBA for normalized u, v arrays

Coordinates:
    - u, v are normalized; texel (i, j) has its center at ((i + 0.5) / W, (j + 0.5) / H)
    - v = 0 is the first row of the array, matching canvas row order
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Union

import numpy as np
from PIL import Image

from src.utils import compute
from src.utils.validators import ConfigurationError, WrapMode

logger = logging.getLogger(__name__)


def _edge_indices(i: np.ndarray, size: int, wrap_mode: WrapMode) -> np.ndarray:
    if wrap_mode == WrapMode.REPEAT:
        return np.mod(i, size)
    if wrap_mode == WrapMode.CLAMP:
        return np.clip(i, 0, size - 1)
    raise ConfigurationError(f"Unrecognized wrap mode {wrap_mode!r}")


def bilinear_sample(
    texels: np.ndarray,
    u,
    v,
    wrap_mode: Union[WrapMode, str] = WrapMode.CLAMP
) -> np.ndarray:
    """Bilinearly sample an RGBA texel array at normalized coordinates.

    Parameters
    ----------
    texels : np.ndarray
        Source, shape (H, W, 4), float
    u, v : float or np.ndarray
        Normalized coordinates (broadcastable)
    wrap_mode : WrapMode or str
        "clamp" holds edge texels, "repeat" tiles the source

    Returns
    -------
    np.ndarray
        Colors, float32, shape broadcast(u, v).shape + (4,)
    """
    wrap_mode = WrapMode(wrap_mode)
    h, w = texels.shape[:2]
    px = np.asarray(u, dtype=np.float64) * w - 0.5
    py = np.asarray(v, dtype=np.float64) * h - 0.5
    px, py = np.broadcast_arrays(px, py)

    x0f = np.floor(px)
    y0f = np.floor(py)
    fx = (px - x0f)[..., np.newaxis]
    fy = (py - y0f)[..., np.newaxis]
    x0 = x0f.astype(np.int64)
    y0 = y0f.astype(np.int64)

    xa = _edge_indices(x0, w, wrap_mode)
    xb = _edge_indices(x0 + 1, w, wrap_mode)
    ya = _edge_indices(y0, h, wrap_mode)
    yb = _edge_indices(y0 + 1, h, wrap_mode)

    c00 = texels[ya, xa]
    c10 = texels[ya, xb]
    c01 = texels[yb, xa]
    c11 = texels[yb, xb]

    top = c00 + (c10 - c00) * fx
    bottom = c01 + (c11 - c01) * fx
    return (top + (bottom - top) * fy).astype(np.float32)


class ArrayImage:
    """Sampled-image provider backed by an in-memory array.

    Attributes
    ----------
    texels : np.ndarray
        (H, W, 4) float32 RGBA
    wrap_mode : WrapMode
        Edge handling for sample()
    """

    def __init__(self, data, wrap_mode: Union[WrapMode, str] = WrapMode.CLAMP):
        arr = np.asarray(data)
        if arr.dtype == np.uint8:
            arr = arr.astype(np.float32) / 255.0
        arr = arr.astype(np.float32, copy=False)

        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr, np.ones_like(arr)], axis=-1)
        elif arr.ndim == 3 and arr.shape[2] == 3:
            arr = np.concatenate([arr, np.ones(arr.shape[:2] + (1,), dtype=np.float32)], axis=-1)
        elif arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Expected image shape (H, W), (H, W, 3) or (H, W, 4), got {arr.shape}")
        if arr.shape[0] == 0 or arr.shape[1] == 0:
            raise ValueError(f"Source image must be non-empty, got shape {arr.shape}")
        compute.assert_finite(arr, "source image")

        self.texels = arr
        self.wrap_mode = WrapMode(wrap_mode)

    @classmethod
    def from_pil(cls, img: Image.Image, wrap_mode: Union[WrapMode, str] = WrapMode.CLAMP) -> 'ArrayImage':
        """Wrap a Pillow image (converted to RGBA, values scaled to [0, 1])."""
        return cls(np.asarray(img.convert("RGBA")), wrap_mode)

    @property
    def width(self) -> int:
        return self.texels.shape[1]

    @property
    def height(self) -> int:
        return self.texels.shape[0]

    def sample(self, u, v) -> np.ndarray:
        """Bilinear sample at normalized (u, v) using this image's wrap mode."""
        return bilinear_sample(self.texels, u, v, self.wrap_mode)

    def release(self) -> None:
        """Drop the texel buffer; the image cannot be sampled afterwards."""
        self.texels = None

    def __repr__(self) -> str:
        if self.texels is None:
            return "ArrayImage(released)"
        return f"ArrayImage({self.width}x{self.height}, wrap={self.wrap_mode.value})"


@contextmanager
def readable_snapshot(source, wrap_mode: Union[WrapMode, str] = WrapMode.CLAMP) -> Iterator:
    """Acquire a readable copy of `source` for the duration of a pass.

    ArrayImage sources are copied (so host edits during the pass are not
    observed) and take `wrap_mode`; the copy is released on exit, including
    when the pass fails. Other providers are used as-is and handle their
    own edges.

    Yields
    ------
    object
        Something with sample(u, v), or None if no source is bound
    """
    if source is None:
        yield None
        return
    if not isinstance(source, ArrayImage):
        yield source
        return

    snapshot = ArrayImage(source.texels.copy(), wrap_mode)
    logger.debug(f"Acquired readable copy of source ({snapshot.width}x{snapshot.height})")
    try:
        yield snapshot
    finally:
        snapshot.release()
        logger.debug("Released readable copy of source")
