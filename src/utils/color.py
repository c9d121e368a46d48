"""RGBA color helpers on numpy arrays.

Provides:
    - parse_color(): hex strings, named colors, 3/4-element sequences → RGBA tuple
    - as_rgba(): coerce to float32 array with trailing dimension 4
    - lerp() / lerp_unclamped(): component-wise interpolation
    - grayscale(): Rec. 601 weighted gray (the host engine's Color.grayscale)
    - Channel: indexed channel access {R, G, B, A}

Used by:
    - validators: color fields in layer/pipeline schemas
    - texture_engine: blending, gradient maps, Perlin min/max interpolation

All functions accept a single color, shape (4,), or a block of colors,
shape (..., 4). Intermediate values are unconstrained; clamping to [0, 1]
happens only for display (see compute.to_uint8).
"""

from enum import Enum
from typing import Sequence, Tuple, Union

import numpy as np

RGBA = Tuple[float, float, float, float]

CLEAR: RGBA = (0.0, 0.0, 0.0, 0.0)
BLACK: RGBA = (0.0, 0.0, 0.0, 1.0)
WHITE: RGBA = (1.0, 1.0, 1.0, 1.0)

NAMED_COLORS = {
    'clear': CLEAR,
    'black': BLACK,
    'white': WHITE,
}

# Rec. 601 weights
GRAYSCALE_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)


class Channel(str, Enum):
    """Color channel selector."""
    R = 'r'
    G = 'g'
    B = 'b'
    A = 'a'

    @property
    def index(self) -> int:
        return 'rgba'.index(self.value)


def parse_color(value: Union[str, Sequence[float], np.ndarray]) -> RGBA:
    """Parse a color description into an RGBA tuple.

    Parameters
    ----------
    value : str or sequence of float
        One of:
        - "#RRGGBB" or "#RRGGBBAA" hex string
        - a name from NAMED_COLORS ("clear", "black", "white")
        - [r, g, b] (alpha defaults to 1.0) or [r, g, b, a]

    Returns
    -------
    tuple of float
        (r, g, b, a); values are not clamped

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a color
    """
    if isinstance(value, str):
        text = value.strip().lower()
        if text in NAMED_COLORS:
            return NAMED_COLORS[text]
        if text.startswith('#') and len(text) in (7, 9):
            try:
                channels = [int(text[i:i + 2], 16) / 255.0 for i in range(1, len(text), 2)]
            except ValueError as e:
                raise ValueError(f"Invalid hex color: {value!r}") from e
            if len(channels) == 3:
                channels.append(1.0)
            return tuple(channels)
        raise ValueError(f"Unknown color: {value!r}. Use '#RRGGBB[AA]' or one of {sorted(NAMED_COLORS)}")

    arr = np.asarray(value, dtype=np.float64).reshape(-1)
    if arr.shape[0] == 3:
        arr = np.append(arr, 1.0)
    if arr.shape[0] != 4:
        raise ValueError(f"Color must have 3 or 4 components, got {arr.shape[0]}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"Color components must be finite, got {value!r}")
    return tuple(float(c) for c in arr)


def as_rgba(value) -> np.ndarray:
    """Coerce a color or block of colors to a float32 array (..., 4)."""
    if isinstance(value, str):
        value = parse_color(value)
    arr = np.asarray(value, dtype=np.float32)
    if arr.shape[-1] != 4:
        raise ValueError(f"Expected trailing dimension 4 (RGBA), got shape {arr.shape}")
    return arr


def lerp_unclamped(a: np.ndarray, b: np.ndarray, t) -> np.ndarray:
    """Linear interpolation a + (b - a) * t without clamping t.

    `t` may be a scalar or an array broadcastable against the colors
    (e.g. shape (N, 1) for per-pixel weights).
    """
    a = np.asarray(a, dtype=np.float32)
    b = np.asarray(b, dtype=np.float32)
    return a + (b - a) * np.asarray(t, dtype=np.float32)


def lerp(a: np.ndarray, b: np.ndarray, t) -> np.ndarray:
    """Linear interpolation with t clamped to [0, 1]."""
    return lerp_unclamped(a, b, np.clip(np.asarray(t, dtype=np.float32), 0.0, 1.0))


def grayscale(colors: np.ndarray) -> np.ndarray:
    """Weighted gray value of RGB(A) colors.

    Parameters
    ----------
    colors : np.ndarray
        Shape (..., 3) or (..., 4); alpha is ignored

    Returns
    -------
    np.ndarray
        Shape (...), 0.299*R + 0.587*G + 0.114*B
    """
    colors = np.asarray(colors, dtype=np.float32)
    return colors[..., :3] @ GRAYSCALE_WEIGHTS


def channel(colors: np.ndarray, which: Union[Channel, str]) -> np.ndarray:
    """Extract one raw channel from color(s).

    Raises
    ------
    ValueError
        If `which` is not a valid channel name
    """
    which = Channel(which.lower() if isinstance(which, str) else which)
    return np.asarray(colors, dtype=np.float32)[..., which.index]
