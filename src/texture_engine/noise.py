"""2D Perlin gradient noise, vectorized over coordinate arrays.

Classic improved-Perlin construction:
    - integer lattice hashed through a fixed 256-entry permutation
    - one of 8 unit gradient directions per lattice corner
    - quintic fade 6t^5 - 15t^4 + 10t^3
    - raw value in about [-0.7, 0.7], mapped to [0, 1] via n * 0.5 + 0.5
      (0.5 exactly at lattice points)

The permutation is fixed (seeded once at import), so the same coordinates
always give the same value, process to process.
"""

import numpy as np

PERMUTATION_SEED = 1337

_PERM = np.random.default_rng(PERMUTATION_SEED).permutation(256).astype(np.int64)
_PERM = np.concatenate([_PERM, _PERM])

_ANGLES = np.arange(8) * (np.pi / 4.0)
_GRADIENTS = np.stack([np.cos(_ANGLES), np.sin(_ANGLES)], axis=-1)


def _fade(t: np.ndarray) -> np.ndarray:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def _lerp(a: np.ndarray, b: np.ndarray, t: np.ndarray) -> np.ndarray:
    return a + t * (b - a)


def _corner(xi: np.ndarray, yi: np.ndarray, dx: np.ndarray, dy: np.ndarray) -> np.ndarray:
    """Dot product of a corner's gradient with the offset to the sample."""
    h = _PERM[_PERM[xi & 255] + (yi & 255)] & 7
    g = _GRADIENTS[h]
    return g[..., 0] * dx + g[..., 1] * dy


def perlin_signed(x, y) -> np.ndarray:
    """Raw Perlin noise at (x, y), roughly in [-0.71, 0.71]."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    x0 = np.floor(x)
    y0 = np.floor(y)
    xf = x - x0
    yf = y - y0
    xi = x0.astype(np.int64)
    yi = y0.astype(np.int64)

    n00 = _corner(xi, yi, xf, yf)
    n10 = _corner(xi + 1, yi, xf - 1.0, yf)
    n01 = _corner(xi, yi + 1, xf, yf - 1.0)
    n11 = _corner(xi + 1, yi + 1, xf - 1.0, yf - 1.0)

    u = _fade(xf)
    v = _fade(yf)
    return _lerp(_lerp(n00, n10, u), _lerp(n01, n11, u), v)


def perlin_noise(x, y) -> np.ndarray:
    """Perlin noise at (x, y) in [0, 1].

    Parameters
    ----------
    x, y : float or np.ndarray
        Sample coordinates in lattice units (broadcastable)

    Returns
    -------
    np.ndarray
        Noise values, float64, clipped to [0, 1]
    """
    return np.clip(perlin_signed(x, y) * 0.5 + 0.5, 0.0, 1.0)
