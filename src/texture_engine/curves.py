"""Gradient and gamma curve evaluation (vectorized).

Gradient curves map t ∈ [0, 1] to RGBA:
    - t is clamped to [0, 1]
    - before the first stop / after the last stop: that stop's color
    - blend mode: linear interpolation between the bracketing stops
    - fixed mode: color of the first stop at or after t

Gamma curves map a scalar to a scalar through control keys:
    - outside the key range: the end key's value
    - linear: piecewise-linear between keys
    - smooth: scipy PCHIP (monotone cubic Hermite), which never
      overshoots between keys, so monotonic keys give a monotonic curve
"""

import numpy as np
from scipy.interpolate import PchipInterpolator

from src.utils.validators import (
    ConfigurationError,
    CurveInterpolation,
    GammaCurve,
    GradientCurve,
    GradientMode,
)


def evaluate_gradient(curve: GradientCurve, t) -> np.ndarray:
    """Evaluate a gradient at parameter(s) t.

    Parameters
    ----------
    curve : GradientCurve
        Stops sorted by position (enforced by the schema)
    t : float or np.ndarray
        Parameter(s), any shape; values outside [0, 1] are clamped

    Returns
    -------
    np.ndarray
        Colors, float32, shape t.shape + (4,)

    Raises
    ------
    ConfigurationError
        If the curve has no stops or an unknown mode
    """
    if not curve.stops:
        raise ConfigurationError("Gradient has no stops")
    t = np.clip(np.asarray(t, dtype=np.float64), 0.0, 1.0)
    positions = np.array([s.position for s in curve.stops], dtype=np.float64)
    colors = np.array([s.color for s in curve.stops], dtype=np.float64)

    if curve.mode == GradientMode.FIXED:
        idx = np.searchsorted(positions, t, side='left')
        idx = np.minimum(idx, len(positions) - 1)
        return colors[idx].astype(np.float32)
    if curve.mode != GradientMode.BLEND:
        raise ConfigurationError(f"Unrecognized gradient mode {curve.mode!r}")

    out = np.empty(t.shape + (4,), dtype=np.float32)
    for c in range(4):
        out[..., c] = np.interp(t, positions, colors[:, c])
    return out


def evaluate_gamma(curve: GammaCurve, t) -> np.ndarray:
    """Evaluate a gamma curve at t.

    Parameters
    ----------
    curve : GammaCurve
        Keys sorted by time with unique times (enforced by the schema)
    t : float or np.ndarray
        Input value(s), any shape

    Returns
    -------
    np.ndarray
        Remapped value(s), float64, same shape as t

    Raises
    ------
    ConfigurationError
        If the curve has no keys or an unknown interpolation
    """
    if not curve.keys:
        raise ConfigurationError("Gamma curve has no keys")
    t = np.asarray(t, dtype=np.float64)
    times = np.array([k.time for k in curve.keys], dtype=np.float64)
    values = np.array([k.value for k in curve.keys], dtype=np.float64)

    if len(times) == 1:
        return np.full(t.shape, values[0], dtype=np.float64)
    if curve.interpolation == CurveInterpolation.LINEAR:
        return np.interp(t, times, values)
    if curve.interpolation != CurveInterpolation.SMOOTH:
        raise ConfigurationError(f"Unrecognized curve interpolation {curve.interpolation!r}")

    tc = np.clip(t, times[0], times[-1])
    return PchipInterpolator(times, values, extrapolate=False)(tc)
