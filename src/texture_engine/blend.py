"""Blend compositor: combine a layer result with the existing pixel.

Modes (alpha = layer opacity in [0, 1]):
    - set:      result
    - alpha:    lerp(before, result, result.a * alpha), weight clamped to [0, 1]
    - additive: before + result * result.a * alpha      (unbounded)
    - multiply: before * (result + (1 - alpha))         (pure product at alpha = 1)

Pure and deterministic. Works on one color (4,) or a block (N, 4).
"""

import numpy as np

from src.utils import color as color_utils
from src.utils.validators import BlendMode, ConfigurationError


def resolve_blend_mode(mode) -> BlendMode:
    """Coerce a BlendMode or its string value.

    Raises
    ------
    ConfigurationError
        If the mode is not recognized
    """
    try:
        return BlendMode(mode.lower() if isinstance(mode, str) else mode)
    except ValueError as e:
        raise ConfigurationError(
            f"Unrecognized blend mode {mode!r}; expected one of {[m.value for m in BlendMode]}"
        ) from e


def composite(before, result, alpha: float, mode) -> np.ndarray:
    """Combine `result` into `before` under `mode`.

    Parameters
    ----------
    before : array-like
        Existing color(s), shape (4,) or (N, 4)
    result : array-like
        Layer output, same shape as `before`
    alpha : float
        Layer opacity
    mode : BlendMode or str
        Blend mode

    Returns
    -------
    np.ndarray
        New color(s), float32, same shape; inputs are not modified

    Raises
    ------
    ConfigurationError
        If `mode` is not one of set/alpha/additive/multiply
    """
    mode = resolve_blend_mode(mode)
    before = np.asarray(before, dtype=np.float32)
    result = np.asarray(result, dtype=np.float32)
    alpha = np.float32(alpha)

    if mode is BlendMode.SET:
        return result.copy()
    if mode is BlendMode.ALPHA:
        return color_utils.lerp(before, result, result[..., 3:4] * alpha)
    if mode is BlendMode.ADDITIVE:
        return before + result * (result[..., 3:4] * alpha)
    if mode is BlendMode.MULTIPLY:
        return before * (result + (np.float32(1.0) - alpha))
    raise ConfigurationError(f"Unhandled blend mode {mode!r}")
