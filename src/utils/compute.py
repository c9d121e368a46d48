"""Numerics shared by the texture engine.

Core utilities:
    - Work splitting: row_slices() partitions a canvas into contiguous row ranges
    - Display conversion: to_uint8() clamps float RGBA to [0, 1] and quantizes
    - Finiteness guard: assert_finite() for host-supplied arrays

Invariants:
    - Internal buffers are float32 RGBA, unconstrained range
    - Clamping to [0, 1] happens only at the display boundary (to_uint8)
"""

from typing import List, Tuple

import numpy as np


def row_slices(height: int, parts: int) -> List[Tuple[int, int]]:
    """Split rows [0, height) into at most `parts` contiguous ranges.

    Parameters
    ----------
    height : int
        Number of rows
    parts : int
        Desired number of ranges (e.g. worker count)

    Returns
    -------
    list[tuple[int, int]]
        (start, stop) row ranges, in order, covering every row exactly once.
        Range sizes differ by at most one row.

    Examples
    --------
    >>> row_slices(10, 3)
    [(0, 4), (4, 7), (7, 10)]
    """
    if height <= 0:
        return []
    parts = max(1, min(int(parts), height))
    base, extra = divmod(height, parts)
    slices = []
    start = 0
    for i in range(parts):
        stop = start + base + (1 if i < extra else 0)
        slices.append((start, stop))
        start = stop
    return slices


def to_uint8(img: np.ndarray) -> np.ndarray:
    """Convert float image [0,1] to uint8 [0,255].

    Parameters
    ----------
    img : np.ndarray
        Float image, any shape; values outside [0, 1] are clamped

    Returns
    -------
    np.ndarray
        uint8 array, same shape (round-half-up quantization)
    """
    img = np.clip(np.nan_to_num(np.asarray(img, dtype=np.float32), nan=0.0), 0.0, 1.0)
    return np.floor(img * 255.0 + 0.5).astype(np.uint8)


def assert_finite(x: np.ndarray, name: str = "array") -> None:
    """Assert array contains no NaN or Inf values.

    Raises
    ------
    ValueError
        If array contains NaN or Inf
    """
    x = np.asarray(x)
    if not np.all(np.isfinite(x)):
        nan_count = int(np.isnan(x).sum())
        inf_count = int(np.isinf(x).sum())
        raise ValueError(
            f"{name} contains non-finite values: {nan_count} NaNs, {inf_count} Infs. "
            f"Shape: {x.shape}, dtype: {x.dtype}"
        )
