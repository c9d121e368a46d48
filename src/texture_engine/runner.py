"""Layer runner: apply one layer across a canvas.

One loop for every layer kind:
    1. Skip if the layer is None or flagged `skip` (canvas untouched)
    2. Snapshot the buffer; every read in the pass sees pre-pass values
    3. Enter the kind's prepare() for per-pass state
    4. For each row range: build a PixelCursor, evaluate the kind's pixel
       algorithm, composite with the snapshot under the layer's blend mode,
       write the range back
    5. Release the per-pass state (also on failure)

Offsets shift the sampling coordinates, not the written pixel:
    sampleX = x + round(offset.x * width), sampleY = y + round(offset.y * height)
with Python's round() (half to even).

Row ranges write disjoint slices of the buffer, so a pass can be spread over
a thread pool; results are identical for any worker count.
"""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Optional, Tuple

import numpy as np

from src.utils import compute
from src.utils.validators import validate_layer

from .blend import composite, resolve_blend_mode
from .canvas import Canvas, make_cursor
from .layers import get_kernel

logger = logging.getLogger(__name__)


def sample_shift(offset: Tuple[float, float], width: int, height: int) -> Tuple[int, int]:
    """Integer pixel shift for a fractional layer offset."""
    return int(round(offset[0] * width)), int(round(offset[1] * height))


def run_layer(
    layer,
    canvas: Canvas,
    rng: Optional[np.random.Generator] = None,
    workers: int = 1,
    executor: Optional[Executor] = None
) -> Canvas:
    """Apply `layer` to `canvas` in place.

    Parameters
    ----------
    layer : Layer or None
        Layer config; None or skip=True leaves the canvas bit-identical
    canvas : Canvas
        Buffer to modify
    rng : np.random.Generator, optional
        Layer-local generator (grain reseed draws); a fresh unseeded one if None
    workers : int
        Number of row ranges to evaluate concurrently
    executor : Executor, optional
        Pool to run ranges on; a temporary ThreadPoolExecutor if None and
        workers > 1

    Returns
    -------
    Canvas
        The same canvas

    Raises
    ------
    ConfigurationError
        Unknown kind or enum variant, malformed curve, negative blur radius
    """
    if layer is None or layer.skip:
        return canvas

    validate_layer(layer)
    kernel = get_kernel(layer)
    mode = resolve_blend_mode(layer.blend_mode)
    width, height = canvas.width, canvas.height
    shift = sample_shift(layer.offset, width, height)
    if rng is None:
        rng = np.random.default_rng()

    snapshot = canvas.pixels.copy()
    ranges = compute.row_slices(height, workers)

    with kernel.prepare(layer, snapshot, width, height, rng) as state:

        def run_rows(rows: Tuple[int, int]) -> None:
            cursor = make_cursor(snapshot, width, height, rows, shift)
            result = np.asarray(kernel.evaluate(layer, cursor, state), dtype=np.float32)
            if result.shape != cursor.current.shape:
                raise RuntimeError(
                    f"{layer.kind} kernel returned shape {result.shape}, expected {cursor.current.shape}"
                )
            start, stop = rows
            canvas.pixels[start * width:stop * width] = composite(
                cursor.current, result, layer.alpha, mode
            )

        if len(ranges) <= 1:
            for rows in ranges:
                run_rows(rows)
        elif executor is not None:
            list(executor.map(run_rows, ranges))
        else:
            with ThreadPoolExecutor(max_workers=len(ranges)) as pool:
                list(pool.map(run_rows, ranges))

    return canvas
