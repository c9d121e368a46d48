"""Per-kind pixel algorithms for the layer runner.

Each layer kind is a LayerKernel:
    prepare(layer, snapshot, width, height, rng) -> context manager
        Acquires per-pass state before any pixel is evaluated (blurred copy of
        the snapshot, grain draws, readable source copy). Array state is
        dropped with the context; the readable source copy is released
        explicitly on exit, including when the pass fails.
    evaluate(layer, cursor, state) -> np.ndarray
        Layer result for the cursor's block, float32 (N, 4). Read-only over the
        cursor and state.

All random draws happen in prepare, so evaluate is deterministic for any row
split of the canvas.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, ContextManager, Dict

import cv2
import numpy as np

from src.utils import color as color_utils
from src.utils.validators import (
    ConfigurationError,
    GradientAxis,
    GradientMapSource,
)

from .canvas import PixelCursor
from .curves import evaluate_gamma, evaluate_gradient
from .noise import perlin_noise
from .sampling import readable_snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayerKernel:
    """Pixel algorithm for one layer kind."""
    kind: str
    prepare: Callable[..., ContextManager]
    evaluate: Callable[[Any, PixelCursor, Any], np.ndarray]


@contextmanager
def _stateless(layer, snapshot, width, height, rng):
    yield None


# ============================================================================
# GRADIENT
# ============================================================================

def _gradient_parameter(layer, cursor: PixelCursor) -> np.ndarray:
    x = cursor.x.astype(np.float64)
    y = cursor.y.astype(np.float64)

    axis = layer.axis
    if axis == GradientAxis.HORIZONTAL:
        return x / cursor.width
    if axis == GradientAxis.VERTICAL:
        return y / cursor.height
    if axis == GradientAxis.CIRCULAR:
        # Centered on the min-side square, so off-center when width != height
        half = min(cursor.width, cursor.height) / 2.0
        return 1.0 - np.hypot(x - half, y - half) / half
    if axis == GradientAxis.GRADIENT_MAP:
        if layer.source == GradientMapSource.GRAYSCALE:
            return color_utils.grayscale(cursor.current).astype(np.float64)
        if layer.source == GradientMapSource.CHANNEL:
            try:
                return color_utils.channel(cursor.current, layer.channel).astype(np.float64)
            except ValueError as e:
                raise ConfigurationError(f"Unrecognized channel {layer.channel!r}") from e
        raise ConfigurationError(f"Unrecognized gradient map source {layer.source!r}")
    raise ConfigurationError(f"Unrecognized gradient axis {axis!r}")


def _evaluate_gradient(layer, cursor: PixelCursor, state) -> np.ndarray:
    t = _gradient_parameter(layer, cursor)
    if layer.gamma is not None:
        t = evaluate_gamma(layer.gamma, t)
    return evaluate_gradient(layer.gradient, t)


# ============================================================================
# PERLIN
# ============================================================================

def _evaluate_perlin(layer, cursor: PixelCursor, state) -> np.ndarray:
    u = cursor.x / cursor.width * layer.uv[0]
    v = cursor.y / cursor.height * layer.uv[1]
    n = perlin_noise(u, v)
    t = layer.remap[0] + (layer.remap[1] - layer.remap[0]) * n
    g = evaluate_gamma(layer.gamma, t)
    return color_utils.lerp_unclamped(layer.min_color, layer.max_color, g[:, np.newaxis])


# ============================================================================
# GRAIN
# ============================================================================

@contextmanager
def _prepare_grain(layer, snapshot, width, height, rng):
    """Draw an integer in [0, index) for every pixel of the canvas.

    reseed: one fresh uniform per pixel from the layer generator, in index
    order. Fixed seed: every pixel uses the first value of a generator seeded
    with `layer.seed`.
    """
    n = width * height
    if layer.reseed:
        uniforms = rng.random(n)
    else:
        uniforms = np.full(n, np.random.default_rng(layer.seed).random())
    index = np.arange(n, dtype=np.float64)
    draws = np.floor(uniforms * index).astype(np.int64)
    yield draws


def _evaluate_grain(layer, cursor: PixelCursor, state) -> np.ndarray:
    draws = state[cursor.index]
    use_min = draws > cursor.index * layer.amount
    return np.where(
        use_min[:, np.newaxis],
        np.asarray(layer.min_color, dtype=np.float32),
        np.asarray(layer.max_color, dtype=np.float32),
    ).astype(np.float32)


# ============================================================================
# BLUR
# ============================================================================

@contextmanager
def _prepare_blur(layer, snapshot, width, height, rng):
    """Box-filter the pre-pass buffer once for the whole pass.

    The image is padded by 2r replicated pixels so that any sampling
    coordinate clipped to [-r, size - 1 + r] has its full window inside the
    padded image; beyond that every window sample clamps to the same edge.
    """
    r = int(layer.radius)
    if r < 0:
        raise ConfigurationError(f"Blur radius must be >= 0, got {r}")
    image = snapshot.reshape(height, width, 4)
    pad = 2 * r
    padded = cv2.copyMakeBorder(image, pad, pad, pad, pad, cv2.BORDER_REPLICATE)
    blurred = cv2.blur(padded, (2 * r + 1, 2 * r + 1), borderType=cv2.BORDER_REPLICATE)
    yield blurred


def _evaluate_blur(layer, cursor: PixelCursor, state) -> np.ndarray:
    r = int(layer.radius)
    cx = np.clip(cursor.x, -r, cursor.width - 1 + r) + 2 * r
    cy = np.clip(cursor.y, -r, cursor.height - 1 + r) + 2 * r
    return state[cy, cx].astype(np.float32)


# ============================================================================
# TEXTURE SAMPLE
# ============================================================================

@contextmanager
def _prepare_texture_sample(layer, snapshot, width, height, rng):
    if layer.source is None:
        logger.debug("texture_sample layer has no source bound; passing pixels through")
    with readable_snapshot(layer.source, layer.wrap_mode) as source:
        yield source


def _evaluate_texture_sample(layer, cursor: PixelCursor, state) -> np.ndarray:
    if state is None:
        return cursor.current.copy()
    tile_x, tile_y, off_x, off_y = layer.tile_and_offset
    u = (cursor.x / cursor.width + off_x) * tile_x
    v = (cursor.y / cursor.height + off_y) * tile_y
    return np.asarray(state.sample(u, v), dtype=np.float32).reshape(len(cursor), 4)


# ============================================================================
# REGISTRY
# ============================================================================

KERNELS: Dict[str, LayerKernel] = {
    'gradient': LayerKernel('gradient', _stateless, _evaluate_gradient),
    'perlin': LayerKernel('perlin', _stateless, _evaluate_perlin),
    'grain': LayerKernel('grain', _prepare_grain, _evaluate_grain),
    'blur': LayerKernel('blur', _prepare_blur, _evaluate_blur),
    'texture_sample': LayerKernel('texture_sample', _prepare_texture_sample, _evaluate_texture_sample),
}


def get_kernel(layer) -> LayerKernel:
    """Look up the kernel for a layer's `kind`.

    Raises
    ------
    ConfigurationError
        If the kind has no kernel
    """
    kind = getattr(layer, 'kind', None)
    try:
        return KERNELS[kind]
    except KeyError as e:
        raise ConfigurationError(f"Unknown layer kind {kind!r}; expected one of {sorted(KERNELS)}") from e
