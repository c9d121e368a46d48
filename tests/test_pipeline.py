"""End-to-end pipeline tests.

Tests for src.texture_engine.pipeline:
    - N×N render returns N*N pixels in row-major order
    - set blend of a constant layer over any background yields the constant
    - alpha blend with result.a = 0 is a no-op
    - additive blend applied twice doubles a single application
    - empty / None layers return the background canvas
    - identical config + seed → bit-identical buffers; workers don't matter
    - invalid resolutions raise InvalidDimension before any pixel work
    - the example config under configs/textures/ loads and renders
    - per-kind timings and render logging

Run:
    pytest tests/test_pipeline.py -v
"""

import logging
from pathlib import Path

import numpy as np
import pytest

from src.texture_engine import Pipeline, render
from src.texture_engine.pipeline import config_fingerprint
from src.utils import hashing, validators
from src.utils.validators import (
    BlurLayer,
    GradientCurve,
    GradientLayer,
    GrainLayer,
    InvalidDimension,
    PerlinLayer,
    PipelineConfig,
)

C = (0.2, 0.4, 0.6, 1.0)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(scope="module")
def project_root():
    """Project root directory."""
    return Path(__file__).parent.parent


def constant_layer(color, **kwargs) -> GradientLayer:
    return GradientLayer(gradient=GradientCurve.two_stop(color, color), **kwargs)


@pytest.fixture
def grain_stack():
    return PipelineConfig(
        width=16,
        seed=1234,
        layers=[
            PerlinLayer(uv=(4.0, 4.0)),
            GrainLayer(amount=0.1, blend_mode="additive", alpha=0.5),
            BlurLayer(radius=1),
        ],
    )


# ============================================================================
# BUFFER SHAPE / BLENDING
# ============================================================================

@pytest.mark.parametrize("n", [1, 2, 8, 32])
def test_render_returns_n_squared_pixels(n):
    canvas = render(PipelineConfig(width=n))
    assert len(canvas) == n * n
    assert canvas.pixels.shape == (n * n, 4)
    assert (canvas.width, canvas.height) == (n, n)


def test_row_major_order():
    canvas = render(PipelineConfig(width=4, layers=[GradientLayer(axis="vertical")]))
    np.testing.assert_allclose(canvas.pixels[:4, 0], 0.0)
    np.testing.assert_allclose(canvas.pixels[4:8, 0], 0.25, atol=1e-6)


def test_set_constant_over_background():
    config = PipelineConfig(width=8, background=(0.9, 0.1, 0.1, 0.5), layers=[constant_layer(C)])
    canvas = render(config)
    np.testing.assert_allclose(canvas.pixels, np.tile(C, (64, 1)), atol=1e-7)


def test_alpha_transparent_is_noop():
    background = (0.0, 0.0, 1.0, 1.0)
    config = PipelineConfig(
        width=4,
        background=background,
        layers=[constant_layer((1.0, 0.0, 0.0, 0.0), blend_mode="alpha")],
    )
    np.testing.assert_allclose(render(config).pixels, np.tile(background, (16, 1)))


def test_additive_twice_doubles():
    base = (0.0, 0.0, 0.0, 0.0)
    once = render(PipelineConfig(width=4, background=base, layers=[constant_layer(C, blend_mode="additive")]))
    twice = render(PipelineConfig(
        width=4,
        background=base,
        layers=[constant_layer(C, blend_mode="additive"), constant_layer(C, blend_mode="additive")],
    ))
    np.testing.assert_allclose(twice.pixels, 2.0 * once.pixels, atol=1e-6)


def test_empty_layers_return_background():
    canvas = render(PipelineConfig(width=4, background="white", layers=[]))
    np.testing.assert_array_equal(canvas.pixels, np.ones((16, 4), dtype=np.float32))


def test_none_and_skipped_layers_are_ignored():
    config = PipelineConfig(
        width=4,
        background="black",
        layers=[None, constant_layer(C, skip=True), None],
    )
    np.testing.assert_array_equal(render(config).pixels, np.tile([0.0, 0.0, 0.0, 1.0], (16, 1)))


def test_grain_amount_zero_fixed_seed():
    config = PipelineConfig(
        width=4,
        layers=[GrainLayer(amount=0.0, reseed=False, seed=42, min="black", max="white")],
    )
    canvas = render(config)
    # Seed 42 draws 0.774 for every pixel: only indices 0 and 1 draw zero
    np.testing.assert_array_equal(canvas.pixels[:, 0], [1.0, 1.0] + [0.0] * 14)


# ============================================================================
# DETERMINISM
# ============================================================================

@pytest.mark.determinism
def test_same_seed_same_buffer(grain_stack):
    a = render(grain_stack)
    b = render(grain_stack)
    assert hashing.sha256_array(a.pixels) == hashing.sha256_array(b.pixels)


@pytest.mark.determinism
def test_different_seed_different_buffer(grain_stack):
    other = grain_stack.model_copy(update={"seed": 4321})
    assert not np.array_equal(render(grain_stack).pixels, render(other).pixels)


@pytest.mark.determinism
def test_explicit_generator_overrides_seed(grain_stack):
    a = render(grain_stack, rng=np.random.default_rng(77))
    b = render(grain_stack.model_copy(update={"seed": 999}), rng=np.random.default_rng(77))
    np.testing.assert_array_equal(a.pixels, b.pixels)


@pytest.mark.determinism
@pytest.mark.parametrize("workers", [2, 5])
def test_workers_do_not_change_result(grain_stack, workers):
    parallel = grain_stack.model_copy(update={"workers": workers})
    np.testing.assert_array_equal(render(parallel).pixels, render(grain_stack).pixels)


def test_fingerprint_stable_and_sensitive(grain_stack):
    assert config_fingerprint(grain_stack) == config_fingerprint(grain_stack.model_copy())
    assert config_fingerprint(grain_stack) != config_fingerprint(grain_stack.model_copy(update={"seed": 1}))


# ============================================================================
# ERRORS
# ============================================================================

@pytest.mark.parametrize("width", [0, -8, 3, 2048])
def test_invalid_width(width):
    with pytest.raises(InvalidDimension):
        render(PipelineConfig(width=width))


def test_invalid_height_when_not_square():
    with pytest.raises(InvalidDimension):
        render(PipelineConfig(width=8, height=0, is_square=False))


def test_non_square_render():
    canvas = render(PipelineConfig(width=8, height=2, is_square=False))
    assert (canvas.width, canvas.height) == (8, 2)
    assert len(canvas) == 16


def test_square_ignores_height():
    canvas = render(PipelineConfig(width=4, height=0, is_square=True))
    assert canvas.size == (4, 4)


# ============================================================================
# CONFIG FILE / OBSERVABILITY
# ============================================================================

@pytest.mark.integration
def test_example_config_renders(project_root):
    config = validators.load_pipeline_config(project_root / "configs/textures/example_stack.yaml")
    assert config.resolved_size() == (64, 64)
    assert config.workers == 2

    canvas = render(config)
    assert len(canvas) == 64 * 64
    assert np.all(np.isfinite(canvas.pixels))
    np.testing.assert_array_equal(render(config).pixels, canvas.pixels)


def test_timings_accumulate_per_kind(grain_stack):
    pipeline = Pipeline(grain_stack)
    pipeline.render()
    pipeline.render()
    assert set(pipeline.timings) == {"perlin", "grain", "blur"}
    assert all(t.count == 2 for t in pipeline.timings.values())
    assert all(t.total_time >= 0.0 for t in pipeline.timings.values())


def test_render_logs_summary(caplog):
    with caplog.at_level(logging.INFO, logger="src.texture_engine.pipeline"):
        render(PipelineConfig(width=4))
    assert any("Rendered 4x4 texture with 1 layers" in r.getMessage() for r in caplog.records)
