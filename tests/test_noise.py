"""Test Perlin noise.

Tests for src.texture_engine.noise:
    - values in [0, 1]
    - 0.5 at integer lattice points
    - deterministic across calls
    - continuous (small steps give small changes)
    - not constant between lattice points

Run:
    pytest tests/test_noise.py -v
"""

import numpy as np

from src.texture_engine.noise import perlin_noise, perlin_signed


def test_range():
    rng = np.random.default_rng(0)
    x = rng.uniform(-50.0, 50.0, 5000)
    y = rng.uniform(-50.0, 50.0, 5000)
    n = perlin_noise(x, y)
    assert n.min() >= 0.0
    assert n.max() <= 1.0


def test_half_at_lattice_points():
    xs, ys = np.meshgrid(np.arange(-3, 4), np.arange(-3, 4))
    np.testing.assert_array_equal(perlin_noise(xs, ys), 0.5)


def test_deterministic():
    x = np.linspace(0.0, 7.3, 50)
    y = np.linspace(2.0, -1.1, 50)
    np.testing.assert_array_equal(perlin_noise(x, y), perlin_noise(x.copy(), y.copy()))


def test_continuous():
    x = np.linspace(0.0, 4.0, 4001)
    n = perlin_signed(x, np.full_like(x, 0.37))
    assert np.max(np.abs(np.diff(n))) < 0.01


def test_varies_between_lattice_points():
    xs, ys = np.meshgrid(np.linspace(0.1, 5.9, 30), np.linspace(0.1, 5.9, 30))
    assert np.std(perlin_noise(xs, ys)) > 0.01


def test_scalar_input():
    assert np.ndim(perlin_noise(0.5, 0.5)) == 0
