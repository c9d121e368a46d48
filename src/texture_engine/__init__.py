"""Procedural texture engine.

Layers (gradient, Perlin noise, grain, blur, texture sampling) are applied in
order to a float RGBA canvas, each combined with the existing pixels under a
blend mode.

Modules:
    - canvas: Canvas buffer and PixelCursor
    - blend: set/alpha/additive/multiply compositing
    - curves: gradient and gamma curve evaluation
    - noise: 2D Perlin noise
    - sampling: ArrayImage provider and bilinear sampling
    - layers: per-kind kernels (prepare, evaluate)
    - runner: run_layer()
    - pipeline: Pipeline and render()
"""

from .blend import composite
from .canvas import Canvas, PixelCursor, create_canvas
from .layers import KERNELS, LayerKernel, get_kernel
from .pipeline import Pipeline, render
from .runner import run_layer
from .sampling import ArrayImage

__all__ = [
    'ArrayImage',
    'Canvas',
    'KERNELS',
    'LayerKernel',
    'Pipeline',
    'PixelCursor',
    'composite',
    'create_canvas',
    'get_kernel',
    'render',
    'run_layer',
]
