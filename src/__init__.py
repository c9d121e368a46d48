"""Procedural Texture: layered, deterministic texture generation.

This package contains the layer-processing engine that builds an RGBA float
image by running an ordered stack of layers (gradients, Perlin noise, grain,
blur, source-texture sampling) over a shared canvas and blending each
layer's per-pixel result into it.

Architecture layers (strict one-way dependency):
    host code → src/texture_engine/ → src/utils/

Key invariants:
    - Identical config + seed → bit-identical buffer
    - Layers run strictly in order; within a layer, pixels read a frozen
      pre-pass snapshot and write only their own index
    - Config errors are raised before any pixel is written
    - Buffers are float32 RGBA, unclamped until display
"""

__version__ = "1.0.0"
