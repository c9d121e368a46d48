"""Pipeline: validate a config, allocate a canvas, run every layer in order.

Usage:
    from src.texture_engine import Pipeline, render
    from src.utils import validators

    config = validators.load_pipeline_config("configs/textures/example_stack.yaml")
    canvas = render(config)

    pipeline = Pipeline(config)
    canvas = pipeline.render()
    print(pipeline.timings)

Randomness:
    Each layer slot gets its own generator, spawned from
    SeedSequence(config.seed) or from an explicitly passed Generator. With a
    seed set, renders are reproducible; no global random state is used.

A render either returns a complete canvas or raises before any pixel work
(ConfigurationError / InvalidDimension).
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

import numpy as np

from src.utils import hashing
from src.utils.logging_config import log_context
from src.utils.profiler import TimerAccumulator, timer
from src.utils.validators import PipelineConfig, validate_pipeline

from .canvas import Canvas
from .runner import run_layer

logger = logging.getLogger(__name__)


def config_fingerprint(config: PipelineConfig) -> str:
    """Short SHA-256 of the serialized config (sources excluded)."""
    return hashing.hash_dict(config.model_dump(mode='json', by_alias=True))[:8]


def _layer_generators(
    n: int,
    seed: Optional[int],
    rng: Optional[np.random.Generator] = None
) -> List[np.random.Generator]:
    """One independent generator per layer slot."""
    if rng is not None:
        return rng.spawn(n)
    return [np.random.default_rng(s) for s in np.random.SeedSequence(seed).spawn(n)]


class Pipeline:
    """Renders a PipelineConfig; keeps per-kind timings across renders.

    Attributes
    ----------
    config : PipelineConfig
        Texture pipeline
    timings : dict[str, TimerAccumulator]
        Pass durations keyed by layer kind
    """

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.timings: Dict[str, TimerAccumulator] = {}

    def _record(self, kind: str, index: int):
        accumulator = self.timings.setdefault(kind, TimerAccumulator(kind))

        def sink(name: str, elapsed: float) -> None:
            accumulator.add(elapsed)
            logger.debug(f"Layer {index} ({name}) took {elapsed * 1000:.2f} ms")

        return sink

    def render(self, rng: Optional[np.random.Generator] = None) -> Canvas:
        """Render the configured layer stack.

        Parameters
        ----------
        rng : np.random.Generator, optional
            Overrides config.seed as the source of layer generators

        Returns
        -------
        Canvas
            Freshly allocated, width × height pixels

        Raises
        ------
        InvalidDimension
            If the resolved width/height is not a valid resolution
        ConfigurationError
            If any layer is invalid
        """
        config = self.config
        width, height = validate_pipeline(config)
        layers = list(config.layers or [])
        canvas = Canvas.create(width, height, config.background)
        generators = _layer_generators(len(layers), config.seed, rng)

        with log_context(render=config_fingerprint(config)):
            start = time.perf_counter()
            if config.workers > 1:
                with ThreadPoolExecutor(max_workers=config.workers) as pool:
                    self._run_layers(layers, canvas, generators, pool)
            else:
                self._run_layers(layers, canvas, generators, None)
            logger.info(
                f"Rendered {width}x{height} texture with {len(layers)} layers "
                f"in {time.perf_counter() - start:.3f} s"
            )
        return canvas

    def _run_layers(self, layers, canvas, generators, pool) -> None:
        for i, (layer, layer_rng) in enumerate(zip(layers, generators)):
            if layer is None or layer.skip:
                logger.debug(f"Layer {i} skipped")
                continue
            with timer(layer.kind, sink=self._record(layer.kind, i)):
                run_layer(layer, canvas, layer_rng, self.config.workers, pool)


def render(config: PipelineConfig, rng: Optional[np.random.Generator] = None) -> Canvas:
    """Render `config` to a new canvas (see Pipeline.render)."""
    return Pipeline(config).render(rng)
