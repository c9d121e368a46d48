"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation and error types (validators)
    - RGBA color helpers (color)
    - Row slicing and display conversion (compute)
    - YAML loading (fs)
    - Buffer/config fingerprints (hashing)
    - Unified logging (logging_config)
    - Profiling (profiler)

No module in utils/ may import from upper layers (texture_engine).

Convenience imports:
    from src.utils import color, validators
    from src.utils.logging_config import setup_logging, get_logger
"""

from . import color
from . import compute
from . import fs
from . import hashing
from . import logging_config
from . import profiler
from . import validators

from .logging_config import get_logger, log_context, push_context, setup_logging

__all__ = [
    # Modules
    'color',
    'compute',
    'fs',
    'hashing',
    'logging_config',
    'profiler',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
    'log_context',
]
