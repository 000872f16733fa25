"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Luminance weights (color)
    - RMSE / max-difference metrics (metrics)
    - Atomic I/O and YAML handling (fs)
    - Hashing for provenance (hashing)
    - Config validation (validators)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (imaging, pipeline, scripts).

Convenience imports:
    from imagediff.utils import metrics, fs, validators
    from imagediff.utils.logging_config import setup_logging, get_logger
"""

from . import color
from . import fs
from . import hashing
from . import logging_config
from . import metrics
from . import validators

# Common functions for direct import
from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    # Modules
    'color',
    'fs',
    'hashing',
    'logging_config',
    'metrics',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
]
