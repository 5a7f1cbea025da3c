"""
photoredact - region-based photo redaction.

This package provides tools for:
- Stack blur, pixelation and solid-fill redaction of image regions
- Ordered composition of many regions onto one image
- Bounded undo/redo of region edits
- Loading, orientation-correcting and exporting images
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config import (
    BlackBox,
    DetectionSource,
    EffectType,
    GaussianBlur,
    PhotoRedactConfig,
    Pixelation,
    Rect,
    RedactionConfig,
    Region,
)
from .compositor import CompositionEngine, composite
from .effects import RegionEffectApplier
from .errors import RedactionCancelled, RedactionError, UnsupportedEffectError
from .history import UndoRedoManager
from .logger import get_logger
from .stack_blur import blur

__all__ = [
    "BlackBox",
    "CompositionEngine",
    "DetectionSource",
    "EffectType",
    "GaussianBlur",
    "PhotoRedactConfig",
    "Pixelation",
    "Rect",
    "RedactionCancelled",
    "RedactionConfig",
    "RedactionError",
    "Region",
    "RegionEffectApplier",
    "UndoRedoManager",
    "UnsupportedEffectError",
    "blur",
    "composite",
    "get_logger",
]
