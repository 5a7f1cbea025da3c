"""
Per-region redaction effects.

Applies one effect (stack blur, pixelation or solid fill) to one rectangle of
an RGBA image. Rectangles are clamped to the image first; a rectangle with no
area left after clamping leaves the image unchanged.
"""

import threading
from typing import Optional, Tuple

import numpy as np

from .config import (
    BlackBox, Effect, GaussianBlur, Pixelation, Rect, RedactionConfig, validate_effect
)
from .logger import LoggerMixin
from .stack_blur import blur


def clamp_rect(image: np.ndarray, rect: Rect) -> Rect:
    """Clamp ``rect`` to the bounds of ``image``."""
    height, width = image.shape[:2]
    return rect.clamp(width, height)


def apply_gaussian(
    image: np.ndarray,
    rect: Rect,
    radius: int,
    cancel_event: Optional[threading.Event] = None
) -> None:
    """Blur the pixels inside ``rect`` in place. ``rect`` must be clamped."""
    x1, y1, x2, y2 = rect.as_tuple()
    image[y1:y2, x1:x2] = blur(image[y1:y2, x1:x2], radius, cancel_event)


def apply_pixelation(image: np.ndarray, rect: Rect, block_size: int) -> None:
    """
    Pixelate the pixels inside ``rect`` in place.

    The grid starts at the rect's top-left corner. Each cell takes the colour
    of the source pixel at its own top-left corner (one sample, no
    averaging); cells on the right and bottom edges are clipped to the rect.
    """
    x1, y1, x2, y2 = rect.as_tuple()
    area = image[y1:y2, x1:x2]
    # Index of each pixel's cell origin; the gather copies before assigning
    ys = np.arange(area.shape[0]) // block_size * block_size
    xs = np.arange(area.shape[1]) // block_size * block_size
    area[...] = area[ys[:, None], xs[None, :]]


def apply_black_box(
    image: np.ndarray,
    rect: Rect,
    fill_color: Tuple[int, int, int] = (0, 0, 0)
) -> None:
    """Fill the RGB channels inside ``rect`` in place. Alpha is left alone."""
    x1, y1, x2, y2 = rect.as_tuple()
    image[y1:y2, x1:x2, :3] = fill_color


def apply_effect(
    image: np.ndarray,
    rect: Rect,
    effect: Effect,
    fill_color: Tuple[int, int, int] = (0, 0, 0),
    cancel_event: Optional[threading.Event] = None
) -> np.ndarray:
    """
    Return a copy of ``image`` with ``effect`` applied inside ``rect``.

    Args:
        image: uint8 RGBA array of shape (height, width, 4)
        rect: Region to redact, in image pixel coordinates
        effect: GaussianBlur, Pixelation or BlackBox
        fill_color: RGB colour used by BlackBox
        cancel_event: Optional event checked during blurring

    Returns:
        New image; pixels outside the clamped rect are unchanged

    Raises:
        UnsupportedEffectError: If effect is not a supported effect
    """
    result = image.copy()
    apply_effect_in_place(result, rect, effect, fill_color, cancel_event)
    return result


def apply_effect_in_place(
    image: np.ndarray,
    rect: Rect,
    effect: Effect,
    fill_color: Tuple[int, int, int] = (0, 0, 0),
    cancel_event: Optional[threading.Event] = None
) -> bool:
    """
    Apply ``effect`` inside ``rect`` directly on ``image``.

    Returns:
        False if the clamped rect was empty and nothing changed, else True
    """
    validate_effect(effect)

    clamped = clamp_rect(image, rect)
    if clamped.is_empty:
        return False

    if isinstance(effect, GaussianBlur):
        apply_gaussian(image, clamped, effect.radius, cancel_event)
    elif isinstance(effect, Pixelation):
        apply_pixelation(image, clamped, effect.block_size)
    elif isinstance(effect, BlackBox):
        apply_black_box(image, clamped, fill_color)
    return True


class RegionEffectApplier(LoggerMixin):
    """
    Applies a single redaction effect to a single region of an image.
    """

    def __init__(self, config: Optional[RedactionConfig] = None):
        """
        Initialize applier.

        Args:
            config: Redaction configuration (fill colour for BlackBox)
        """
        self.config = config or RedactionConfig()

    def apply(
        self,
        image: np.ndarray,
        rect: Rect,
        effect: Effect,
        cancel_event: Optional[threading.Event] = None
    ) -> np.ndarray:
        """
        Return a full-size copy of ``image`` with ``rect`` redacted.

        The input array is never modified, so callers can reuse it for
        several independent applications.
        """
        result = image.copy()
        self.apply_in_place(result, rect, effect, cancel_event)
        return result

    def apply_in_place(
        self,
        image: np.ndarray,
        rect: Rect,
        effect: Effect,
        cancel_event: Optional[threading.Event] = None
    ) -> bool:
        """Apply to ``image`` directly; returns False for an empty rect."""
        applied = apply_effect_in_place(
            image, rect, effect, self.config.fill_color, cancel_event
        )
        if not applied:
            self.log_debug(f"Skipping region outside image bounds: {rect.as_tuple()}")
        return applied
