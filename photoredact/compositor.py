"""
Composition of several redaction regions onto one image.

Regions are applied one after another in the order given, each on top of the
result of the previous ones, so where boxes overlap the last region wins.
"""

import threading
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from .config import Region, RedactionConfig, validate_effect
from .effects import RegionEffectApplier
from .errors import RedactionCancelled
from .logger import LoggerMixin


class CompositionEngine(LoggerMixin):
    """
    Main compositing class: applies an ordered list of regions to an image.
    """

    def __init__(self, config: Optional[RedactionConfig] = None):
        """
        Initialize the engine.

        Args:
            config: Redaction configuration
        """
        self.config = config or RedactionConfig()
        self.applier = RegionEffectApplier(self.config)

    def composite(
        self,
        image: np.ndarray,
        regions: Sequence[Region],
        cancel_event: Optional[threading.Event] = None
    ) -> np.ndarray:
        """
        Redact every region of ``image``.

        Args:
            image: uint8 RGBA array of shape (height, width, 4)
            regions: Regions in application order; never modified
            cancel_event: Optional event checked between regions and during
                          blurring

        Returns:
            New composited image; the input array is left untouched

        Raises:
            UnsupportedEffectError: If any region carries an unknown effect
            RedactionCancelled: If cancel_event is set before completion
        """
        result, _ = self._composite(image, regions, cancel_event)
        return result

    def composite_with_metadata(
        self,
        image: np.ndarray,
        regions: Sequence[Region],
        cancel_event: Optional[threading.Event] = None
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        """
        Composite and describe what was done.

        Returns:
            Tuple of (composited_image, metadata_dict)
        """
        result, applied = self._composite(image, regions, cancel_event)

        metadata = {
            "total_regions": len(regions),
            "applied_regions": applied,
            "skipped_regions": len(regions) - applied,
            "regions": [r.to_dict() for r in regions],
            "image_shape": list(image.shape),
            "timestamp": datetime.now().isoformat()
        }
        return result, metadata

    def _composite(
        self,
        image: np.ndarray,
        regions: Sequence[Region],
        cancel_event: Optional[threading.Event]
    ) -> Tuple[np.ndarray, int]:
        # Reject bad effects before touching any pixels
        for region in regions:
            validate_effect(region.effect)

        # One working buffer; every region draws on the previous result
        result = image.copy()
        applied = 0

        for region in regions:
            if cancel_event is not None and cancel_event.is_set():
                raise RedactionCancelled("Composition cancelled")

            if self.applier.apply_in_place(result, region.bbox, region.effect, cancel_event):
                applied += 1

        if regions:
            self.log_info(f"Applied {applied}/{len(regions)} redaction regions")
        return result, applied

    def create_redaction_mask(
        self,
        image_shape: Tuple[int, ...],
        regions: Sequence[Region]
    ) -> np.ndarray:
        """
        Create a binary mask showing redacted regions.

        Args:
            image_shape: Shape of the image (height, width, ...)
            regions: Regions to mark

        Returns:
            Binary mask array (255 for redacted regions, 0 elsewhere)
        """
        height, width = image_shape[:2]
        mask = np.zeros((height, width), dtype=np.uint8)

        for region in regions:
            clamped = region.bbox.clamp(width, height)
            if clamped.is_empty:
                continue
            x1, y1, x2, y2 = clamped.as_tuple()
            mask[y1:y2, x1:x2] = 255

        return mask

    def get_redaction_statistics(
        self,
        regions: Sequence[Region],
        image_shape: Optional[Tuple[int, ...]] = None
    ) -> Dict[str, Any]:
        """
        Calculate statistics about a region list.

        Args:
            regions: Regions to summarize
            image_shape: When given, areas are measured after clamping

        Returns:
            Dictionary with per-source and per-effect counts and total area
        """
        source_counts: Dict[str, int] = {}
        effect_counts: Dict[str, int] = {}
        total_area = 0

        for region in regions:
            source = region.source.value
            source_counts[source] = source_counts.get(source, 0) + 1

            effect = region.effect.effect_type.value
            effect_counts[effect] = effect_counts.get(effect, 0) + 1

            bbox = region.bbox
            if image_shape is not None:
                bbox = bbox.clamp(image_shape[1], image_shape[0])
            total_area += bbox.area

        return {
            "total_regions": len(regions),
            "source_counts": source_counts,
            "effect_counts": effect_counts,
            "total_area_pixels": total_area
        }


def composite(
    image: np.ndarray,
    regions: Sequence[Region],
    config: Optional[RedactionConfig] = None,
    cancel_event: Optional[threading.Event] = None
) -> np.ndarray:
    """Convenience wrapper around CompositionEngine.composite."""
    return CompositionEngine(config).composite(image, regions, cancel_event)
