"""
Editing session over one image.

Holds the original image, the current ordered region list and the undo/redo
history of that list. Every edit stores an immutable snapshot (a tuple of
regions); rendering always composites from the untouched original.
"""

import threading
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

import numpy as np

from .compositor import CompositionEngine
from .config import DetectionSource, Effect, PhotoRedactConfig, Rect, Region
from .history import UndoRedoManager
from .image_io import generate_export_filename, save_image
from .logger import LoggerMixin

Snapshot = Tuple[Region, ...]


class EditingSession(LoggerMixin):
    """Region list editing with undo/redo and rendering."""

    def __init__(
        self,
        image: np.ndarray,
        regions: Iterable[Region] = (),
        config: Optional[PhotoRedactConfig] = None
    ):
        """
        Initialize session.

        Args:
            image: Original RGBA image; kept as a private copy
            regions: Initial regions, e.g. from a detector
            config: Configuration (history limit, effect defaults, export)
        """
        self.config = config or PhotoRedactConfig()
        self.original = image.copy()
        self.engine = CompositionEngine(self.config.redaction)
        self.history: UndoRedoManager[Snapshot] = UndoRedoManager(
            self.config.redaction.history_limit
        )
        self._regions: Snapshot = tuple(regions)
        self.history.save_state(self._regions)

    @property
    def regions(self) -> Snapshot:
        return self._regions

    def _commit(self, regions: Iterable[Region]) -> Snapshot:
        self._regions = tuple(regions)
        self.history.save_state(self._regions)
        return self._regions

    def _index_of(self, region_id: str) -> int:
        for index, region in enumerate(self._regions):
            if region.id == region_id:
                return index
        raise KeyError(f"Unknown region id: {region_id}")

    def set_regions(self, regions: Iterable[Region]) -> Snapshot:
        """Replace all regions, e.g. with fresh detector output."""
        return self._commit(regions)

    def add_region(
        self,
        bbox: Union[Rect, Tuple[int, int, int, int]],
        effect: Optional[Effect] = None,
        source: DetectionSource = DetectionSource.MANUAL
    ) -> Region:
        """Append a region drawn on top of the existing ones."""
        region = Region.create(bbox, effect or self.config.redaction.make_effect(), source)
        self._commit(self._regions + (region,))
        return region

    def remove_region(self, region_id: str) -> Snapshot:
        index = self._index_of(region_id)
        return self._commit(self._regions[:index] + self._regions[index + 1:])

    def change_effect(self, region_id: str, effect: Effect) -> Snapshot:
        index = self._index_of(region_id)
        regions = list(self._regions)
        regions[index] = regions[index].with_effect(effect)
        return self._commit(regions)

    def change_all_effects(self, effect: Effect) -> Snapshot:
        return self._commit(region.with_effect(effect) for region in self._regions)

    def update_bbox(
        self,
        region_id: str,
        bbox: Union[Rect, Tuple[int, int, int, int]]
    ) -> Snapshot:
        if not isinstance(bbox, Rect):
            bbox = Rect.from_tuple(bbox)
        index = self._index_of(region_id)
        regions = list(self._regions)
        regions[index] = regions[index].with_bbox(bbox)
        return self._commit(regions)

    def undo(self) -> Optional[Snapshot]:
        """Restore the previous region list; None if there is none."""
        state = self.history.undo()
        if state is not None:
            self._regions = state
        return state

    def redo(self) -> Optional[Snapshot]:
        """Re-apply an undone edit; None if there is none."""
        state = self.history.redo()
        if state is not None:
            self._regions = state
        return state

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def reset(self) -> None:
        """Drop all regions and all history."""
        self.history.clear()
        self._regions = ()
        self.history.save_state(self._regions)
        self.log_debug("Session reset")

    def render(self, cancel_event: Optional[threading.Event] = None) -> np.ndarray:
        """Composite the current regions over the original image."""
        return self.engine.composite(self.original, self._regions, cancel_event)

    def export(self, output_path: Optional[Union[str, Path]] = None) -> Path:
        """
        Render and save the image.

        Without ``output_path`` the result goes to ``config.output_dir`` under
        a timestamped name built from ``config.io.export_prefix``.
        """
        if output_path is None:
            output_path = self.config.output_dir / generate_export_filename(
                self.config.io.export_prefix
            )
        return save_image(self.render(), output_path, self.config.io.jpeg_quality)
