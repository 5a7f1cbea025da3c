"""
Tests for region composition.
"""

import threading
from types import SimpleNamespace

import numpy as np
import pytest

from photoredact.compositor import CompositionEngine, composite
from photoredact.config import (
    BlackBox, DetectionSource, GaussianBlur, Pixelation, Rect, Region
)
from photoredact.effects import RegionEffectApplier
from photoredact.errors import RedactionCancelled, UnsupportedEffectError


@pytest.fixture
def engine():
    return CompositionEngine()


@pytest.fixture
def textured_image():
    """Random opaque RGBA image."""
    rng = np.random.default_rng(99)
    image = rng.integers(0, 256, size=(64, 96, 4), dtype=np.uint8)
    image[..., 3] = 255
    return image


@pytest.fixture
def overlapping_regions():
    """Two regions whose boxes overlap in (30..50, 20..40)."""
    first = Region("r1", Rect(10, 10, 50, 40), Pixelation(block_size=6), DetectionSource.AUTO_FACE)
    second = Region("r2", Rect(30, 20, 70, 60), GaussianBlur(radius=3), DetectionSource.MANUAL)
    return [first, second]


class TestComposite:
    """Test composite ordering and edge cases."""

    def test_empty_regions_is_copy(self, engine, textured_image):
        """No regions returns identical pixels in a new array."""
        result = engine.composite(textured_image, [])
        np.testing.assert_array_equal(result, textured_image)
        assert result is not textured_image

    def test_sequential_application(self, engine, textured_image, overlapping_regions):
        """Result equals apply(apply(image, R1), R2)."""
        applier = RegionEffectApplier()
        first, second = overlapping_regions
        expected = applier.apply(
            applier.apply(textured_image, first.bbox, first.effect),
            second.bbox, second.effect
        )

        result = engine.composite(textured_image, overlapping_regions)
        np.testing.assert_array_equal(result, expected)

    def test_order_matters(self, engine, textured_image, overlapping_regions):
        """Reversing the region order changes the overlap."""
        forward = engine.composite(textured_image, overlapping_regions)
        backward = engine.composite(textured_image, list(reversed(overlapping_regions)))

        assert not np.array_equal(forward[20:40, 30:50], backward[20:40, 30:50])

    def test_last_region_wins(self, engine, textured_image):
        """Identical boxes: the later effect covers the earlier one."""
        rect = Rect(0, 0, 40, 40)
        regions = [
            Region("blur", rect, GaussianBlur(radius=5)),
            Region("box", rect, BlackBox()),
        ]
        result = engine.composite(textured_image, regions)
        assert np.all(result[0:40, 0:40, :3] == 0)

    def test_degenerate_region_skipped(self, engine, textured_image):
        """A bad box is a no-op and later regions still apply."""
        regions = [
            Region("gone", Rect(500, 500, 600, 600), BlackBox()),
            Region("flat", Rect(10, 10, 10, 30), BlackBox()),
            Region("ok", Rect(0, 0, 8, 8), BlackBox()),
        ]
        result = engine.composite(textured_image, regions)

        assert np.all(result[0:8, 0:8, :3] == 0)
        np.testing.assert_array_equal(result[8:, :], textured_image[8:, :])

    def test_inputs_not_modified(self, engine, textured_image, overlapping_regions):
        """Neither the image nor the region list changes."""
        image_before = textured_image.copy()
        regions_before = list(overlapping_regions)

        engine.composite(textured_image, overlapping_regions)

        np.testing.assert_array_equal(textured_image, image_before)
        assert overlapping_regions == regions_before

    def test_unsupported_effect_fails_before_work(self, engine, textured_image):
        """An unknown effect anywhere in the list rejects the whole call."""
        bogus = SimpleNamespace(id="x", bbox=Rect(0, 0, 5, 5), effect="swirl")
        with pytest.raises(UnsupportedEffectError):
            engine.composite(textured_image, [bogus])

    def test_cancelled(self, engine, textured_image, overlapping_regions):
        """A set event stops composition."""
        event = threading.Event()
        event.set()
        with pytest.raises(RedactionCancelled):
            engine.composite(textured_image, overlapping_regions, cancel_event=event)

    def test_module_wrapper(self, engine, textured_image, overlapping_regions):
        """composite() matches the engine method."""
        np.testing.assert_array_equal(
            composite(textured_image, overlapping_regions),
            engine.composite(textured_image, overlapping_regions)
        )


class TestCompositeMetadata:
    """Test metadata, masks and statistics."""

    def test_metadata_counts(self, engine, textured_image):
        """Applied and skipped regions are counted."""
        regions = [
            Region("a", Rect(0, 0, 10, 10), BlackBox()),
            Region("b", Rect(200, 200, 300, 300), BlackBox()),
        ]
        _, metadata = engine.composite_with_metadata(textured_image, regions)

        assert metadata["total_regions"] == 2
        assert metadata["applied_regions"] == 1
        assert metadata["skipped_regions"] == 1
        assert metadata["image_shape"] == [64, 96, 4]
        assert metadata["regions"][0]["id"] == "a"

    def test_redaction_mask(self, engine):
        """Mask marks clamped region pixels with 255."""
        regions = [
            Region("a", Rect(-5, -5, 10, 10), BlackBox()),
            Region("b", Rect(50, 50, 60, 60), BlackBox()),
        ]
        mask = engine.create_redaction_mask((20, 30, 4), regions)

        assert mask.shape == (20, 30)
        assert mask.dtype == np.uint8
        assert np.count_nonzero(mask) == 100
        assert np.all(mask[0:10, 0:10] == 255)

    def test_statistics(self, engine, overlapping_regions):
        """Counts by source and effect plus total area."""
        stats = engine.get_redaction_statistics(overlapping_regions)

        assert stats["total_regions"] == 2
        assert stats["source_counts"] == {"auto_face": 1, "manual": 1}
        assert stats["effect_counts"] == {"pixelation": 1, "gaussian": 1}
        assert stats["total_area_pixels"] == 40 * 30 + 40 * 40

    def test_statistics_clamped_area(self, engine):
        """With an image shape the area is measured after clamping."""
        regions = [Region("a", Rect(-10, -10, 10, 10), BlackBox())]
        stats = engine.get_redaction_statistics(regions, image_shape=(50, 50, 4))
        assert stats["total_area_pixels"] == 100

    def test_statistics_empty(self, engine):
        """Empty input gives zero counts."""
        stats = engine.get_redaction_statistics([])
        assert stats["total_regions"] == 0
        assert stats["total_area_pixels"] == 0
