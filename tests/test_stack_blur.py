"""
Tests for the stack blur kernel.
"""

import threading

import numpy as np
import pytest

from photoredact.errors import RedactionCancelled
from photoredact.stack_blur import blur, build_divisor_table


def reference_blur(image: np.ndarray, radius: int) -> np.ndarray:
    """Direct triangular convolution with edge clamping and floor division."""
    divisor = (radius + 1) ** 2

    def one_pass(channels, axis):
        length = channels.shape[axis]
        positions = np.arange(length)
        total = np.zeros(channels.shape, dtype=np.int64)
        for i in range(-radius, radius + 1):
            taken = np.take(channels, np.clip(positions + i, 0, length - 1), axis=axis)
            total += taken * (radius + 1 - abs(i))
        return total // divisor

    rgb = image[:, :, :3].astype(np.int64)
    rgb = one_pass(one_pass(rgb, axis=1), axis=0)

    result = image.copy()
    result[:, :, :3] = rgb.astype(np.uint8)
    return result


@pytest.fixture
def textured_image():
    """Random RGBA image with varying alpha."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(23, 31, 4), dtype=np.uint8)


@pytest.fixture
def checkerboard():
    """Opaque black/white 2x2 checkerboard."""
    image = np.zeros((40, 40, 4), dtype=np.uint8)
    image[..., 3] = 255
    for y in range(40):
        for x in range(40):
            if (x // 2 + y // 2) % 2 == 0:
                image[y, x, :3] = 255
    return image


class TestDivisorTable:
    """Test the divisor lookup table."""

    def test_table_size(self):
        """Table covers every weighted sum of 8-bit values."""
        table = build_divisor_table(3)
        assert len(table) == 256 * 16

    def test_table_values(self):
        """Entries are floor divisions by (radius + 1) squared."""
        table = build_divisor_table(2)
        assert table[0] == 0
        assert table[8] == 0
        assert table[9] == 1
        assert table[255 * 9] == 255
        assert table[-1] == 255


class TestStackBlurIdentity:
    """Test edge cases that must leave the image alone."""

    @pytest.mark.parametrize("radius", [0, -1, -25])
    def test_radius_below_one_is_identity(self, textured_image, radius):
        """Radius < 1 returns identical pixels."""
        result = blur(textured_image, radius)
        np.testing.assert_array_equal(result, textured_image)

    def test_identity_returns_copy(self, textured_image):
        """Even the identity result is a new array."""
        result = blur(textured_image, 0)
        assert result is not textured_image
        result[0, 0] = 0
        assert not np.shares_memory(result, textured_image)

    @pytest.mark.parametrize("shape", [(0, 0, 4), (0, 10, 4), (10, 0, 4)])
    def test_empty_image(self, shape):
        """Zero-area images come back empty instead of failing."""
        image = np.zeros(shape, dtype=np.uint8)
        result = blur(image, 5)
        assert result.shape == shape

    def test_uniform_image_unchanged(self):
        """A flat colour stays exactly the same."""
        image = np.empty((30, 20, 4), dtype=np.uint8)
        image[...] = (200, 120, 7, 255)
        result = blur(image, 8)
        np.testing.assert_array_equal(result, image)

    def test_rejects_non_rgba(self):
        """Only (h, w, 4) arrays are accepted."""
        with pytest.raises(ValueError):
            blur(np.zeros((10, 10, 3), dtype=np.uint8), 3)


class TestStackBlurProperties:
    """Test stack blur output properties."""

    @pytest.mark.parametrize("radius", [1, 2, 5, 25])
    def test_shape_preserved(self, textured_image, radius):
        """Output has the same dimensions and dtype."""
        result = blur(textured_image, radius)
        assert result.shape == textured_image.shape
        assert result.dtype == np.uint8

    @pytest.mark.parametrize("radius", [1, 4, 12])
    def test_alpha_preserved(self, textured_image, radius):
        """Alpha channel is copied through pixel for pixel."""
        result = blur(textured_image, radius)
        np.testing.assert_array_equal(result[..., 3], textured_image[..., 3])

    @pytest.mark.parametrize("radius", [1, 2, 3, 7])
    def test_matches_triangular_convolution(self, textured_image, radius):
        """Sliding-window sums equal a direct triangular convolution."""
        np.testing.assert_array_equal(
            blur(textured_image, radius), reference_blur(textured_image, radius)
        )

    def test_radius_larger_than_image(self):
        """Windows wider than the image clamp to the edges."""
        rng = np.random.default_rng(7)
        image = rng.integers(0, 256, size=(3, 5, 4), dtype=np.uint8)
        np.testing.assert_array_equal(blur(image, 10), reference_blur(image, 10))

    def test_single_pixel(self):
        """A 1x1 image is its own blur."""
        image = np.array([[[10, 20, 30, 40]]], dtype=np.uint8)
        np.testing.assert_array_equal(blur(image, 4), image)

    def test_reduces_contrast(self, checkerboard):
        """Blurring a checkerboard pulls values towards the middle."""
        result = blur(checkerboard, 3)
        assert result[..., :3].std() < checkerboard[..., :3].std() / 4

    def test_deterministic(self, textured_image):
        """Same input, same output."""
        np.testing.assert_array_equal(blur(textured_image, 6), blur(textured_image, 6))

    def test_input_not_modified(self, textured_image):
        """The source array is left untouched."""
        before = textured_image.copy()
        blur(textured_image, 5)
        np.testing.assert_array_equal(textured_image, before)


class TestStackBlurCancellation:
    """Test cooperative cancellation."""

    def test_set_event_cancels(self, textured_image):
        """A set event stops the blur."""
        event = threading.Event()
        event.set()
        with pytest.raises(RedactionCancelled):
            blur(textured_image, 3, cancel_event=event)

    def test_clear_event_runs(self, textured_image):
        """An unset event does not change the result."""
        event = threading.Event()
        np.testing.assert_array_equal(
            blur(textured_image, 3, cancel_event=event), blur(textured_image, 3)
        )
