"""
Stack blur: a linear-time approximation of Gaussian blur.

The kernel runs two separable passes, first along every row and then along
every column of the row pass output. Each pass slides a window of
``2 * radius + 1`` pixels and keeps three running sums per channel:

- the triangular-weighted total (centre weight ``radius + 1``, edges 1)
- the sum of the pixels entering the window (right of the centre)
- the sum of the pixels leaving the window (centre and left of it)

A ring buffer (the "stack") remembers the pixels inside the window, so moving
the window one step costs the same regardless of the radius. The weighted
total is mapped back to a channel value through a divisor lookup table
instead of a division. Reads past the image edge clamp to the edge pixel.

Every step of a pass processes all rows (or columns) at once as numpy
vectors, so the Python-level loop runs ``width + height`` times per blur.

Example:
    >>> import numpy as np
    >>> image = np.zeros((64, 64, 4), dtype=np.uint8)
    >>> blurred = blur(image, radius=10)
"""

import threading
from typing import Optional

import numpy as np

from .errors import RedactionCancelled
from .logger import get_logger

logger = get_logger(__name__)


def build_divisor_table(radius: int) -> np.ndarray:
    """
    Build the lookup table mapping weighted sums to averaged channel values.

    The triangular weights of a window sum to ``(radius + 1) ** 2``; the
    table has ``256 * (radius + 1) ** 2`` entries so any weighted sum of
    8-bit values indexes it directly.

    Args:
        radius: Blur radius (>= 1)

    Returns:
        int64 array where ``table[i] == i // (radius + 1) ** 2``
    """
    divisor = (radius + 1) * (radius + 1)
    return np.arange(256 * divisor, dtype=np.int64) // divisor


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise RedactionCancelled("Blur cancelled")


def _blur_lines(
    src: np.ndarray,
    radius: int,
    table: np.ndarray,
    cancel_event: Optional[threading.Event] = None
) -> np.ndarray:
    """
    Run one stack blur pass along axis 1 of ``src``.

    Args:
        src: int64 array of shape (lines, length, channels)
        radius: Blur radius (>= 1)
        table: Divisor table from build_divisor_table(radius)
        cancel_event: Checked once per window step

    Returns:
        Blurred array with the same shape as ``src``
    """
    lines, length, channels = src.shape
    last = length - 1
    div = radius + radius + 1
    r1 = radius + 1

    out = np.empty_like(src)
    stack = np.empty((div, lines, channels), dtype=np.int64)
    total = np.zeros((lines, channels), dtype=np.int64)
    in_sum = np.zeros_like(total)
    out_sum = np.zeros_like(total)

    # Prime the window centred on the first pixel
    for i in range(-radius, radius + 1):
        pixel = src[:, min(last, max(i, 0))]
        stack[i + radius] = pixel
        total += pixel * (r1 - abs(i))
        if i > 0:
            in_sum += pixel
        else:
            out_sum += pixel

    stack_pointer = radius
    for x in range(length):
        _check_cancelled(cancel_event)

        out[:, x] = table[total]

        total -= out_sum

        # Oldest entry leaves the window and is replaced by the incoming pixel
        entry = stack[(stack_pointer - radius + div) % div]
        out_sum -= entry
        entry[...] = src[:, min(x + r1, last)]
        in_sum += entry
        total += in_sum

        # The next centre pixel moves from the incoming to the outgoing side
        stack_pointer = (stack_pointer + 1) % div
        entry = stack[stack_pointer]
        out_sum += entry
        in_sum -= entry

    return out


def blur(
    image: np.ndarray,
    radius: int,
    cancel_event: Optional[threading.Event] = None
) -> np.ndarray:
    """
    Blur an RGBA image with the two-pass stack blur.

    Args:
        image: uint8 array of shape (height, width, 4), RGBA
        radius: Blur radius in pixels. Values below 1 return an unchanged copy
        cancel_event: Optional event; when set the blur stops with
                      RedactionCancelled

    Returns:
        New uint8 array of the same shape. Alpha is copied through.

    Raises:
        ValueError: If image is not a (height, width, 4) array
        RedactionCancelled: If cancel_event is set while blurring
    """
    if image.ndim != 3 or image.shape[2] != 4:
        raise ValueError(f"Expected RGBA image of shape (h, w, 4), got {image.shape}")

    result = image.copy()
    height, width = image.shape[:2]
    radius = int(radius)

    if radius < 1 or width == 0 or height == 0:
        return result

    table = build_divisor_table(radius)
    rgb = image[:, :, :3].astype(np.int64)

    horizontal = _blur_lines(rgb, radius, table, cancel_event)
    columns = np.ascontiguousarray(horizontal.transpose(1, 0, 2))
    vertical = _blur_lines(columns, radius, table, cancel_event)

    result[:, :, :3] = vertical.transpose(1, 0, 2).astype(np.uint8)
    logger.debug("Stack blur radius=%d over %dx%d", radius, width, height)
    return result
