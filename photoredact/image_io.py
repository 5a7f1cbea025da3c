"""
Image loading and export for the redaction engine.

Images enter the engine as uint8 RGBA numpy arrays of shape
(height, width, 4), orientation-corrected and limited in size, and leave it
as JPEG or PNG files.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image, ImageOps

from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_DIMENSION = 2048
DEFAULT_JPEG_QUALITY = 95


def calculate_sample_size(width: int, height: int, max_dimension: int) -> int:
    """
    Largest power-of-two sample size that keeps both halves of the image at
    least ``max_dimension`` pixels once divided.

    Returns 1 when the image already fits.
    """
    sample_size = 1
    if width > max_dimension or height > max_dimension:
        half_width = width // 2
        half_height = height // 2
        while (half_height // sample_size >= max_dimension and
               half_width // sample_size >= max_dimension):
            sample_size *= 2
    return sample_size


def load_image(
    image_path: Union[str, Path],
    max_dimension: Optional[int] = DEFAULT_MAX_DIMENSION
) -> np.ndarray:
    """
    Load an image file as an RGBA array.

    EXIF orientation is applied, so the array is upright. Large images are
    downscaled by a power-of-two sample size.

    Args:
        image_path: Path to the image file
        max_dimension: Target longest edge; None disables downscaling

    Returns:
        uint8 array of shape (height, width, 4)

    Raises:
        FileNotFoundError: If image_path does not exist
    """
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    with Image.open(image_path) as pil_image:
        pil_image = ImageOps.exif_transpose(pil_image)
        rgba = from_pil(pil_image)

    if max_dimension:
        rgba = downscale(rgba, max_dimension)

    return rgba


def downscale(image: np.ndarray, max_dimension: int) -> np.ndarray:
    """
    Shrink ``image`` by the power-of-two sample size for ``max_dimension``.

    Returns the input array itself when no shrinking is needed.
    """
    height, width = image.shape[:2]
    sample_size = calculate_sample_size(width, height, max_dimension)
    if sample_size == 1:
        return image

    new_size = (max(1, width // sample_size), max(1, height // sample_size))
    logger.debug(
        "Downscaling %dx%d to %dx%d", width, height, new_size[0], new_size[1]
    )
    return cv2.resize(image, new_size, interpolation=cv2.INTER_AREA)


def from_pil(pil_image: Image.Image) -> np.ndarray:
    """Convert a PIL image to an RGBA array."""
    return np.array(pil_image.convert("RGBA"))


def to_pil(image: np.ndarray) -> Image.Image:
    """Convert an RGBA array to a PIL image."""
    return Image.fromarray(np.ascontiguousarray(image))


def new_image(
    width: int,
    height: int,
    color: Tuple[int, int, int, int] = (255, 255, 255, 255)
) -> np.ndarray:
    """Create a solid RGBA image."""
    image = np.empty((height, width, 4), dtype=np.uint8)
    image[...] = color
    return image


def save_image(
    image: np.ndarray,
    output_path: Union[str, Path],
    quality: int = DEFAULT_JPEG_QUALITY
) -> Path:
    """
    Save an RGBA array to file.

    JPEG output drops the alpha channel; other formats keep RGBA.

    Args:
        image: uint8 array of shape (height, width, 4)
        output_path: Destination; the format follows the suffix
        quality: JPEG quality (1-95 recommended)

    Returns:
        The path written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    pil_image = to_pil(image)
    try:
        if output_path.suffix.lower() in (".jpg", ".jpeg"):
            pil_image.convert("RGB").save(output_path, format="JPEG", quality=quality)
        else:
            pil_image.save(output_path)
    except Exception as e:
        logger.error(f"Failed to save image to {output_path}: {e}")
        raise

    logger.info(f"Saved redacted image to {output_path}")
    return output_path


def generate_export_filename(
    prefix: str = "Redacted",
    now: Optional[datetime] = None
) -> str:
    """Timestamped export file name, e.g. ``Redacted_20240131_142501.jpg``."""
    now = now or datetime.now()
    return f"{prefix}_{now.strftime('%Y%m%d_%H%M%S')}.jpg"
