"""
Crop Extraction

Cuts a native-coordinate rectangle out of a bitmap for the generation
request, downscaling large regions so the longer side fits ``max_dim``.
"""

import logging
from typing import Tuple

import numpy as np

from ..errors import InvalidRegion
from ..geometry import SelectionBox
from .utils import bitmap_size, ensure_bgra, is_valid_bitmap, resize_high_quality

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIM = 1024


def compute_output_size(width: int, height: int,
                        max_dim: int = DEFAULT_MAX_DIM) -> Tuple[int, int]:
    """
    Output size for a crop of ``width`` x ``height``.

    If the longer side exceeds ``max_dim`` the crop is scaled down so the
    longer side equals ``max_dim``, keeping the aspect ratio.
    """
    if width <= 0 or height <= 0:
        raise InvalidRegion(f"Crop size must be positive, got {width}x{height}")
    if max_dim <= 0:
        raise ValueError("max_dim must be positive")

    if max(width, height) <= max_dim:
        return width, height

    ratio = width / height
    if width >= height:
        return max_dim, max(1, int(round(max_dim / ratio)))
    return max(1, int(round(max_dim * ratio))), max_dim


def extract_region(source: np.ndarray, box: SelectionBox,
                   max_dim: int = DEFAULT_MAX_DIM) -> np.ndarray:
    """
    Extract ``box`` from ``source`` into a new BGRA bitmap.

    Args:
        source: Source bitmap
        box: Region in native pixels; any rectangle inside the image
        max_dim: Upper bound for the longer output side

    Returns:
        BGRA bitmap of the region, resampled if it was larger than max_dim

    Raises:
        InvalidRegion: If the box is empty or not inside the source
    """
    if not is_valid_bitmap(source):
        raise InvalidRegion("Source image is empty or not an 8-bit bitmap")

    natural_width, natural_height = bitmap_size(source)
    if not box.fits_within(natural_width, natural_height):
        raise InvalidRegion(
            f"Crop {box.as_tuple()} outside image {natural_width}x{natural_height}"
        )

    region = source[box.y:box.bottom, box.x:box.right]
    output_size = compute_output_size(box.width, box.height, max_dim)
    crop = resize_high_quality(ensure_bgra(region), output_size)

    logger.debug(f"Extracted crop {box.as_tuple()} -> {output_size[0]}x{output_size[1]}")
    return crop
