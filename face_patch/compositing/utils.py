"""
Image Utilities

Decoding, encoding, channel normalisation and resampling helpers shared
by the crop, compositing and compare stages.
"""

import cv2
import numpy as np
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from ..errors import DecodeFailure

logger = logging.getLogger(__name__)


def is_valid_bitmap(image) -> bool:
    """True for a non-empty uint8 array with 1, 3 or 4 channels."""
    if not isinstance(image, np.ndarray) or image.size == 0:
        return False
    if image.dtype != np.uint8:
        return False
    if image.ndim == 2:
        return True
    return image.ndim == 3 and image.shape[2] in (1, 3, 4)


def bitmap_size(image: np.ndarray) -> Tuple[int, int]:
    """Natural (width, height) of a bitmap."""
    return image.shape[1], image.shape[0]


def ensure_bgra(image: np.ndarray) -> np.ndarray:
    """
    Convert a gray, BGR or BGRA bitmap to a new BGRA array.

    Args:
        image: Input bitmap

    Returns:
        BGRA copy of the image
    """
    if image.ndim == 2 or image.shape[2] == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return image.copy()


def ensure_bgr(image: np.ndarray) -> np.ndarray:
    """Convert a gray, BGR or BGRA bitmap to a new BGR array (alpha dropped)."""
    if image.ndim == 2 or image.shape[2] == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image.copy()


def resize_high_quality(image: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """
    Resample an image to ``size`` (width, height).

    Uses area averaging when shrinking and bicubic interpolation when
    enlarging. Returns a copy when the size is unchanged.
    """
    width, height = size
    if width <= 0 or height <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}")

    src_width, src_height = bitmap_size(image)
    if (src_width, src_height) == (width, height):
        return image.copy()

    if width <= src_width and height <= src_height:
        interpolation = cv2.INTER_AREA
    else:
        interpolation = cv2.INTER_CUBIC

    return cv2.resize(image, (width, height), interpolation=interpolation)


def decode_image_bytes(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes (PNG, JPEG, ...) into a BGRA bitmap.

    Raises:
        DecodeFailure: If the bytes are not a readable image
    """
    if not data:
        raise DecodeFailure("No image data to decode")

    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise DecodeFailure("Failed to load image data")

    return ensure_bgra(image)


def encode_png(image: np.ndarray) -> bytes:
    """Encode a bitmap as lossless PNG bytes."""
    ok, encoded = cv2.imencode('.png', image)
    if not ok:
        raise ValueError("PNG encoding failed")
    return encoded.tobytes()


def load_image(path: Union[str, Path], max_width: Optional[int] = None) -> np.ndarray:
    """
    Load an image file as a BGRA bitmap.

    Args:
        path: Image file path
        max_width: Downscale wider images to this width, keeping aspect ratio

    Returns:
        Decoded BGRA bitmap

    Raises:
        DecodeFailure: If the file is missing or cannot be decoded
    """
    image_path = Path(path)
    if not image_path.is_file():
        raise DecodeFailure(f"Image file not found: {path}")

    try:
        # np.fromfile + imdecode handles non-ASCII paths, unlike cv2.imread
        data = np.fromfile(str(image_path), dtype=np.uint8)
    except OSError as e:
        raise DecodeFailure(f"Failed to read image file {path}: {e}") from e

    image = decode_image_bytes(data.tobytes())

    width, height = bitmap_size(image)
    if max_width is not None and width > max_width:
        new_height = max(1, int(round(height * (max_width / width))))
        image = resize_high_quality(image, (max_width, new_height))
        logger.debug(f"Resized {image_path.name} from {width}x{height} to {max_width}x{new_height}")

    logger.info(f"Loaded image {image_path.name} ({image.shape[1]}x{image.shape[0]})")
    return image


def save_image(path: Union[str, Path], image: np.ndarray) -> None:
    """Write a bitmap to disk; format is chosen by the file extension."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    suffix = output_path.suffix.lower() or '.png'
    if suffix in ('.jpg', '.jpeg') and image.ndim == 3 and image.shape[2] == 4:
        image = ensure_bgr(image)
    ok, encoded = cv2.imencode(suffix, image)
    if not ok:
        raise ValueError(f"Cannot encode image as {suffix}")
    encoded.tofile(str(output_path))
    logger.info(f"Saved image: {output_path}")
