"""
Feathered Compositing

Blends a generated patch back into the full reference image. The patch
edge is softened with an explicit alpha mask: opaque in the centre,
linear ramps along the four edge bands and radial ramps in the corners.
The mask math lives in plain numpy functions so it can be checked
without drawing anything.
"""

import cv2
import numpy as np
import logging
from typing import Tuple

from ..errors import CompositeFailure
from ..geometry import SelectionBox
from .utils import bitmap_size, ensure_bgra, is_valid_bitmap, resize_high_quality

logger = logging.getLogger(__name__)

DEFAULT_FEATHER_RATIO = 0.15


def feather_width(width: int, height: int,
                  ratio: float = DEFAULT_FEATHER_RATIO) -> float:
    """Width of the soft border in patch pixels."""
    return ratio * min(width, height)


def create_feather_mask(width: int, height: int,
                        ratio: float = DEFAULT_FEATHER_RATIO) -> np.ndarray:
    """
    Create the feathering alpha mask for a patch.

    For each pixel centre, ``ux``/``uy`` measure how far it lies beyond the
    inset boundary (``feather`` from each side) horizontally and
    vertically. In the edge bands only one of them is non-zero and the
    opacity ramps linearly; in the corners both are, and
    ``hypot(ux, uy)`` gives the radial ramp around the inset corner.

    Args:
        width: Patch width in pixels
        height: Patch height in pixels
        ratio: Feather width as a fraction of the shorter side

    Returns:
        float32 array of shape (height, width) with values in [0, 1]
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Mask size must be positive, got {width}x{height}")

    feather = feather_width(width, height, ratio)
    if feather <= 0:
        return np.ones((height, width), dtype=np.float32)

    xs = np.arange(width, dtype=np.float32) + 0.5
    ys = np.arange(height, dtype=np.float32) + 0.5

    ux = np.maximum(feather - np.minimum(xs, width - xs), 0.0)
    uy = np.maximum(feather - np.minimum(ys, height - ys), 0.0)

    distance = np.hypot(ux[np.newaxis, :], uy[:, np.newaxis])
    mask = np.clip(1.0 - distance / feather, 0.0, 1.0)

    return mask.astype(np.float32)


def apply_alpha_mask(patch: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """
    Multiply a patch's alpha channel by ``mask``.

    Args:
        patch: Patch bitmap (any channel layout)
        mask: float mask in [0, 1] matching the patch size

    Returns:
        New BGRA bitmap with the masked alpha
    """
    masked = ensure_bgra(patch)
    if mask.shape != masked.shape[:2]:
        raise ValueError(
            f"Mask shape {mask.shape} does not match patch shape {masked.shape[:2]}"
        )

    alpha = masked[:, :, 3].astype(np.float32) * mask
    masked[:, :, 3] = np.clip(np.rint(alpha), 0, 255).astype(np.uint8)
    return masked


def _target_rect(box: SelectionBox) -> Tuple[int, int, int, int]:
    return (int(round(box.x)), int(round(box.y)),
            int(round(box.width)), int(round(box.height)))


class FeatheredCompositor:
    """
    Composites a masked patch onto a base image.

    The output is always rebuilt from a copy of the base, so the same
    inputs always give the same pixels and nothing outside the target
    rectangle is touched.
    """

    def __init__(self, feather_ratio: float = DEFAULT_FEATHER_RATIO):
        """
        Initialize compositor.

        Args:
            feather_ratio: Soft border width as a fraction of the patch's shorter side
        """
        if not 0.0 <= feather_ratio <= 0.5:
            raise ValueError("Feather ratio must be between 0.0 and 0.5")
        self.feather_ratio = feather_ratio

    def composite(self, base: np.ndarray, patch: np.ndarray,
                  target_box: SelectionBox) -> np.ndarray:
        """
        Blend ``patch`` into ``base`` over ``target_box``.

        Args:
            base: Full-resolution reference bitmap
            patch: Generated replacement, any resolution
            target_box: Native rectangle the patch is scaled into

        Returns:
            New bitmap with the same shape as ``base``

        Raises:
            CompositeFailure: If the inputs are unusable or drawing fails
        """
        if not is_valid_bitmap(base):
            raise CompositeFailure("Base image is empty or not an 8-bit bitmap")
        if not is_valid_bitmap(patch):
            raise CompositeFailure("Patch image is empty or not an 8-bit bitmap")

        target_x, target_y, target_w, target_h = _target_rect(target_box)
        if target_w <= 0 or target_h <= 0:
            raise CompositeFailure(f"Target box has no area: {target_box.as_tuple()}")

        output = base.copy()
        if output.ndim == 2:
            output = output[:, :, np.newaxis]

        try:
            patch_w, patch_h = bitmap_size(patch)
            mask = create_feather_mask(patch_w, patch_h, self.feather_ratio)
            masked = apply_alpha_mask(patch, mask)

            # Resample premultiplied colour so transparent pixels don't bleed in
            alpha = masked[:, :, 3].astype(np.float32) / 255.0
            premultiplied = masked[:, :, :3].astype(np.float32) * alpha[:, :, np.newaxis]

            scaled_color = resize_high_quality(premultiplied, (target_w, target_h))
            scaled_alpha = resize_high_quality(alpha, (target_w, target_h))
            scaled_alpha = np.clip(scaled_alpha, 0.0, 1.0)
            scaled_color = np.clip(scaled_color, 0.0, 255.0 * scaled_alpha[:, :, np.newaxis])

            self._draw(output, scaled_color, scaled_alpha, target_x, target_y)

        except cv2.error as e:
            raise CompositeFailure(f"Drawing the feathered patch failed: {e}") from e
        except ValueError as e:
            raise CompositeFailure(str(e)) from e

        if base.ndim == 2:
            output = output[:, :, 0]

        logger.debug(
            f"Composited {patch.shape[1]}x{patch.shape[0]} patch into "
            f"({target_x}, {target_y}, {target_w}, {target_h})"
        )
        return output

    def _draw(self, output: np.ndarray, color: np.ndarray, alpha: np.ndarray,
              target_x: int, target_y: int) -> None:
        """Source-over draw of premultiplied ``color``/``alpha`` at the target, clipped."""
        out_h, out_w = output.shape[:2]
        patch_h, patch_w = alpha.shape

        x0, y0 = max(target_x, 0), max(target_y, 0)
        x1, y1 = min(target_x + patch_w, out_w), min(target_y + patch_h, out_h)
        if x0 >= x1 or y0 >= y1:
            logger.warning("Target box lies entirely outside the base image")
            return

        src = (slice(y0 - target_y, y1 - target_y), slice(x0 - target_x, x1 - target_x))
        dst = (slice(y0, y1), slice(x0, x1))

        a = alpha[src][:, :, np.newaxis]
        region = output[dst].astype(np.float32)
        channels = region.shape[2]

        if channels == 1:
            gray = cv2.cvtColor(color[src], cv2.COLOR_BGR2GRAY)[:, :, np.newaxis]
            blended = gray + region * (1.0 - a)
        else:
            blended = region.copy()
            blended[:, :, :3] = color[src] + region[:, :, :3] * (1.0 - a)
            if channels == 4:
                blended[:, :, 3:] = 255.0 * a + region[:, :, 3:] * (1.0 - a)

        output[dst] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def composite_patch(base: np.ndarray, patch: np.ndarray, target_box: SelectionBox,
                    feather_ratio: float = DEFAULT_FEATHER_RATIO) -> np.ndarray:
    """Functional shortcut for ``FeatheredCompositor(feather_ratio).composite(...)``."""
    return FeatheredCompositor(feather_ratio).composite(base, patch, target_box)
