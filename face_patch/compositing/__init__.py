"""
Compositing Module

Crop extraction, feathered compositing and before/after compare
rendering for generated face patches.

Components:
- extract_region: Native-coordinate crop with max-dimension downscaling
- FeatheredCompositor: Soft-edged patch blending
- CompareRenderer: Wipe-style before/after view with cached bitmaps
- Image utilities: decoding, encoding and resampling helpers
"""

from .crop import extract_region, compute_output_size, DEFAULT_MAX_DIM
from .feathering import (
    FeatheredCompositor,
    composite_patch,
    create_feather_mask,
    apply_alpha_mask,
    feather_width,
    DEFAULT_FEATHER_RATIO
)
from .compare import (
    CompareRenderer,
    BitmapCache,
    render_compare,
    clamp_fraction,
    divider_thickness,
    DEFAULT_SPLIT
)
from .utils import (
    load_image,
    save_image,
    decode_image_bytes,
    encode_png,
    ensure_bgra,
    ensure_bgr,
    resize_high_quality,
    bitmap_size
)

__version__ = "1.0.0"
__all__ = [
    "extract_region",
    "compute_output_size",
    "DEFAULT_MAX_DIM",
    "FeatheredCompositor",
    "composite_patch",
    "create_feather_mask",
    "apply_alpha_mask",
    "feather_width",
    "DEFAULT_FEATHER_RATIO",
    "CompareRenderer",
    "BitmapCache",
    "render_compare",
    "clamp_fraction",
    "divider_thickness",
    "DEFAULT_SPLIT",
    "load_image",
    "save_image",
    "decode_image_bytes",
    "encode_png",
    "ensure_bgra",
    "ensure_bgr",
    "resize_high_quality",
    "bitmap_size"
]
