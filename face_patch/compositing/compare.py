"""
Compare Rendering

Wipe-style before/after view: the composite is shown left of the split
line and the original reference to the right of it. ``CompareRenderer``
keeps display-ready copies of both bitmaps keyed by their identity so
dragging the split only slices arrays and never re-converts images.
"""

import logging
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

import numpy as np

from ..errors import CompositeFailure
from .utils import ensure_bgr

logger = logging.getLogger(__name__)

DEFAULT_SPLIT = 0.5
DIVIDER_BASE_WIDTH = 4
DIVIDER_REFERENCE_WIDTH = 800
DIVIDER_COLOR = (255, 255, 255)


def clamp_fraction(value: float) -> float:
    """Clamp a split fraction into [0, 1]; NaN becomes 0."""
    if value != value:
        return 0.0
    return min(1.0, max(0.0, float(value)))


def divider_thickness(image_width: int, base_width: float = DIVIDER_BASE_WIDTH,
                      reference_width: float = DIVIDER_REFERENCE_WIDTH) -> int:
    """Divider stroke width, proportional to the image width."""
    return max(1, int(round(base_width * image_width / reference_width)))


def split_column(image_width: int, split_fraction: float) -> int:
    """Column where the composite stops and the base starts."""
    return int(round(clamp_fraction(split_fraction) * image_width))


def draw_divider(canvas: np.ndarray, x: int, thickness: int,
                 color: Tuple[int, int, int] = DIVIDER_COLOR) -> None:
    """Paint a vertical bar of ``thickness`` columns centred on ``x`` in place."""
    width = canvas.shape[1]
    # Kept fully on the canvas at either extreme
    left = min(max(0, x - thickness // 2), max(0, width - thickness))
    right = min(width, left + thickness)
    if left < right:
        canvas[:, left:right] = color


def render_compare(base: np.ndarray, composite: Optional[np.ndarray],
                   split_fraction: float,
                   divider_base_width: float = DIVIDER_BASE_WIDTH,
                   divider_reference_width: float = DIVIDER_REFERENCE_WIDTH,
                   color: Tuple[int, int, int] = DIVIDER_COLOR) -> np.ndarray:
    """
    Render the compare view into a new BGR bitmap.

    Args:
        base: Original reference bitmap
        composite: Composited result with the same size, or None
        split_fraction: Share of the width showing the composite, clamped to [0, 1]

    Returns:
        BGR canvas the size of ``base``
    """
    return _render(ensure_bgr(base),
                   None if composite is None else ensure_bgr(composite),
                   split_fraction, divider_base_width, divider_reference_width, color)


def _render(base_bgr: np.ndarray, composite_bgr: Optional[np.ndarray],
            split_fraction: float, divider_base_width: float,
            divider_reference_width: float, color: Tuple[int, int, int]) -> np.ndarray:
    canvas = base_bgr.copy()
    if composite_bgr is None:
        return canvas

    if composite_bgr.shape != base_bgr.shape:
        raise CompositeFailure(
            f"Composite shape {composite_bgr.shape[:2]} does not match "
            f"base shape {base_bgr.shape[:2]}"
        )

    width = canvas.shape[1]
    split_x = split_column(width, split_fraction)
    canvas[:, :split_x] = composite_bgr[:, :split_x]

    thickness = divider_thickness(width, divider_base_width, divider_reference_width)
    draw_divider(canvas, split_x, thickness, color)
    return canvas


class BitmapCache:
    """
    Small cache of derived bitmaps keyed by content identity.

    An entry is reused while its key is unchanged; callers invalidate it
    explicitly when the underlying image is replaced.
    """

    def __init__(self):
        self._entries: Dict[str, Tuple[Hashable, Any]] = {}

    def get(self, slot: str, key: Hashable, factory: Callable[[], Any]) -> Any:
        """Return the cached value for ``slot`` if built for ``key``, else rebuild it."""
        entry = self._entries.get(slot)
        if entry is not None and entry[0] == key:
            return entry[1]
        value = factory()
        self._entries[slot] = (key, value)
        logger.debug(f"Cache slot '{slot}' rebuilt for key {key!r}")
        return value

    def key_of(self, slot: str) -> Optional[Hashable]:
        entry = self._entries.get(slot)
        return None if entry is None else entry[0]

    def invalidate(self, slot: Optional[str] = None) -> None:
        """Drop one slot, or every slot when ``slot`` is None."""
        if slot is None:
            self._entries.clear()
        else:
            self._entries.pop(slot, None)

    def __contains__(self, slot: str) -> bool:
        return slot in self._entries


class CompareRenderer:
    """
    Re-renders the compare view whenever the split moves.

    Base and composite are converted once per identity key and cached
    until replaced.
    """

    def __init__(self, divider_base_width: float = DIVIDER_BASE_WIDTH,
                 divider_reference_width: float = DIVIDER_REFERENCE_WIDTH,
                 divider_color: Tuple[int, int, int] = DIVIDER_COLOR):
        self.divider_base_width = divider_base_width
        self.divider_reference_width = divider_reference_width
        self.divider_color = divider_color
        self.cache = BitmapCache()
        self._base_key: Optional[Hashable] = None
        self._base: Optional[np.ndarray] = None
        self._composite_key: Optional[Hashable] = None
        self._composite: Optional[np.ndarray] = None

    def set_base(self, key: Hashable, base: Optional[np.ndarray]) -> None:
        """Set the reference bitmap; a different key invalidates the cached copy."""
        if key != self._base_key:
            self.cache.invalidate('base')
        self._base_key = key
        self._base = base

    def set_composite(self, key: Optional[Hashable], composite: Optional[np.ndarray]) -> None:
        """Set the composite bitmap, or clear it with ``None``."""
        if composite is None or key != self._composite_key:
            self.cache.invalidate('composite')
        self._composite_key = key
        self._composite = composite

    @property
    def has_composite(self) -> bool:
        return self._composite is not None

    def render(self, split_fraction: float) -> Optional[np.ndarray]:
        """
        Render the current pair at ``split_fraction``.

        Returns:
            BGR canvas, or None if no base image is set
        """
        if self._base is None:
            return None

        base_bgr = self.cache.get('base', self._base_key, lambda: ensure_bgr(self._base))
        composite_bgr = None
        if self._composite is not None:
            composite_bgr = self.cache.get(
                'composite', self._composite_key, lambda: ensure_bgr(self._composite)
            )

        return _render(base_bgr, composite_bgr, split_fraction,
                       self.divider_base_width, self.divider_reference_width,
                       self.divider_color)
