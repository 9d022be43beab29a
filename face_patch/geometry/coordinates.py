"""
Coordinate Mapping

Converts between display coordinates (pixels as rendered on screen) and
native coordinates (pixels of the full-resolution image). The display
rectangle changes on every layout change, so callers pass the current
one on each call instead of caching scale factors.
"""

import math
from dataclasses import dataclass
from typing import Tuple

from ..errors import InvalidRegion


@dataclass(frozen=True)
class Point:
    """2D point."""
    x: float
    y: float


@dataclass(frozen=True)
class DisplayRect:
    """On-screen rectangle an image is currently rendered into."""
    left: float
    top: float
    width: float
    height: float

    @property
    def origin(self) -> Point:
        return Point(self.left, self.top)

    def to_local(self, point: Point) -> Point:
        """Translate a display point so the rect origin becomes (0, 0)."""
        return Point(point.x - self.left, point.y - self.top)

    def from_local(self, point: Point) -> Point:
        return Point(point.x + self.left, point.y + self.top)


def scale_factors(display_rect: DisplayRect, natural_width: int,
                  natural_height: int) -> Tuple[float, float]:
    """
    Native pixels per display pixel along each axis.

    Raises:
        InvalidRegion: If the display rect or natural size is empty
    """
    if display_rect.width <= 0 or display_rect.height <= 0:
        raise InvalidRegion(
            f"Display rect must have positive size, got "
            f"{display_rect.width}x{display_rect.height}"
        )
    if natural_width <= 0 or natural_height <= 0:
        raise InvalidRegion(
            f"Natural size must be positive, got {natural_width}x{natural_height}"
        )
    return (natural_width / display_rect.width,
            natural_height / display_rect.height)


def to_native(display_point: Point, display_rect: DisplayRect,
              natural_width: int, natural_height: int) -> Point:
    """
    Map a display point to integer native pixel coordinates.

    Args:
        display_point: Point in display coordinates
        display_rect: Current on-screen rect of the image
        natural_width: Image width in native pixels
        natural_height: Image height in native pixels

    Returns:
        Point with floored integer coordinates
    """
    scale_x, scale_y = scale_factors(display_rect, natural_width, natural_height)
    local = display_rect.to_local(display_point)
    return Point(math.floor(local.x * scale_x), math.floor(local.y * scale_y))


def to_display(native_point: Point, display_rect: DisplayRect,
               natural_width: int, natural_height: int) -> Point:
    """
    Map a native point back to display coordinates (not rounded).

    Used for drawing overlays on top of the displayed image.
    """
    scale_x, scale_y = scale_factors(display_rect, natural_width, natural_height)
    return display_rect.from_local(
        Point(native_point.x / scale_x, native_point.y / scale_y)
    )


def fit_display_rect(natural_width: int, natural_height: int,
                     max_width: int, max_height: int) -> DisplayRect:
    """
    Largest rect at the origin that shows the whole image within the limits.

    Never upscales; aspect ratio is preserved up to integer rounding.
    """
    scale = min(1.0, max_width / natural_width, max_height / natural_height)
    width = max(1, int(round(natural_width * scale)))
    height = max(1, int(round(natural_height * scale)))
    return DisplayRect(0, 0, width, height)
