"""
Geometry Module

Coordinate mapping between display and native image pixels and the
square selection state machine driven by pointer gestures.

Components:
- Point, DisplayRect: Basic geometry types
- to_native / to_display: Coordinate mapper
- SelectionBox: Square selection in native pixels
- SquareSelector: Drag gesture state machine
"""

from .coordinates import (
    Point,
    DisplayRect,
    scale_factors,
    to_native,
    to_display,
    fit_display_rect
)
from .selection import (
    SelectionBox,
    ImageGeometry,
    SquareSelector,
    Idle,
    Dragging,
    Committed,
    GestureStart,
    GestureMove,
    GestureEnd,
    ImageLoaded,
    Transition,
    transition,
    square_from_drag,
    MIN_SELECTION_SIZE
)

__version__ = "1.0.0"
__all__ = [
    "Point",
    "DisplayRect",
    "scale_factors",
    "to_native",
    "to_display",
    "fit_display_rect",
    "SelectionBox",
    "ImageGeometry",
    "SquareSelector",
    "Idle",
    "Dragging",
    "Committed",
    "GestureStart",
    "GestureMove",
    "GestureEnd",
    "ImageLoaded",
    "Transition",
    "transition",
    "square_from_drag",
    "MIN_SELECTION_SIZE"
]
