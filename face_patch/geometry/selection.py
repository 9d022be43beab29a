"""
Square Selection

Turns a pointer drag over the displayed image into a square selection in
native image coordinates. The gesture logic is an explicit state machine:
``transition`` takes the current state and an event and returns the next
state plus the selection notifications to deliver. ``SquareSelector``
wraps it for callers that want a mutable object with a change callback.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

from ..errors import InvalidRegion
from .coordinates import DisplayRect, Point, scale_factors, to_native

logger = logging.getLogger(__name__)

MIN_SELECTION_SIZE = 50


@dataclass(frozen=True)
class SelectionBox:
    """Square region in native image pixels."""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def is_square(self) -> bool:
        return self.width == self.height

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)

    def fits_within(self, natural_width: int, natural_height: int) -> bool:
        return (self.x >= 0 and self.y >= 0 and
                self.width > 0 and self.height > 0 and
                self.right <= natural_width and self.bottom <= natural_height)

    def validate(self, natural_width: int, natural_height: int) -> None:
        """
        Check the committed-selection invariants.

        Raises:
            InvalidRegion: If the box is not a positive square inside the image
        """
        if not self.is_square:
            raise InvalidRegion(f"Selection must be square, got {self.width}x{self.height}")
        if not self.fits_within(natural_width, natural_height):
            raise InvalidRegion(
                f"Selection {self.as_tuple()} outside image "
                f"{natural_width}x{natural_height}"
            )


@dataclass(frozen=True)
class ImageGeometry:
    """Where an image is displayed right now and its native size."""
    display_rect: DisplayRect
    natural_width: int
    natural_height: int


# Gesture events

@dataclass(frozen=True)
class GestureStart:
    point: Point
    geometry: ImageGeometry


@dataclass(frozen=True)
class GestureMove:
    point: Point
    geometry: ImageGeometry


@dataclass(frozen=True)
class GestureEnd:
    pass


@dataclass(frozen=True)
class ImageLoaded:
    pass


GestureEvent = Union[GestureStart, GestureMove, GestureEnd, ImageLoaded]


# Selector states

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    """Gesture in progress; ``anchor`` is relative to the display rect origin."""
    anchor: Point
    live_box: Optional[SelectionBox] = None


@dataclass(frozen=True)
class Committed:
    box: SelectionBox


SelectorState = Union[Idle, Dragging, Committed]


@dataclass(frozen=True)
class Transition:
    """Next state and the selection values to report, in order."""
    state: SelectorState
    notifications: Tuple[Optional[SelectionBox], ...] = ()


def square_from_drag(anchor: Point, current: Point,
                     geometry: ImageGeometry) -> Optional[SelectionBox]:
    """
    Build the native square for a drag from ``anchor`` to ``current``.

    Both points are display coordinates relative to the display rect
    origin. The square side is the larger of the two drag deltas and the
    square grows away from the anchor in the drag direction. The top-left
    is clamped to the image origin, then the side is shrunk so the square
    ends inside the image. Native height is always set from the native
    width so the result stays square under non-uniform display scaling.

    Returns:
        SelectionBox, or None if nothing of the square lies inside the image
    """
    dx = current.x - anchor.x
    dy = current.y - anchor.y
    size = max(abs(dx), abs(dy))

    origin_x = anchor.x - size if dx < 0 else anchor.x
    origin_y = anchor.y - size if dy < 0 else anchor.y
    origin_x = max(origin_x, 0.0)
    origin_y = max(origin_y, 0.0)

    rect = geometry.display_rect
    native_origin = to_native(rect.from_local(Point(origin_x, origin_y)), rect,
                              geometry.natural_width, geometry.natural_height)
    scale_x, _ = scale_factors(rect, geometry.natural_width, geometry.natural_height)

    side = math.floor(size * scale_x)
    side = min(side,
               geometry.natural_width - native_origin.x,
               geometry.natural_height - native_origin.y)
    if side <= 0:
        return None

    return SelectionBox(int(native_origin.x), int(native_origin.y), side, side)


def transition(state: SelectorState, event: GestureEvent,
               min_size: int = MIN_SELECTION_SIZE) -> Transition:
    """
    Advance the selector state machine by one event.

    Args:
        state: Current selector state
        event: Gesture or image event
        min_size: Committed boxes must be strictly wider than this (native px)

    Returns:
        Transition with the next state and notifications to deliver
    """
    if isinstance(event, ImageLoaded):
        if isinstance(state, Idle):
            return Transition(Idle())
        return Transition(Idle(), (None,))

    if isinstance(event, GestureStart):
        anchor = event.geometry.display_rect.to_local(event.point)
        return Transition(Dragging(anchor), (None,))

    if isinstance(event, GestureMove):
        if not isinstance(state, Dragging):
            return Transition(state)
        current = event.geometry.display_rect.to_local(event.point)
        box = square_from_drag(state.anchor, current, event.geometry)
        return Transition(Dragging(state.anchor, box))

    if isinstance(event, GestureEnd):
        if not isinstance(state, Dragging):
            return Transition(state)
        box = state.live_box
        if box is None:
            return Transition(Idle())
        if box.width > min_size:
            return Transition(Committed(box), (box,))
        logger.debug(f"Discarding selection {box.as_tuple()}: not wider than {min_size}px")
        return Transition(Idle(), (None,))

    raise TypeError(f"Unknown gesture event: {event!r}")


class SquareSelector:
    """
    Stateful wrapper around the selection state machine.

    Reports every selection change (a committed box or ``None``) to the
    ``on_change`` callback.
    """

    def __init__(self, on_change: Optional[Callable[[Optional[SelectionBox]], None]] = None,
                 min_size: int = MIN_SELECTION_SIZE):
        self.on_change = on_change
        self.min_size = min_size
        self.state: SelectorState = Idle()

    @property
    def box(self) -> Optional[SelectionBox]:
        """Committed selection, if any."""
        if isinstance(self.state, Committed):
            return self.state.box
        return None

    @property
    def live_box(self) -> Optional[SelectionBox]:
        """Box to draw right now: the drag preview or the committed box."""
        if isinstance(self.state, Dragging):
            return self.state.live_box
        return self.box

    @property
    def is_dragging(self) -> bool:
        return isinstance(self.state, Dragging)

    def dispatch(self, event: GestureEvent) -> SelectorState:
        result = transition(self.state, event, self.min_size)
        self.state = result.state
        for box in result.notifications:
            if self.on_change is not None:
                self.on_change(box)
        return self.state

    def start(self, point: Point, geometry: ImageGeometry) -> SelectorState:
        return self.dispatch(GestureStart(point, geometry))

    def move(self, point: Point, geometry: ImageGeometry) -> SelectorState:
        return self.dispatch(GestureMove(point, geometry))

    def end(self) -> SelectorState:
        return self.dispatch(GestureEnd())

    def reset(self) -> SelectorState:
        """Drop any selection, e.g. when a new image is loaded."""
        return self.dispatch(ImageLoaded())
