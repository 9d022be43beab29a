"""
Interactive Viewer

OpenCV HighGUI window for one editing session. The reference is shown
scaled to fit the screen; dragging selects the square region, ``g``
generates, and once a composite exists dragging (or the ``split``
trackbar) moves the before/after divider.

Keys: g generate, c clear result, s save result, q / Esc quit.
"""

import cv2
import numpy as np
import logging
from pathlib import Path
from typing import Optional

from ..compositing import save_image
from ..editor import EditSession
from ..geometry import DisplayRect, Point, fit_display_rect, to_display

logger = logging.getLogger(__name__)

WINDOW_NAME = "Face Patch"
TRACKBAR_NAME = "split %"
SELECTION_COLOR = (11, 158, 245)  # BGR amber
TEXT_COLOR = (255, 255, 255)


class PatchViewer:
    """
    Window loop driving an ``EditSession``.

    The loop is the UI thread: it forwards mouse events, polls the
    session for finished generations and redraws every frame.
    """

    def __init__(self, session: EditSession, output_path: Optional[str] = None,
                 frame_delay_ms: int = 15):
        self.session = session
        self.output_path = output_path
        self.frame_delay_ms = frame_delay_ms
        self.running = False
        self._trackbar_value = -1
        self._frame_key = None
        self._frame_cache: Optional[np.ndarray] = None

    def display_rect(self) -> Optional[DisplayRect]:
        """Current on-screen rect of the reference; recomputed on every use."""
        if self.session.reference is None:
            return None
        height, width = self.session.reference.shape[:2]
        config = self.session.config
        return fit_display_rect(width, height, config.display_max_width,
                                config.display_max_height)

    # -- input ---------------------------------------------------------

    def on_mouse(self, event: int, x: int, y: int, flags: int, param=None) -> None:
        rect = self.display_rect()
        if rect is None:
            return
        point = Point(x, y)

        if self.session.composite is not None:
            if event == cv2.EVENT_LBUTTONDOWN or (
                    event == cv2.EVENT_MOUSEMOVE and flags & cv2.EVENT_FLAG_LBUTTON):
                self.session.set_split((x - rect.left) / rect.width)
            return

        if event == cv2.EVENT_LBUTTONDOWN:
            self.session.pointer_down(point, rect)
        elif event == cv2.EVENT_MOUSEMOVE:
            self.session.pointer_move(point, rect)
        elif event == cv2.EVENT_LBUTTONUP:
            self.session.pointer_up()

    def on_trackbar(self, value: int) -> None:
        self._trackbar_value = value
        self.session.set_split(value / 100.0)

    def handle_key(self, key: int) -> None:
        if key in (ord('q'), 27):
            self.running = False
        elif key == ord('g'):
            if self.session.start_generation() is not None:
                logger.info("Generating... (the window stays responsive)")
        elif key == ord('c'):
            self.session.clear_result()
        elif key == ord('s'):
            self.save_result()

    def save_result(self) -> bool:
        """Write the composite to the output path the user gave on the command line."""
        if self.output_path is None:
            logger.warning("No output path given; start with --output to enable saving")
            return False
        if self.session.composite is None:
            logger.warning("Nothing to save yet")
            return False
        save_image(Path(self.output_path), self.session.composite)
        return True

    # -- drawing -------------------------------------------------------

    def compose_frame(self) -> np.ndarray:
        rect = self.display_rect()
        if rect is None:
            frame = np.zeros((240, 480, 3), dtype=np.uint8)
            self._draw_status(frame, "Load a reference image to begin")
            return frame

        frame = self._display_frame(rect).copy()
        if self.session.is_generating:
            self._draw_status(frame, "Generating...")
        elif self.session.message:
            self._draw_status(frame, self.session.message)
        return frame

    def _display_frame(self, rect: DisplayRect) -> np.ndarray:
        """Display-sized view; re-rendered only when what it shows has changed."""
        session = self.session
        if session.composite is not None:
            key = (session.reference_key, session.composite_key,
                   round(session.split_fraction, 4), rect)
        else:
            key = (session.reference_key, None, session.live_box, rect)
        if key == self._frame_key:
            return self._frame_cache

        view = session.render()
        frame = cv2.resize(view, (int(rect.width), int(rect.height)),
                           interpolation=cv2.INTER_AREA)
        if session.composite is None:
            self._draw_selection(frame, rect)

        self._frame_key = key
        self._frame_cache = frame
        return frame

    def _draw_selection(self, frame: np.ndarray, rect: DisplayRect) -> None:
        height, width = self.session.reference.shape[:2]
        box = self.session.live_box

        dimmed = (frame * 0.5).astype(np.uint8)
        if box is None:
            frame[:] = dimmed
            return

        top_left = to_display(Point(box.x, box.y), rect, width, height)
        bottom_right = to_display(Point(box.right, box.bottom), rect, width, height)
        x0, y0 = int(round(top_left.x)), int(round(top_left.y))
        x1, y1 = int(round(bottom_right.x)), int(round(bottom_right.y))

        hole = frame[y0:y1, x0:x1].copy()
        frame[:] = dimmed
        frame[y0:y1, x0:x1] = hole

        cv2.rectangle(frame, (x0, y0), (x1, y1), SELECTION_COLOR, 2)
        cv2.putText(frame, f"{box.width}x{box.height}", (x0, max(12, y0 - 5)),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.45, SELECTION_COLOR, 1, cv2.LINE_AA)

    def _draw_status(self, frame: np.ndarray, text: str) -> None:
        cv2.putText(frame, text, (10, frame.shape[0] - 12),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, TEXT_COLOR, 1, cv2.LINE_AA)

    def _sync_trackbar(self) -> None:
        value = int(round(self.session.split_fraction * 100))
        if value != self._trackbar_value:
            self._trackbar_value = value
            cv2.setTrackbarPos(TRACKBAR_NAME, WINDOW_NAME, value)

    # -- loop ----------------------------------------------------------

    def run(self) -> None:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_AUTOSIZE)
        cv2.setMouseCallback(WINDOW_NAME, self.on_mouse)
        cv2.createTrackbar(TRACKBAR_NAME, WINDOW_NAME,
                           int(round(self.session.split_fraction * 100)), 100,
                           self.on_trackbar)

        logger.info("Drag to select a square, 'g' to generate, 'c' to clear, "
                    "'s' to save, 'q' to quit")
        self.running = True
        try:
            while self.running:
                self.session.poll()
                self._sync_trackbar()
                cv2.imshow(WINDOW_NAME, self.compose_frame())

                key = cv2.waitKey(self.frame_delay_ms) & 0xFF
                if key != 0xFF:
                    self.handle_key(key)

                if cv2.getWindowProperty(WINDOW_NAME, cv2.WND_PROP_VISIBLE) < 1:
                    self.running = False
        finally:
            cv2.destroyWindow(WINDOW_NAME)
