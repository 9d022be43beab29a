"""
Edit Session

Owns the state of one editing session (source face, reference image,
selection, generated patch, composite and compare split) and runs the
pipeline in response to UI events.

All methods are meant to be called from a single UI thread. The only
work that leaves that thread is the generation call, which runs on an
executor; its result is picked up by ``poll()`` and applied only if the
reference and selection it was started for are still current.
"""

import itertools
import logging
import time
from concurrent.futures import Executor, Future, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Hashable, Optional, Union

import numpy as np

from ..compositing import (
    CompareRenderer,
    FeatheredCompositor,
    clamp_fraction,
    extract_region,
    load_image,
)
from ..compositing.utils import is_valid_bitmap
from ..errors import (
    CompositeFailure,
    DecodeFailure,
    GenerationError,
    GenerationFailure,
    GenerationTimeout,
    InvalidRegion,
    NoImageReturned,
)
from ..generation import GenerationClient
from ..geometry import (
    Committed,
    DisplayRect,
    Idle,
    ImageGeometry,
    Point,
    SelectionBox,
    SquareSelector,
)
from ..ui.config import EditorConfig
from .executor import DaemonThreadExecutor

logger = logging.getLogger(__name__)

MISSING_INPUTS_MESSAGE = "Please upload both images and select a region."
COMPARE_UNAVAILABLE_MESSAGE = "Comparison view unavailable."


@dataclass(frozen=True)
class GenerationTicket:
    """What an in-flight generation was started for."""
    epoch: int
    selection: SelectionBox
    started_at: float
    future: Future


def _file_identity(path: Union[str, Path]) -> Hashable:
    """Content identity of an image file: resolved path, mtime and size."""
    file_path = Path(path).resolve()
    try:
        stat = file_path.stat()
    except OSError:
        return (str(file_path), None, None)
    return (str(file_path), stat.st_mtime_ns, stat.st_size)


class EditSession:
    """
    Controller for one face patch editing session.

    Holds the reference and patch bitmaps; the composite is a derived
    cache rebuilt whenever the reference, patch or selection changes.
    """

    def __init__(self, client: GenerationClient, config: Optional[EditorConfig] = None,
                 executor: Optional[Executor] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize session.

        Args:
            client: Generation client (usually wrapped with retries)
            config: Editor configuration
            executor: Executor for generation calls (one daemon thread per call by default)
            clock: Monotonic clock used for the generation timeout
        """
        self.config = config or EditorConfig()
        self.config.validate()

        self.client = client
        self._owns_executor = executor is None
        self.executor = executor or DaemonThreadExecutor(
            thread_name_prefix="face-patch-generation"
        )
        self.clock = clock

        self.compositor = FeatheredCompositor(self.config.feather_ratio)
        self.renderer = CompareRenderer(self.config.divider_base_width,
                                        self.config.divider_reference_width)
        self.selector = SquareSelector(on_change=self._on_selection_change,
                                       min_size=self.config.min_selection_size)

        self.source_face: Optional[np.ndarray] = None
        self.reference: Optional[np.ndarray] = None
        self.reference_key: Optional[Hashable] = None
        self.selection: Optional[SelectionBox] = None
        self.patch: Optional[np.ndarray] = None
        self.composite: Optional[np.ndarray] = None
        self.composite_key: Optional[Hashable] = None
        self.split_fraction = self.config.default_split

        self.message: Optional[str] = None
        self.last_error: Optional[Exception] = None

        self.epoch = 0
        self._ticket: Optional[GenerationTicket] = None
        self._keys = itertools.count(1)

    # -- state queries -------------------------------------------------

    @property
    def is_generating(self) -> bool:
        return self._ticket is not None

    @property
    def can_generate(self) -> bool:
        return (not self.is_generating and self.source_face is not None and
                self.reference is not None and self.selection is not None)

    @property
    def live_box(self) -> Optional[SelectionBox]:
        """Selection to draw, including an uncommitted drag preview."""
        return self.selector.live_box

    def geometry(self, display_rect: DisplayRect) -> ImageGeometry:
        if self.reference is None:
            raise InvalidRegion("No reference image loaded")
        height, width = self.reference.shape[:2]
        return ImageGeometry(display_rect, width, height)

    # -- image loading -------------------------------------------------

    def load_source_face(self, path: Union[str, Path]) -> bool:
        """
        Load the source face image, normalised to the configured max width.

        Returns:
            True on success; on failure the previous source face is kept
        """
        try:
            image = load_image(path, max_width=self.config.source_max_width)
        except DecodeFailure as e:
            self._report("Failed to process character image. Please try a different file.", e)
            return False

        self.set_source_face(image)
        return True

    def set_source_face(self, image: np.ndarray) -> None:
        if not is_valid_bitmap(image):
            raise DecodeFailure("Source face is not a decoded 8-bit bitmap")
        self.source_face = image
        self._clear_message()

    def load_reference(self, path: Union[str, Path]) -> bool:
        """
        Load a new reference image and start over with it.

        Returns:
            True on success; on failure all prior state is kept
        """
        try:
            image = load_image(path)
        except DecodeFailure as e:
            self._report("Failed to load reference image. Please try a different file.", e)
            return False

        self.set_reference(image, key=_file_identity(path))
        return True

    def set_reference(self, image: np.ndarray, key: Optional[Hashable] = None) -> None:
        """
        Replace the reference bitmap.

        Bumps the session epoch so any in-flight generation becomes stale,
        and drops the selection, patch and composite.
        """
        if not is_valid_bitmap(image):
            raise DecodeFailure("Reference is not a decoded 8-bit bitmap")

        self.epoch += 1
        self.reference = image
        self.reference_key = key if key is not None else ("bitmap", next(self._keys))
        self.patch = None
        self.selection = None
        self._set_composite(None)
        self.split_fraction = self.config.default_split
        self.selector.reset()
        self.renderer.set_base(self.reference_key, image)
        self._clear_message()

        logger.info(f"Reference loaded ({image.shape[1]}x{image.shape[0]}), epoch {self.epoch}")

    # -- selection -----------------------------------------------------

    def pointer_down(self, point: Point, display_rect: DisplayRect) -> None:
        if self.reference is None:
            return
        self.selector.start(point, self.geometry(display_rect))

    def pointer_move(self, point: Point, display_rect: DisplayRect) -> None:
        if self.reference is None or not self.selector.is_dragging:
            return
        self.selector.move(point, self.geometry(display_rect))

    def pointer_up(self) -> None:
        self.selector.end()

    def set_selection(self, box: Optional[SelectionBox]) -> None:
        """
        Set the selection directly, bypassing the drag gesture.

        Raises:
            InvalidRegion: If the box is not a square inside the reference
        """
        if box is not None:
            if self.reference is None:
                raise InvalidRegion("No reference image loaded")
            height, width = self.reference.shape[:2]
            box.validate(width, height)
            self.selector.state = Committed(box)
        else:
            self.selector.state = Idle()
        self._on_selection_change(box)

    def _on_selection_change(self, box: Optional[SelectionBox]) -> None:
        if box == self.selection:
            return
        self.selection = box
        logger.debug(f"Selection changed: {None if box is None else box.as_tuple()}")
        self.rebuild_composite()

    # -- generation ----------------------------------------------------

    def start_generation(self) -> Optional[Future]:
        """
        Extract the selected crop and submit a generation request.

        Returns:
            The submitted future, or None if the request was not started
        """
        if self.is_generating:
            logger.warning("Generation already in progress; ignoring request")
            return None

        if self.source_face is None or self.reference is None or self.selection is None:
            self.message = MISSING_INPUTS_MESSAGE
            return None

        height, width = self.reference.shape[:2]
        try:
            self.selection.validate(width, height)
            crop = extract_region(self.reference, self.selection, self.config.max_crop_dim)
        except InvalidRegion as e:
            self._report("The selected region is invalid. Please select it again.", e)
            return None

        self._clear_message()
        self.patch = None
        self._set_composite(None)

        future = self.executor.submit(self.client.generate, self.source_face, crop)
        self._ticket = GenerationTicket(self.epoch, self.selection, self.clock(), future)
        logger.info(f"Generation started for selection {self.selection.as_tuple()}")
        return future

    def poll(self) -> bool:
        """
        Check the in-flight generation; call regularly from the UI loop.

        Returns:
            True if the session state changed
        """
        ticket = self._ticket
        if ticket is None:
            return False

        if not ticket.future.done():
            elapsed = self.clock() - ticket.started_at
            if elapsed < self.config.generation_timeout:
                return False
            # Abandon the call; whatever it returns later is ignored
            self._ticket = None
            logger.error(f"Generation timed out after {elapsed:.1f}s")
            self._fail_generation(GenerationFailure(GenerationTimeout(
                f"No result within {self.config.generation_timeout:.0f} seconds"
            )))
            return True

        self._ticket = None

        if not self._is_relevant(ticket):
            logger.info("Discarding generation result for a superseded reference or selection")
            return True

        try:
            patch = ticket.future.result()
        except GenerationFailure as e:
            self._fail_generation(e)
            return True
        except GenerationError as e:
            self._fail_generation(GenerationFailure(e))
            return True
        except Exception as e:
            logger.exception("Generation client raised an unexpected error")
            self._report("Generation failed.", e)
            return True

        if not is_valid_bitmap(patch):
            self._fail_generation(GenerationFailure(
                NoImageReturned("The generation client returned an empty image")
            ))
            return True

        self.patch = patch
        logger.info(f"Received patch {patch.shape[1]}x{patch.shape[0]}")
        self.rebuild_composite()
        return True

    def wait_for_generation(self, poll_interval: float = 0.1) -> None:
        """Block until the in-flight generation is applied, discarded or timed out."""
        while self._ticket is not None:
            wait([self._ticket.future], timeout=poll_interval)
            self.poll()

    def _is_relevant(self, ticket: GenerationTicket) -> bool:
        return ticket.epoch == self.epoch and ticket.selection == self.selection

    def _fail_generation(self, failure: GenerationFailure) -> None:
        self._report(failure.user_message, failure)

    def clear_result(self) -> None:
        """Drop the generated patch, the composite and the selection."""
        self.patch = None
        self.selection = None
        self._set_composite(None)
        self.selector.reset()
        self._clear_message()

    # -- compositing and compare view ---------------------------------

    def rebuild_composite(self) -> Optional[np.ndarray]:
        """
        Rebuild the composite from the current reference, patch and selection.

        On failure the composite is dropped but the patch is kept.
        """
        reference, patch, selection = self.reference, self.patch, self.selection
        if reference is None or patch is None or selection is None:
            self._set_composite(None)
            return None

        try:
            composite = self.compositor.composite(reference, patch, selection)
        except CompositeFailure as e:
            self._set_composite(None)
            self._report(COMPARE_UNAVAILABLE_MESSAGE, e)
            return None

        self._set_composite(composite)
        self.split_fraction = self.config.default_split
        return composite

    def _set_composite(self, composite: Optional[np.ndarray]) -> None:
        self.composite = composite
        self.composite_key = None if composite is None else ("composite", next(self._keys))
        self.renderer.set_composite(self.composite_key, composite)

    def set_split(self, fraction: float) -> float:
        self.split_fraction = clamp_fraction(fraction)
        return self.split_fraction

    def render(self) -> Optional[np.ndarray]:
        """Compare view at the current split, or None without a reference."""
        try:
            return self.renderer.render(self.split_fraction)
        except CompositeFailure as e:
            self._set_composite(None)
            self._report(COMPARE_UNAVAILABLE_MESSAGE, e)
            return self.renderer.render(self.split_fraction)

    # -- messages and lifecycle ---------------------------------------

    def _report(self, message: str, error: Exception) -> None:
        logger.error(f"{message} ({error})")
        self.message = message
        self.last_error = error

    def _clear_message(self) -> None:
        self.message = None
        self.last_error = None

    def close(self) -> None:
        """Release the executor if the session created it."""
        self._ticket = None
        if self._owns_executor:
            self.executor.shutdown(wait=False)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
