import unittest
import numpy as np

from face_patch.errors import InvalidRegion
from face_patch.geometry import (
    Committed,
    DisplayRect,
    Dragging,
    GestureEnd,
    GestureMove,
    GestureStart,
    Idle,
    ImageGeometry,
    ImageLoaded,
    Point,
    SelectionBox,
    SquareSelector,
    square_from_drag,
    transition
)


def drag(geometry, start, end, min_size=50):
    """Run a full gesture and return (final state, all notifications)."""
    notifications = []
    result = transition(Idle(), GestureStart(Point(*start), geometry), min_size)
    notifications.extend(result.notifications)
    result = transition(result.state, GestureMove(Point(*end), geometry), min_size)
    notifications.extend(result.notifications)
    result = transition(result.state, GestureEnd(), min_size)
    notifications.extend(result.notifications)
    return result.state, notifications


class TestSelectionBox(unittest.TestCase):

    def test_validate_accepts_square_inside(self):
        SelectionBox(10, 10, 80, 80).validate(100, 100)

    def test_validate_rejects_non_square(self):
        with self.assertRaises(InvalidRegion):
            SelectionBox(0, 0, 80, 60).validate(100, 100)

    def test_validate_rejects_outside(self):
        with self.assertRaises(InvalidRegion):
            SelectionBox(50, 50, 60, 60).validate(100, 100)
        with self.assertRaises(InvalidRegion):
            SelectionBox(-1, 0, 60, 60).validate(100, 100)


class TestSquareFromDrag(unittest.TestCase):

    def setUp(self):
        """Set up a 1:1 geometry for a 1000x1000 image."""
        self.geometry = ImageGeometry(DisplayRect(0, 0, 1000, 1000), 1000, 1000)

    def test_drag_down_right(self):
        box = square_from_drag(Point(100, 100), Point(250, 300), self.geometry)

        self.assertEqual(box, SelectionBox(100, 100, 200, 200))

    def test_drag_up_left_grows_away_from_anchor(self):
        box = square_from_drag(Point(300, 300), Point(200, 150), self.geometry)

        self.assertEqual(box, SelectionBox(150, 150, 150, 150))

    def test_origin_clamped_to_zero(self):
        box = square_from_drag(Point(50, 50), Point(0, -100), self.geometry)

        self.assertEqual(box, SelectionBox(0, 0, 150, 150))

    def test_far_edge_shrinks_to_fit(self):
        """Test a square dragged past the bottom/right is shrunk inside the image."""
        geometry = ImageGeometry(DisplayRect(0, 0, 400, 300), 400, 300)

        box = square_from_drag(Point(300, 200), Point(400, 350), geometry)

        self.assertEqual(box, SelectionBox(300, 200, 100, 100))

    def test_anchor_outside_image_gives_none(self):
        geometry = ImageGeometry(DisplayRect(0, 0, 400, 300), 400, 300)

        box = square_from_drag(Point(450, 100), Point(500, 200), geometry)

        self.assertIsNone(box)

    def test_non_uniform_scaling_stays_square(self):
        """Test height follows the native width when axes scale differently."""
        geometry = ImageGeometry(DisplayRect(0, 0, 500, 500), 1000, 2000)

        box = square_from_drag(Point(10, 10), Point(60, 30), geometry)

        self.assertEqual(box, SelectionBox(20, 40, 100, 100))


class TestTransition(unittest.TestCase):

    def test_one_to_one_scenario(self):
        """Test the 1:1 drag from (100,100) to (250,300) commits a 200px box."""
        geometry = ImageGeometry(DisplayRect(0, 0, 2000, 1500), 2000, 1500)

        state, notifications = drag(geometry, (100, 100), (250, 300))

        expected = SelectionBox(100, 100, 200, 200)
        self.assertEqual(state, Committed(expected))
        self.assertEqual(notifications, [None, expected])

    def test_half_scale_scenario(self):
        """Test a 2000x1500 image shown at 50% doubles the committed box."""
        geometry = ImageGeometry(DisplayRect(0, 0, 1000, 750), 2000, 1500)

        state, notifications = drag(geometry, (100, 100), (237, 300))

        self.assertEqual(state, Committed(SelectionBox(200, 200, 400, 400)))

    def test_display_offset_is_respected(self):
        geometry = ImageGeometry(DisplayRect(40, 30, 1000, 1000), 1000, 1000)

        state, _ = drag(geometry, (140, 130), (290, 330))

        self.assertEqual(state, Committed(SelectionBox(100, 100, 200, 200)))

    def test_small_drag_yields_none(self):
        geometry = ImageGeometry(DisplayRect(0, 0, 500, 500), 500, 500)

        state, notifications = drag(geometry, (100, 100), (140, 140))

        self.assertEqual(state, Idle())
        self.assertEqual(notifications, [None, None])

    def test_minimum_size_is_exclusive(self):
        geometry = ImageGeometry(DisplayRect(0, 0, 500, 500), 500, 500)

        state, _ = drag(geometry, (100, 100), (150, 150))
        self.assertEqual(state, Idle())

        state, _ = drag(geometry, (100, 100), (151, 151))
        self.assertEqual(state, Committed(SelectionBox(100, 100, 51, 51)))

    def test_new_gesture_clears_previous_box(self):
        geometry = ImageGeometry(DisplayRect(0, 0, 500, 500), 500, 500)
        committed = Committed(SelectionBox(0, 0, 100, 100))

        result = transition(committed, GestureStart(Point(10, 10), geometry))

        self.assertEqual(result.state, Dragging(Point(10, 10)))
        self.assertEqual(result.notifications, (None,))

    def test_image_loaded_resets(self):
        result = transition(Committed(SelectionBox(0, 0, 100, 100)), ImageLoaded())

        self.assertEqual(result.state, Idle())
        self.assertEqual(result.notifications, (None,))

        result = transition(Idle(), ImageLoaded())
        self.assertEqual(result.notifications, ())

    def test_move_and_end_without_drag_are_ignored(self):
        geometry = ImageGeometry(DisplayRect(0, 0, 500, 500), 500, 500)
        committed = Committed(SelectionBox(0, 0, 100, 100))

        self.assertEqual(transition(committed, GestureMove(Point(5, 5), geometry)).state, committed)
        self.assertEqual(transition(committed, GestureEnd()).state, committed)
        self.assertEqual(transition(Idle(), GestureEnd()).notifications, ())

    def test_end_without_move_returns_idle_silently(self):
        geometry = ImageGeometry(DisplayRect(0, 0, 500, 500), 500, 500)
        start = transition(Idle(), GestureStart(Point(10, 10), geometry))

        result = transition(start.state, GestureEnd())

        self.assertEqual(result.state, Idle())
        self.assertEqual(result.notifications, ())

    def test_committed_boxes_are_square_and_inside(self):
        """Test random drags under random scaling always commit valid squares."""
        rng = np.random.RandomState(42)

        for _ in range(300):
            natural_w = int(rng.randint(60, 4000))
            natural_h = int(rng.randint(60, 4000))
            rect = DisplayRect(rng.uniform(0, 100), rng.uniform(0, 100),
                               rng.uniform(100, 1200), rng.uniform(100, 1200))
            geometry = ImageGeometry(rect, natural_w, natural_h)
            start = (rect.left + rng.uniform(-20, rect.width + 20),
                     rect.top + rng.uniform(-20, rect.height + 20))
            end = (rect.left + rng.uniform(-200, rect.width + 200),
                   rect.top + rng.uniform(-200, rect.height + 200))

            state, _ = drag(geometry, start, end)

            if isinstance(state, Committed):
                box = state.box
                self.assertEqual(box.width, box.height)
                self.assertGreater(box.width, 50)
                self.assertTrue(box.fits_within(natural_w, natural_h))
            else:
                self.assertEqual(state, Idle())


class TestSquareSelector(unittest.TestCase):

    def setUp(self):
        """Set up selector with a recording callback."""
        self.changes = []
        self.selector = SquareSelector(on_change=self.changes.append)
        self.geometry = ImageGeometry(DisplayRect(0, 0, 800, 600), 800, 600)

    def test_gesture_reports_changes(self):
        self.selector.start(Point(100, 100), self.geometry)
        self.assertTrue(self.selector.is_dragging)

        self.selector.move(Point(200, 180), self.geometry)
        self.assertEqual(self.selector.live_box, SelectionBox(100, 100, 100, 100))
        self.assertIsNone(self.selector.box)

        self.selector.end()

        self.assertEqual(self.selector.box, SelectionBox(100, 100, 100, 100))
        self.assertEqual(self.changes, [None, SelectionBox(100, 100, 100, 100)])

    def test_reset(self):
        self.selector.start(Point(100, 100), self.geometry)
        self.selector.move(Point(300, 300), self.geometry)
        self.selector.end()

        self.selector.reset()

        self.assertIsNone(self.selector.box)
        self.assertIsInstance(self.selector.state, Idle)
        self.assertIsNone(self.changes[-1])


if __name__ == '__main__':
    unittest.main()
