import os
import shutil
import tempfile
import unittest
from unittest.mock import Mock, patch
import cv2
import numpy as np

from face_patch.editor import EditSession
from face_patch.geometry import SelectionBox
from face_patch.ui.viewer import PatchViewer


class TestPatchViewer(unittest.TestCase):

    def setUp(self):
        """Set up a session with a loaded reference and a viewer over it."""
        self.temp_dir = tempfile.mkdtemp()
        self.session = EditSession(Mock())
        self.reference = np.full((400, 600, 3), 80, dtype=np.uint8)
        self.session.set_reference(self.reference)
        self.output = os.path.join(self.temp_dir, 'out.png')
        self.viewer = PatchViewer(self.session, output_path=self.output)

    def tearDown(self):
        """Clean up session and temporary files."""
        self.session.close()
        shutil.rmtree(self.temp_dir)

    def add_composite(self):
        self.session.set_selection(SelectionBox(100, 100, 200, 200))
        self.session.patch = np.full((64, 64, 3), 200, dtype=np.uint8)
        self.session.rebuild_composite()

    def test_mouse_drag_selects(self):
        self.viewer.on_mouse(cv2.EVENT_LBUTTONDOWN, 100, 100, cv2.EVENT_FLAG_LBUTTON)
        self.viewer.on_mouse(cv2.EVENT_MOUSEMOVE, 250, 300, cv2.EVENT_FLAG_LBUTTON)
        self.viewer.on_mouse(cv2.EVENT_LBUTTONUP, 250, 300, 0)

        self.assertEqual(self.session.selection, SelectionBox(100, 100, 200, 200))

    def test_mouse_moves_split_once_composite_exists(self):
        self.add_composite()
        selection = self.session.selection

        self.viewer.on_mouse(cv2.EVENT_LBUTTONDOWN, 150, 10, cv2.EVENT_FLAG_LBUTTON)
        self.assertAlmostEqual(self.session.split_fraction, 0.25)

        self.viewer.on_mouse(cv2.EVENT_MOUSEMOVE, 450, 10, cv2.EVENT_FLAG_LBUTTON)
        self.assertAlmostEqual(self.session.split_fraction, 0.75)

        # Hover without a pressed button leaves the split alone
        self.viewer.on_mouse(cv2.EVENT_MOUSEMOVE, 0, 10, 0)
        self.assertAlmostEqual(self.session.split_fraction, 0.75)
        self.assertEqual(self.session.selection, selection)

    def test_trackbar_sets_split(self):
        self.viewer.on_trackbar(30)

        self.assertAlmostEqual(self.session.split_fraction, 0.3)

    def test_compose_frame(self):
        frame = self.viewer.compose_frame()
        self.assertEqual(frame.shape, (400, 600, 3))

        self.session.set_reference(np.zeros((1800, 2800, 3), dtype=np.uint8))
        frame = self.viewer.compose_frame()
        self.assertEqual(frame.shape, (900, 1400, 3))

    def test_compose_frame_without_reference(self):
        viewer = PatchViewer(EditSession(Mock()))
        try:
            frame = viewer.compose_frame()
        finally:
            viewer.session.close()

        self.assertEqual(frame.shape, (240, 480, 3))

    def test_selection_overlay_keeps_box_bright(self):
        self.session.set_selection(SelectionBox(100, 100, 200, 200))

        frame = self.viewer.compose_frame()

        self.assertEqual(int(frame[200, 200, 0]), 80)
        self.assertEqual(int(frame[390, 590, 0]), 40)

    def test_frame_reused_until_view_changes(self):
        with patch.object(self.session, 'render', wraps=self.session.render) as render:
            first = self.viewer.compose_frame()
            second = self.viewer.compose_frame()
            self.assertEqual(render.call_count, 1)
            np.testing.assert_array_equal(first, second)

            self.session.set_selection(SelectionBox(100, 100, 200, 200))
            self.viewer.compose_frame()
            self.assertEqual(render.call_count, 2)

            self.add_composite()
            self.viewer.compose_frame()
            self.viewer.compose_frame()
            self.assertEqual(render.call_count, 3)

            self.session.set_split(0.8)
            self.viewer.compose_frame()
            self.assertEqual(render.call_count, 4)

    def test_status_text_not_kept_in_cached_frame(self):
        plain = self.viewer.compose_frame()

        self.session.message = "Comparison view unavailable."
        with_status = self.viewer.compose_frame()
        self.session.message = None

        self.assertFalse(np.array_equal(plain, with_status))
        np.testing.assert_array_equal(self.viewer.compose_frame(), plain)

    def test_keys(self):
        self.viewer.running = True
        self.viewer.handle_key(ord('q'))
        self.assertFalse(self.viewer.running)

        self.add_composite()
        self.viewer.handle_key(ord('c'))
        self.assertIsNone(self.session.composite)
        self.assertIsNone(self.session.selection)

    def test_save_result(self):
        self.assertFalse(self.viewer.save_result())

        self.add_composite()
        self.assertTrue(self.viewer.save_result())
        self.assertTrue(os.path.exists(self.output))

        self.assertFalse(PatchViewer(self.session).save_result())


if __name__ == '__main__':
    unittest.main()
