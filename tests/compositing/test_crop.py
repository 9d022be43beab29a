import unittest
import numpy as np

from face_patch.compositing import compute_output_size, extract_region
from face_patch.errors import InvalidRegion
from face_patch.geometry import SelectionBox


class TestComputeOutputSize(unittest.TestCase):

    def test_small_region_unchanged(self):
        self.assertEqual(compute_output_size(200, 200), (200, 200))
        self.assertEqual(compute_output_size(1024, 1024), (1024, 1024))

    def test_large_square_capped(self):
        self.assertEqual(compute_output_size(2048, 2048), (1024, 1024))

    def test_aspect_ratio_preserved(self):
        self.assertEqual(compute_output_size(3000, 1500), (1024, 512))
        self.assertEqual(compute_output_size(1500, 3000), (512, 1024))

    def test_custom_max_dim(self):
        self.assertEqual(compute_output_size(600, 600, max_dim=256), (256, 256))

    def test_empty_region_rejected(self):
        with self.assertRaises(InvalidRegion):
            compute_output_size(0, 100)


class TestExtractRegion(unittest.TestCase):

    def setUp(self):
        """Set up a gradient test image."""
        ys, xs = np.mgrid[0:100, 0:120]
        self.source = np.stack([xs * 2, ys * 2, (xs + ys) % 256], axis=2).astype(np.uint8)

    def test_extracts_exact_pixels(self):
        box = SelectionBox(10, 20, 30, 30)

        crop = extract_region(self.source, box)

        self.assertEqual(crop.shape, (30, 30, 4))
        np.testing.assert_array_equal(crop[:, :, :3], self.source[20:50, 10:40])
        self.assertTrue(np.all(crop[:, :, 3] == 255))

    def test_keeps_source_alpha(self):
        source = np.zeros((50, 50, 4), dtype=np.uint8)
        source[:, :, 3] = 77

        crop = extract_region(source, SelectionBox(0, 0, 50, 50))

        self.assertTrue(np.all(crop[:, :, 3] == 77))

    def test_downscales_large_region(self):
        source = np.full((1200, 1200, 3), (10, 120, 240), dtype=np.uint8)

        crop = extract_region(source, SelectionBox(0, 0, 1100, 1100))

        self.assertEqual(crop.shape, (1024, 1024, 4))
        np.testing.assert_array_equal(crop[512, 512], [10, 120, 240, 255])

    def test_region_must_be_inside(self):
        with self.assertRaises(InvalidRegion):
            extract_region(self.source, SelectionBox(100, 80, 30, 30))

        with self.assertRaises(InvalidRegion):
            extract_region(self.source, SelectionBox(-5, 0, 30, 30))

        with self.assertRaises(InvalidRegion):
            extract_region(self.source, SelectionBox(0, 0, 0, 0))

    def test_empty_source_rejected(self):
        with self.assertRaises(InvalidRegion):
            extract_region(np.array([], dtype=np.uint8), SelectionBox(0, 0, 10, 10))

    def test_source_not_modified(self):
        original = self.source.copy()

        crop = extract_region(self.source, SelectionBox(0, 0, 60, 60))
        crop[:] = 0

        np.testing.assert_array_equal(self.source, original)


if __name__ == '__main__':
    unittest.main()
