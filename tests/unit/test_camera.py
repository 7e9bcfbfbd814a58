import unittest

import numpy as np

from assetforge.geometry.bounds import BoundingBox
from assetforge.handle_detection.camera import fit_front_camera
from assetforge.handle_detection.width_profile import GripBounds


class TestFrontCamera(unittest.TestCase):
    """Test camera fitting and pixel mapping."""

    def setUp(self):
        """Set up a camera around a 1 m tall model."""
        bounds = BoundingBox(min=[-0.1, 0.0, -0.05], max=[0.1, 1.0, 0.05])
        self.camera = fit_front_camera(bounds, resolution=500, padding=0.0)

    def test_fit(self):
        np.testing.assert_allclose(self.camera.center, [0.0, 0.5, 0.0])
        self.assertEqual(self.camera.extent, 1.0)
        self.assertEqual(self.camera.pixels_per_unit, 500.0)

    def test_project_top_and_bottom(self):
        pixels = self.camera.project(
            [[0.0, 1.0, 0.0], [0.0, 0.0, 0.0], [0.1, 0.5, 0.0]]
        )
        np.testing.assert_allclose(
            pixels, [[250.0, 0.0], [250.0, 500.0], [300.0, 250.0]]
        )

    def test_unproject_inverts_project(self):
        points = np.array([[0.05, 0.3, 0.02], [-0.1, 0.9, 0.02]])
        restored = self.camera.unproject(self.camera.project(points), depth=0.02)
        np.testing.assert_allclose(restored, points, atol=1e-12)

    def test_box_mask(self):
        box = GripBounds(min_x=240, min_y=300, max_x=260, max_y=400)
        points = np.array(
            [
                [0.0, 0.3, 0.0],  # Inside.
                [0.0, 0.9, 0.0],  # Above the box.
                [0.09, 0.3, 0.0],  # Right of the box.
            ]
        )
        np.testing.assert_array_equal(
            self.camera.box_mask(points, box), [True, False, False]
        )

    def test_rows_mask_padding(self):
        # y=0.403 projects to row 298.5.
        point = np.array([[0.0, 0.403, 0.0]])
        self.assertFalse(self.camera.rows_mask(point, 300, 400)[0])
        self.assertTrue(self.camera.rows_mask(point, 300, 400, padding_px=2)[0])

    def test_flat_model_gets_unit_extent(self):
        camera = fit_front_camera(BoundingBox.from_points([[1.0, 1.0, 1.0]]))
        self.assertAlmostEqual(camera.extent, 1.1)


if __name__ == "__main__":
    unittest.main()
