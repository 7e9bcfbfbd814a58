import unittest

import numpy as np

from assetforge.geometry.bounds import BoundingBox
from assetforge.handle_detection.orientation import (
    detect_axis_misalignment,
    needs_flip,
)
from tests.unit.geometry_utils import draw_weapon_image


class TestDetectAxisMisalignment(unittest.TestCase):
    """Test geometry-based orientation checks."""

    def test_upright_weapon(self):
        bounds = BoundingBox(min=[-0.1, 0.0, -0.05], max=[0.1, 1.0, 0.05])
        self.assertIsNone(detect_axis_misalignment(bounds))

    def test_x_longest_rotates_about_z(self):
        bounds = BoundingBox(min=[0.0, -0.1, -0.05], max=[1.0, 0.1, 0.05])
        misalignment = detect_axis_misalignment(bounds)
        self.assertEqual(misalignment.longest_axis, "x")
        np.testing.assert_allclose(
            misalignment.euler, [0.0, 0.0, -np.pi / 2], atol=1e-9
        )
        # The long axis ends up vertical.
        rotated = misalignment.rotation.apply([1.0, 0.0, 0.0])
        np.testing.assert_allclose(np.abs(rotated), [0.0, 1.0, 0.0], atol=1e-9)

    def test_z_longest_rotates_about_x(self):
        bounds = BoundingBox(min=[-0.1, -0.1, 0.0], max=[0.1, 0.1, 1.0])
        misalignment = detect_axis_misalignment(bounds)
        self.assertEqual(misalignment.longest_axis, "z")
        np.testing.assert_allclose(misalignment.euler, [np.pi / 2, 0.0, 0.0], atol=1e-9)

    def test_tie_with_up_axis_is_not_misaligned(self):
        bounds = BoundingBox(min=[0.0, 0.0, 0.0], max=[1.0, 1.0, 0.1])
        self.assertIsNone(detect_axis_misalignment(bounds))

    def test_custom_up_axis(self):
        bounds = BoundingBox(min=[0.0, 0.0, 0.0], max=[0.1, 0.1, 1.0])
        self.assertIsNone(detect_axis_misalignment(bounds, up_axis="z"))


class TestNeedsFlip(unittest.TestCase):
    """Test brightness-based flip detection."""

    def test_blade_up_sword(self):
        self.assertFalse(needs_flip(draw_weapon_image("sword")))

    def test_blade_down_sword(self):
        self.assertTrue(needs_flip(np.flipud(draw_weapon_image("sword"))))

    def test_empty_half_never_flips(self):
        image = np.zeros((300, 300), dtype=np.uint8)
        image[250:, :] = 200
        self.assertFalse(needs_flip(image))

    def test_ratio_must_be_exceeded(self):
        image = np.zeros((300, 300), dtype=np.uint8)
        image[:50, :] = 100
        image[260:, :] = 130
        self.assertFalse(needs_flip(image))
        image[260:, :] = 131
        self.assertTrue(needs_flip(image))


if __name__ == "__main__":
    unittest.main()
