import json
import unittest

import numpy as np

from scipy.spatial.transform import Rotation

from assetforge.config import load_config
from assetforge.geometry.scene_graph import Model, Transform
from assetforge.handle_detection.service import (
    DetectionConfidence,
    HandleDetectionService,
)
from tests.unit.geometry_utils import (
    BoxSilhouetteRenderer,
    make_box_model,
    make_sword_model,
)


class TestHandleDetectionService(unittest.TestCase):
    """Test end-to-end handle detection with a box silhouette renderer."""

    @classmethod
    def setUpClass(cls):
        """Load the packaged configuration once."""
        cls.cfg = load_config().handle_detection

    def setUp(self):
        """Set up test fixtures."""
        self.renderer = BoxSilhouetteRenderer()
        self.service = HandleDetectionService(self.renderer, self.cfg)

    def test_upright_sword(self):
        result = self.service.detect_handle(make_sword_model())

        self.assertEqual(result.confidence, DetectionConfidence.HIGH)
        np.testing.assert_allclose(result.grip_point, [0.0, 0.2, 0.0], atol=0.02)
        self.assertGreater(len(result.vertices), 0)
        # Supporting vertices all lie on the handle.
        self.assertTrue(np.all(result.vertices[:, 1] > 0.08))
        self.assertTrue(np.all(result.vertices[:, 1] < 0.32))
        self.assertEqual(
            (result.grip_bounds.min_y, result.grip_bounds.max_y), (345, 446)
        )
        self.assertFalse(result.orientation_flipped)
        self.assertIsNone(result.orientation_correction)
        self.assertEqual(self.renderer.calls, 1)
        self.assertEqual(result.annotated_image.shape, (512, 512, 3))

    def test_box_center_used_when_no_vertex_in_box(self):
        result = self.service.detect_handle(make_sword_model(handle_subdivisions=0))

        self.assertEqual(result.confidence, DetectionConfidence.HIGH)
        np.testing.assert_allclose(result.grip_point, [0.0, 0.199, 0.0], atol=0.002)
        self.assertEqual(len(result.vertices), 1)

    def test_upside_down_sword_is_flipped(self):
        flipped = Transform(rotation=Rotation.from_euler("z", 180, degrees=True))
        result = self.service.detect_handle(make_sword_model(root_transform=flipped))

        self.assertTrue(result.orientation_flipped)
        self.assertEqual(result.confidence, DetectionConfidence.HIGH)
        # Reported in the caller's frame, where the handle hangs below the origin.
        np.testing.assert_allclose(result.grip_point, [0.0, -0.2, 0.0], atol=0.02)
        self.assertAlmostEqual(abs(result.orientation_correction[2]), np.pi)
        self.assertEqual(self.renderer.calls, 2)

    def test_sideways_sword_is_stood_up(self):
        sideways = Transform(rotation=Rotation.from_euler("z", -90, degrees=True))
        result = self.service.detect_handle(make_sword_model(root_transform=sideways))

        self.assertEqual(result.confidence, DetectionConfidence.HIGH)
        np.testing.assert_allclose(result.grip_point, [0.2, 0.0, 0.0], atol=0.02)
        np.testing.assert_allclose(
            result.orientation_correction, [0.0, 0.0, np.pi / 2], atol=1e-9
        )

    def test_caller_model_untouched(self):
        sideways = Transform(rotation=Rotation.from_euler("z", -90, degrees=True))
        model = make_sword_model(root_transform=sideways)
        before = model.world_vertices().copy()

        self.service.detect_handle(model)

        np.testing.assert_array_equal(model.world_vertices(), before)
        self.assertFalse(model.nodes[1].transform.is_identity())

    def test_plain_shaft_falls_back_to_estimate(self):
        model = make_box_model((0.04, 1.0, 0.04), (0.0, 0.5, 0.0), name="staff")

        with self.assertLogs("assetforge.handle_detection.service", level="WARNING"):
            result = self.service.detect_handle(model)

        self.assertEqual(result.confidence, DetectionConfidence.LOW)
        np.testing.assert_allclose(result.grip_point, [0.0, 0.2, 0.0], atol=1e-9)
        self.assertEqual(len(result.vertices), 0)
        self.assertIsNone(result.grip_bounds)

    def test_empty_model(self):
        result = self.service.detect_handle(Model("empty"))

        self.assertEqual(result.confidence, DetectionConfidence.LOW)
        np.testing.assert_array_equal(result.grip_point, [0.0, 0.0, 0.0])
        self.assertEqual(result.annotated_image.shape, (512, 512, 3))
        self.assertFalse(result.annotated_image.any())
        self.assertEqual(self.renderer.calls, 0)

    def test_to_dict(self):
        payload = json.loads(
            json.dumps(self.service.detect_handle(make_sword_model()).to_dict())
        )
        self.assertEqual(payload["confidence"], "high")
        self.assertTrue(payload["annotated_image"].startswith("data:image/png;base64,"))
        self.assertEqual(payload["grip_bounds"]["min_y"], 345)
        self.assertIsNone(payload["orientation_correction"])

    def test_render_resolution_from_config(self):
        cfg = load_config(["handle_detection.render_resolution=256"]).handle_detection
        service = HandleDetectionService(self.renderer, cfg)
        result = service.detect_handle(Model("empty"))
        self.assertEqual(result.annotated_image.shape, (256, 256, 3))


if __name__ == "__main__":
    unittest.main()
