import unittest

import numpy as np

from assetforge.errors import EmptyBoundsError
from assetforge.geometry.bounds import BoundingBox, compute_world_bounds
from assetforge.geometry.scene_graph import Model, Transform
from tests.unit.geometry_utils import box_mesh, make_box_model


class TestBoundingBox(unittest.TestCase):
    """Test BoundingBox construction and the empty state."""

    def test_from_points(self):
        bounds = BoundingBox.from_points([[0, 0, 0], [1, 2, 3], [-1, 1, 0]])
        np.testing.assert_array_equal(bounds.min, [-1, 0, 0])
        np.testing.assert_array_equal(bounds.max, [1, 2, 3])
        np.testing.assert_array_equal(bounds.size, [2, 2, 3])
        np.testing.assert_array_equal(bounds.center, [0, 1, 1.5])
        self.assertEqual(bounds.height, 2.0)

    def test_empty_box_raises_on_derived_values(self):
        bounds = BoundingBox.from_points(np.zeros((0, 3)))
        self.assertTrue(bounds.is_empty)
        with self.assertRaises(EmptyBoundsError):
            bounds.center
        with self.assertRaises(EmptyBoundsError):
            bounds.height
        with self.assertRaises(EmptyBoundsError):
            bounds.size

    def test_min_above_max_rejected(self):
        with self.assertRaises(ValueError):
            BoundingBox(min=[1, 0, 0], max=[0, 0, 0])

    def test_union_with_empty(self):
        box = BoundingBox.from_points([[0, 0, 0], [1, 1, 1]])
        self.assertIs(box.union(BoundingBox.empty()), box)
        self.assertIs(BoundingBox.empty().union(box), box)

    def test_union(self):
        a = BoundingBox.from_points([[0, 0, 0], [1, 1, 1]])
        b = BoundingBox.from_points([[-1, 0.5, 0], [0.5, 2, 0.5]])
        union = a.union(b)
        np.testing.assert_array_equal(union.min, [-1, 0, 0])
        np.testing.assert_array_equal(union.max, [1, 2, 1])

    def test_to_dict(self):
        self.assertEqual(
            BoundingBox.empty().to_dict(), {"min": None, "max": None, "is_empty": True}
        )
        box = BoundingBox.from_points([[0, 0, 0], [1, 1, 1]])
        self.assertEqual(box.to_dict()["max"], [1.0, 1.0, 1.0])


class TestComputeWorldBounds(unittest.TestCase):
    """Test world-space bounds over node hierarchies."""

    def test_box_model(self):
        bounds = compute_world_bounds(make_box_model((2.0, 4.0, 6.0), (1.0, 0.0, 0.0)))
        np.testing.assert_allclose(bounds.min, [0.0, -2.0, -3.0])
        np.testing.assert_allclose(bounds.max, [2.0, 2.0, 3.0])

    def test_includes_parent_transforms(self):
        model = Model("nested")
        group = model.add_node(
            "group", transform=Transform(translation=[0.0, 10.0, 0.0])
        )
        model.add_node(
            "child",
            parent=group,
            transform=Transform(scale=[2.0, 2.0, 2.0]),
            mesh=box_mesh((1.0, 1.0, 1.0)),
        )
        bounds = compute_world_bounds(model)
        np.testing.assert_allclose(bounds.min, [-1.0, 9.0, -1.0])
        np.testing.assert_allclose(bounds.max, [1.0, 11.0, 1.0])

    def test_subtree(self):
        model = make_box_model((1.0, 1.0, 1.0))
        other = model.add_node(
            "far", mesh=box_mesh((1.0, 1.0, 1.0), (10.0, 0.0, 0.0))
        )
        bounds = compute_world_bounds(model, other)
        np.testing.assert_allclose(bounds.center, [10.0, 0.0, 0.0])

    def test_model_without_geometry(self):
        model = Model("empty")
        model.add_node("group")
        self.assertTrue(compute_world_bounds(model).is_empty)


if __name__ == "__main__":
    unittest.main()
