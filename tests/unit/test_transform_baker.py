import unittest

import numpy as np

from scipy.spatial.transform import Rotation

from assetforge.errors import DegenerateTransformError
from assetforge.geometry.bounds import compute_world_bounds
from assetforge.geometry.scene_graph import MeshData, Model, Transform
from assetforge.geometry.transform_baker import bake_transforms
from tests.unit.geometry_utils import box_mesh


def _assert_all_identity(test, model):
    for index in model.traverse():
        test.assertTrue(
            model.nodes[index].transform.is_identity(),
            f"Node {model.nodes[index].name} not reset",
        )


class TestBakeTransforms(unittest.TestCase):
    """Test baking node transforms into vertex data."""

    def setUp(self):
        """Set up a rotated, scaled and translated hierarchy."""
        self.model = Model("baked")
        self.model.nodes[0].transform = Transform(translation=[0.0, 1.0, 0.0])
        group = self.model.add_node(
            "group",
            transform=Transform(
                rotation=Rotation.from_euler("y", 90, degrees=True),
                scale=[2.0, 2.0, 2.0],
            ),
        )
        self.model.add_node(
            "part", parent=group, mesh=box_mesh((1.0, 0.5, 0.25), (1.0, 0.0, 0.0))
        )

    def test_bake_preserves_world_positions(self):
        before = self.model.world_vertices()
        bake_transforms(self.model)
        np.testing.assert_allclose(self.model.world_vertices(), before, atol=1e-9)
        _assert_all_identity(self, self.model)

    def test_bake_is_idempotent(self):
        bake_transforms(self.model)
        once = self.model.meshes[0].positions.copy()
        bake_transforms(self.model)
        np.testing.assert_array_equal(self.model.meshes[0].positions, once)

    def test_normals_stay_unit_length(self):
        self.model.nodes[1].transform.scale = np.array([1.0, 3.0, 0.5])
        bake_transforms(self.model)
        lengths = np.linalg.norm(self.model.meshes[0].normals, axis=1)
        np.testing.assert_allclose(lengths, 1.0)

    def test_shared_mesh_is_copied(self):
        model = Model("shared")
        mesh = model.add_mesh(MeshData(positions=[[1.0, 0.0, 0.0]]))
        model.add_node("a", transform=Transform(translation=[1.0, 0.0, 0.0]), mesh=mesh)
        model.add_node("b", transform=Transform(translation=[0.0, 5.0, 0.0]), mesh=mesh)

        bake_transforms(model)

        np.testing.assert_allclose(
            np.sort(model.world_vertices(), axis=0),
            np.sort([[2.0, 0.0, 0.0], [1.0, 5.0, 0.0]], axis=0),
        )
        self.assertNotEqual(model.nodes[1].mesh, model.nodes[2].mesh)

    def test_mirror_reverses_winding(self):
        model = Model("mirror")
        model.add_node(
            "part",
            transform=Transform(scale=[-1.0, 1.0, 1.0]),
            mesh=MeshData(positions=np.eye(3), indices=[[0, 1, 2]]),
        )
        bake_transforms(model)
        np.testing.assert_array_equal(model.meshes[0].indices, [[0, 2, 1]])

    def test_singular_transform_with_normals_raises(self):
        model = Model("flat")
        node = model.add_node("part", mesh=box_mesh((1.0, 1.0, 1.0)))
        model.nodes[node].transform.scale = np.array([1.0, 0.0, 1.0])
        with self.assertRaises(DegenerateTransformError):
            bake_transforms(model)

    def test_failed_bake_leaves_model_untouched(self):
        model = Model("mixed")
        model.nodes[0].transform = Transform(translation=[10.0, 0.0, 0.0])
        model.add_node(
            "healthy",
            transform=Transform(translation=[0.0, 2.0, 0.0]),
            mesh=box_mesh((1.0, 1.0, 1.0)),
        )
        model.add_node(
            "flat",
            transform=Transform(scale=[2.0, 0.0, 1.0]),
            mesh=box_mesh((1.0, 1.0, 1.0)),
        )
        before = model.world_vertices().copy()
        mesh_count = len(model.meshes)

        with self.assertRaises(DegenerateTransformError):
            bake_transforms(model)

        np.testing.assert_array_equal(model.world_vertices(), before)
        np.testing.assert_array_equal(
            model.nodes[0].transform.translation, [10.0, 0.0, 0.0]
        )
        self.assertEqual(len(model.meshes), mesh_count)

    def test_bounds_unchanged_by_baking(self):
        before = compute_world_bounds(self.model)
        bake_transforms(self.model)
        after = compute_world_bounds(self.model)
        np.testing.assert_allclose(after.min, before.min, atol=1e-9)
        np.testing.assert_allclose(after.max, before.max, atol=1e-9)


if __name__ == "__main__":
    unittest.main()
