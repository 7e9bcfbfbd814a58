"""Scene graph, bounds and transform baking.

Provides:
- Model: Index-based node tree with a shared mesh table
- compute_world_bounds: World-space bounding box of a subtree
- bake_transforms: Flatten node transforms into vertex data
- TrimeshCodec: Decode and encode models through trimesh
"""

from assetforge.geometry.bounds import BoundingBox, compute_world_bounds
from assetforge.geometry.scene_graph import MeshData, Model, SceneNode, Transform
from assetforge.geometry.transform_baker import bake_transforms
from assetforge.geometry.trimesh_codec import (
    TrimeshCodec,
    from_trimesh_scene,
    to_trimesh_scene,
)

__all__ = [
    "BoundingBox",
    "MeshData",
    "Model",
    "SceneNode",
    "Transform",
    "TrimeshCodec",
    "bake_transforms",
    "compute_world_bounds",
    "from_trimesh_scene",
    "to_trimesh_scene",
]
