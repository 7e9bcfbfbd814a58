"""Bake accumulated node transforms into vertex data.

After baking, every node has an identity local transform and each mesh holds
world-space positions. Baking an already baked model leaves it unchanged.
"""

import logging

import numpy as np

from assetforge.errors import DegenerateTransformError
from assetforge.geometry.scene_graph import MeshData, Model

console_logger = logging.getLogger(__name__)

_SINGULAR_DETERMINANT = 1e-12


def _split_shared_meshes(model: Model) -> int:
    """Give every node its own mesh so baking one node cannot corrupt another.

    The first user keeps the original buffers; every other user gets a copy.

    Returns:
        Number of meshes copied.
    """
    copied = 0
    for mesh_index, users in model.mesh_users().items():
        for node_index in users[1:]:
            model.nodes[node_index].mesh = model.add_mesh(
                model.meshes[mesh_index].copy()
            )
            copied += 1
    return copied


def _check_bakeable(model: Model, world_matrices: dict[int, np.ndarray]) -> None:
    for node_index, matrix in world_matrices.items():
        node = model.nodes[node_index]
        if node.mesh is None or model.meshes[node.mesh].normals is None:
            continue
        determinant = np.linalg.det(matrix[:3, :3])
        if abs(determinant) < _SINGULAR_DETERMINANT:
            raise DegenerateTransformError(
                f"Node '{node.name}' has a singular transform "
                f"(determinant {determinant:.3g}); normals cannot be baked"
            )


def _bake_mesh(mesh: MeshData, matrix: np.ndarray) -> None:
    linear = matrix[:3, :3]
    determinant = np.linalg.det(linear)

    mesh.positions = mesh.positions @ linear.T + matrix[:3, 3]

    if mesh.normals is not None:
        normal_matrix = np.linalg.inv(linear).T
        normals = mesh.normals @ normal_matrix.T
        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        mesh.normals = np.divide(
            normals, lengths, out=np.zeros_like(normals), where=lengths > 0
        )

    # Mirroring flips triangle orientation; swap two corners to keep faces
    # pointing outward.
    if determinant < 0 and len(mesh.indices) > 0:
        mesh.indices = mesh.indices[:, [0, 2, 1]]


def bake_transforms(model: Model) -> None:
    """Apply every node's world transform to its mesh and reset all transforms.

    Shared meshes are copied first. Group nodes without meshes are reset too.
    Every node is checked before anything is modified, so a failed bake leaves
    the model untouched.

    Args:
        model: Model to bake in place.

    Raises:
        DegenerateTransformError: If a singular transform would be applied to
            a mesh that carries normals.
    """
    world_matrices = model.world_matrices()
    _check_bakeable(model, world_matrices)

    copied = _split_shared_meshes(model)
    if copied:
        console_logger.debug(f"Copied {copied} shared meshes before baking")

    identity = np.eye(4)
    baked = 0
    for node_index, matrix in world_matrices.items():
        node = model.nodes[node_index]
        if node.mesh is not None and not np.array_equal(matrix, identity):
            _bake_mesh(model.meshes[node.mesh], matrix)
            baked += 1
        node.transform.reset()

    console_logger.debug(f"Baked transforms into {baked} meshes of '{model.name}'")
