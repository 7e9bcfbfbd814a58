"""Bridge between trimesh scenes and the index-based Model.

trimesh owns the file formats; this module only converts its decoded scenes
into Model trees and back. Loader and exporter errors propagate unchanged.
"""

import io
import logging

from pathlib import Path

import numpy as np
import trimesh

from assetforge.errors import EncodingError
from assetforge.geometry.scene_graph import MeshData, Model, Transform

console_logger = logging.getLogger(__name__)


def from_trimesh_scene(scene: trimesh.Scene, name: str = "model") -> Model:
    """Convert a trimesh scene into a Model.

    Every geometry instance becomes a child of the root carrying its world
    transform. Instances of the same geometry share one mesh. World matrices
    with shear cannot be stored as a Transform, so they are baked into a
    private copy of the vertices instead.

    Args:
        scene: Decoded trimesh scene.
        name: Name for the root node.

    Returns:
        Model with one mesh node per geometry instance.
    """
    model = Model(name)
    mesh_indices: dict[str, int] = {}

    for node_name in scene.graph.nodes_geometry:
        matrix, geometry_name = scene.graph[node_name]
        geometry = scene.geometry.get(geometry_name)
        if not isinstance(geometry, trimesh.Trimesh):
            console_logger.debug(
                f"Skipping non-mesh geometry '{geometry_name}' on node '{node_name}'"
            )
            continue

        transform = Transform.from_matrix(matrix)
        if transform is None:
            console_logger.debug(
                f"Node '{node_name}' has a sheared transform; baking it on decode"
            )
            mesh = _mesh_from_trimesh(geometry.copy().apply_transform(matrix))
            model.add_node(node_name, mesh=mesh)
            continue

        if geometry_name not in mesh_indices:
            mesh_indices[geometry_name] = model.add_mesh(_mesh_from_trimesh(geometry))
        model.add_node(node_name, transform=transform, mesh=mesh_indices[geometry_name])

    return model


def _mesh_from_trimesh(geometry: trimesh.Trimesh) -> MeshData:
    return MeshData(
        positions=np.array(geometry.vertices, dtype=np.float64),
        indices=np.array(geometry.faces, dtype=np.int64),
        normals=np.array(geometry.vertex_normals, dtype=np.float64),
    )


def to_trimesh_scene(model: Model) -> trimesh.Scene:
    """Convert a Model into a flat trimesh scene of world-placed meshes."""
    scene = trimesh.Scene()
    used_names: set[str] = set()
    for node_index, matrix in model.world_matrices().items():
        node = model.nodes[node_index]
        if node.mesh is None:
            continue
        mesh = model.meshes[node.mesh]

        # Scene graph node names must be unique.
        node_name = node.name
        if node_name in used_names:
            node_name = f"{node.name}_{node_index}"
        used_names.add(node_name)

        geometry = trimesh.Trimesh(
            vertices=mesh.positions,
            faces=mesh.indices,
            vertex_normals=mesh.normals,
            process=False,
        )
        scene.add_geometry(
            geometry,
            node_name=node_name,
            geom_name=f"{node_name}_mesh",
            transform=matrix,
        )
    return scene


class TrimeshCodec:
    """Model codec backed by trimesh loaders and exporters."""

    def __init__(self, file_type: str = "glb"):
        """Initialize codec.

        Args:
            file_type: Default trimesh file type for decoding and encoding.
        """
        self.file_type = file_type

    def decode(
        self, data: bytes | str | Path, file_type: str | None = None
    ) -> Model:
        """Decode model bytes or a model file into a Model.

        Args:
            data: Raw file bytes or a path to a model file.
            file_type: Format of `data`. Defaults to the codec format for bytes
                and to the file suffix for paths.

        Returns:
            Decoded Model.
        """
        if isinstance(data, (str, Path)):
            path = Path(data)
            scene = trimesh.load(
                str(path),
                file_type=file_type or path.suffix.lstrip(".") or self.file_type,
                force="scene",
            )
            name = path.stem
        else:
            scene = trimesh.load(
                io.BytesIO(data), file_type=file_type or self.file_type, force="scene"
            )
            name = "model"

        model = from_trimesh_scene(scene, name=name)
        console_logger.info(
            f"Decoded '{name}': {len(model.nodes) - 1} mesh nodes, "
            f"{model.vertex_count()} vertices"
        )
        return model

    def encode(self, model: Model, file_type: str | None = None) -> bytes:
        """Encode a Model with trimesh's exporter.

        Args:
            model: Model to encode.
            file_type: Output format. Defaults to the codec format.

        Returns:
            Encoded file bytes.

        Raises:
            EncodingError: If the model has no vertices. trimesh refuses to
                export scenes without geometry.
        """
        file_type = file_type or self.file_type
        if model.vertex_count() == 0:
            raise EncodingError(
                f"Model '{model.name}' has no geometry; cannot export an empty "
                f"{file_type} scene"
            )
        exported = to_trimesh_scene(model).export(file_type=file_type)
        if isinstance(exported, str):
            exported = exported.encode("utf-8")
        console_logger.debug(f"Encoded '{model.name}' as {file_type}")
        return exported
