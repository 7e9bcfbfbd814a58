"""Decoded scene graph used by the normalization and detection code.

Nodes and meshes live in flat tables and reference each other by index, so a
mesh shared by several nodes is an explicit shared index rather than an
aliased object reference.
"""

import copy

from collections.abc import Iterator
from dataclasses import dataclass, field

import numpy as np

from scipy.spatial.transform import Rotation


_SHEAR_TOLERANCE = 1e-6
_MIN_SCALE = 1e-12


@dataclass
class Transform:
    """Local transform of a node, applied as translation * rotation * scale."""

    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    """Translation (x, y, z)."""

    rotation: Rotation = field(default_factory=Rotation.identity)
    """Rotation as a scipy Rotation."""

    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    """Per-axis scale (x, y, z)."""

    def __post_init__(self) -> None:
        self.translation = np.asarray(self.translation, dtype=np.float64).reshape(3)
        self.scale = np.asarray(self.scale, dtype=np.float64).reshape(3)

    @classmethod
    def identity(cls) -> "Transform":
        return cls()

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "Transform | None":
        """Decompose a 4x4 affine matrix into translation, rotation and scale.

        Returns None when the matrix carries shear or a zero scale, which a
        TRS transform cannot represent.
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        linear = matrix[:3, :3]
        scale = np.linalg.norm(linear, axis=0)
        if np.any(scale < _MIN_SCALE):
            return None

        # A mirrored basis is expressed as a negative X scale.
        if np.linalg.det(linear) < 0:
            scale[0] = -scale[0]

        rotation_matrix = linear / scale
        if not np.allclose(
            rotation_matrix.T @ rotation_matrix, np.eye(3), atol=_SHEAR_TOLERANCE
        ):
            return None

        return cls(
            translation=matrix[:3, 3].copy(),
            rotation=Rotation.from_matrix(rotation_matrix),
            scale=scale,
        )

    def to_matrix(self) -> np.ndarray:
        matrix = np.eye(4)
        matrix[:3, :3] = self.rotation.as_matrix() * self.scale
        matrix[:3, 3] = self.translation
        return matrix

    def compose(self, other: "Transform") -> "Transform":
        """Return the transform that applies `other` first, then `self`.

        Raises:
            ValueError: If the composition introduces shear (non-uniform scale
                under a rotation), which cannot be stored as a Transform.
        """
        composed = Transform.from_matrix(self.to_matrix() @ other.to_matrix())
        if composed is None:
            raise ValueError("Composed transform has shear and cannot be stored")
        return composed

    def is_identity(self, atol: float = 1e-9) -> bool:
        return (
            np.allclose(self.translation, 0.0, atol=atol)
            and np.allclose(self.scale, 1.0, atol=atol)
            and self.rotation.magnitude() <= atol
        )

    def reset(self) -> None:
        """Reset to identity in place."""
        self.translation = np.zeros(3)
        self.rotation = Rotation.identity()
        self.scale = np.ones(3)


@dataclass
class MeshData:
    """Triangle mesh buffers in the owning node's local space."""

    positions: np.ndarray
    """Vertex positions, shape (N, 3)."""

    indices: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=int))
    """Triangle vertex indices, shape (M, 3)."""

    normals: np.ndarray | None = None
    """Optional per-vertex normals, shape (N, 3)."""

    def __post_init__(self) -> None:
        self.positions = np.asarray(self.positions, dtype=np.float64).reshape(-1, 3)
        self.indices = np.asarray(self.indices, dtype=np.int64).reshape(-1, 3)
        if self.normals is not None:
            self.normals = np.asarray(self.normals, dtype=np.float64).reshape(-1, 3)
            if len(self.normals) != len(self.positions):
                raise ValueError(
                    f"Got {len(self.normals)} normals for "
                    f"{len(self.positions)} vertices"
                )

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    def copy(self) -> "MeshData":
        return MeshData(
            positions=self.positions.copy(),
            indices=self.indices.copy(),
            normals=None if self.normals is None else self.normals.copy(),
        )


@dataclass
class SceneNode:
    """A node in the model tree."""

    name: str
    """Node name, kept for logging and re-encoding."""

    transform: Transform = field(default_factory=Transform)
    """Local transform relative to the parent."""

    mesh: int | None = None
    """Index into `Model.meshes`, or None for transform-only group nodes."""

    parent: int | None = None
    """Index of the parent node, None for the root."""

    children: list[int] = field(default_factory=list)
    """Indices of child nodes."""


class Model:
    """Tree of scene nodes with an index-addressed mesh table.

    The first node is the root. Meshes may be referenced by several nodes.
    """

    def __init__(self, name: str = "model"):
        self.nodes: list[SceneNode] = []
        self.meshes: list[MeshData] = []
        self.root = self.add_node(name)

    @property
    def name(self) -> str:
        return self.nodes[self.root].name

    def add_mesh(self, mesh: MeshData) -> int:
        self.meshes.append(mesh)
        return len(self.meshes) - 1

    def add_node(
        self,
        name: str,
        parent: int | None = None,
        transform: Transform | None = None,
        mesh: "int | MeshData | None" = None,
    ) -> int:
        """Add a node and return its index.

        Args:
            name: Node name.
            parent: Parent node index. Defaults to the root (or no parent for
                the first node, which becomes the root).
            transform: Local transform, identity when omitted.
            mesh: Existing mesh index to share, or a MeshData to register.

        Returns:
            Index of the new node.
        """
        if isinstance(mesh, MeshData):
            mesh = self.add_mesh(mesh)
        if mesh is not None and not 0 <= mesh < len(self.meshes):
            raise ValueError(f"Mesh index {mesh} out of range")
        if parent is None and self.nodes:
            parent = self.root

        index = len(self.nodes)
        self.nodes.append(
            SceneNode(
                name=name,
                transform=transform if transform is not None else Transform(),
                mesh=mesh,
                parent=parent,
            )
        )
        if parent is not None:
            self.nodes[parent].children.append(index)
        return index

    def traverse(self, start: int | None = None) -> Iterator[int]:
        """Yield node indices depth-first, parents before children."""
        stack = [self.root if start is None else start]
        while stack:
            index = stack.pop()
            yield index
            stack.extend(reversed(self.nodes[index].children))

    def world_matrix(self, index: int) -> np.ndarray:
        """Resolve the world matrix of a node by walking up its parents."""
        matrix = np.eye(4)
        current: int | None = index
        while current is not None:
            node = self.nodes[current]
            matrix = node.transform.to_matrix() @ matrix
            current = node.parent
        return matrix

    def world_matrices(self, start: int | None = None) -> dict[int, np.ndarray]:
        """World matrices of every node in a subtree, computed top-down."""
        start = self.root if start is None else start
        parent = self.nodes[start].parent
        base = np.eye(4) if parent is None else self.world_matrix(parent)

        matrices: dict[int, np.ndarray] = {}
        for index in self.traverse(start):
            node = self.nodes[index]
            if index == start:
                parent_matrix = base
            else:
                parent_matrix = matrices[node.parent]
            matrices[index] = parent_matrix @ node.transform.to_matrix()
        return matrices

    def mesh_users(self) -> dict[int, list[int]]:
        """Map each referenced mesh index to the nodes using it."""
        users: dict[int, list[int]] = {}
        for index in self.traverse():
            mesh = self.nodes[index].mesh
            if mesh is not None:
                users.setdefault(mesh, []).append(index)
        return users

    def world_vertices(self, start: int | None = None) -> np.ndarray:
        """All vertex positions of a subtree in world space, shape (K, 3)."""
        chunks = []
        for index, matrix in self.world_matrices(start).items():
            mesh_index = self.nodes[index].mesh
            if mesh_index is None:
                continue
            positions = self.meshes[mesh_index].positions
            if len(positions) == 0:
                continue
            chunks.append(positions @ matrix[:3, :3].T + matrix[:3, 3])
        if not chunks:
            return np.zeros((0, 3))
        return np.concatenate(chunks, axis=0)

    def vertex_count(self) -> int:
        return sum(
            self.meshes[self.nodes[i].mesh].vertex_count
            for i in self.traverse()
            if self.nodes[i].mesh is not None
        )

    def copy(self) -> "Model":
        """Deep copy, preserving mesh sharing between nodes."""
        return copy.deepcopy(self)
