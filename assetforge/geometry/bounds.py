"""World-space axis-aligned bounding boxes."""

from dataclasses import dataclass

import numpy as np

from assetforge.errors import EmptyBoundsError
from assetforge.geometry.scene_graph import Model


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box with an explicit empty state.

    Size, center and height of an empty box raise EmptyBoundsError instead of
    returning zeros or NaN.
    """

    min: np.ndarray
    """Minimum corner (x, y, z). Meaningless when empty."""

    max: np.ndarray
    """Maximum corner (x, y, z). Meaningless when empty."""

    is_empty: bool = False
    """True when the box encloses no geometry."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "min", np.asarray(self.min, dtype=np.float64))
        object.__setattr__(self, "max", np.asarray(self.max, dtype=np.float64))
        if not self.is_empty and np.any(self.min > self.max):
            raise ValueError(f"Bounding box min {self.min} exceeds max {self.max}")

    @classmethod
    def empty(cls) -> "BoundingBox":
        return cls(min=np.full(3, np.inf), max=np.full(3, -np.inf), is_empty=True)

    @classmethod
    def from_points(cls, points: np.ndarray) -> "BoundingBox":
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(points) == 0:
            return cls.empty()
        return cls(min=points.min(axis=0), max=points.max(axis=0))

    def _require_geometry(self) -> None:
        if self.is_empty:
            raise EmptyBoundsError("Bounding box is empty")

    @property
    def size(self) -> np.ndarray:
        self._require_geometry()
        return self.max - self.min

    @property
    def center(self) -> np.ndarray:
        self._require_geometry()
        return (self.min + self.max) / 2.0

    @property
    def height(self) -> float:
        return float(self.size[1])

    def union(self, other: "BoundingBox") -> "BoundingBox":
        if self.is_empty:
            return other
        if other.is_empty:
            return self
        return BoundingBox(
            min=np.minimum(self.min, other.min), max=np.maximum(self.max, other.max)
        )

    def to_dict(self) -> dict:
        """JSON-serializable form; empty boxes carry null corners."""
        if self.is_empty:
            return {"min": None, "max": None, "is_empty": True}
        return {
            "min": self.min.tolist(),
            "max": self.max.tolist(),
            "is_empty": False,
        }


def compute_world_bounds(model: Model, node_index: int | None = None) -> BoundingBox:
    """Compute the world-space bounds of every vertex below a node.

    Args:
        model: Model to measure.
        node_index: Subtree root. Defaults to the model root.

    Returns:
        Bounds over all world-space vertex positions, or an empty box when the
        subtree holds no vertices.
    """
    return BoundingBox.from_points(model.world_vertices(node_index))
