"""Canonical orthographic front camera and pixel back-projection.

The camera looks down -Z at the model, image X follows world +X and image
rows grow downward along world -Y.
"""

from dataclasses import dataclass

import numpy as np

from assetforge.geometry.bounds import BoundingBox
from assetforge.handle_detection.width_profile import GripBounds

VIEW_AXIS = np.array([0.0, 0.0, 1.0])


@dataclass(frozen=True)
class OrthographicCamera:
    """Square orthographic view centered on a model."""

    center: np.ndarray
    """World point at the image center."""

    extent: float
    """World-space width (and height) covered by the image."""

    resolution: int
    """Image width and height in pixels."""

    @property
    def pixels_per_unit(self) -> float:
        return self.resolution / self.extent

    def project(self, points: np.ndarray) -> np.ndarray:
        """World points (K, 3) to continuous pixel coordinates (K, 2)."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        half = self.resolution / 2.0
        px = half + (points[:, 0] - self.center[0]) * self.pixels_per_unit
        py = half - (points[:, 1] - self.center[1]) * self.pixels_per_unit
        return np.stack([px, py], axis=1)

    def unproject(self, pixels: np.ndarray, depth: float) -> np.ndarray:
        """Pixel coordinates (K, 2) to world points (K, 3) at a given Z."""
        pixels = np.asarray(pixels, dtype=np.float64).reshape(-1, 2)
        half = self.resolution / 2.0
        x = self.center[0] + (pixels[:, 0] - half) / self.pixels_per_unit
        y = self.center[1] - (pixels[:, 1] - half) / self.pixels_per_unit
        return np.stack([x, y, np.full(len(pixels), float(depth))], axis=1)

    def rows_mask(
        self, points: np.ndarray, min_y: int, max_y: int, padding_px: float = 0.0
    ) -> np.ndarray:
        """Points whose projection falls in pixel rows [min_y, max_y]."""
        py = self.project(points)[:, 1]
        return (py >= min_y - padding_px) & (py <= max_y + 1 + padding_px)

    def box_mask(
        self, points: np.ndarray, box: GripBounds, padding_px: float = 0.0
    ) -> np.ndarray:
        """Points whose projection falls inside a pixel box."""
        pixels = self.project(points)
        return (
            (pixels[:, 0] >= box.min_x - padding_px)
            & (pixels[:, 0] <= box.max_x + 1 + padding_px)
            & self.rows_mask(points, box.min_y, box.max_y, padding_px)
        )


def fit_front_camera(
    bounds: BoundingBox, resolution: int = 512, padding: float = 0.1
) -> OrthographicCamera:
    """Frame a model in a square front view.

    Args:
        bounds: Model bounds.
        resolution: Image size in pixels.
        padding: Fraction of the largest extent added as margin.

    Returns:
        Camera centered on the bounds.

    Raises:
        EmptyBoundsError: If `bounds` is empty.
    """
    largest = float(np.max(bounds.size))
    if largest <= 0.0:
        largest = 1.0
    return OrthographicCamera(
        center=bounds.center,
        extent=largest * (1.0 + padding),
        resolution=resolution,
    )
