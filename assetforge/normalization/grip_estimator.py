"""Geometric grip fallback for weapons without a detected handle."""

from dataclasses import dataclass

import numpy as np

from assetforge.geometry.bounds import BoundingBox

DEFAULT_GRIP_HEIGHT_FRACTION = 0.2


@dataclass
class GripCandidate:
    """Points considered for a grip and the grip refined from them."""

    points: np.ndarray
    """Candidate points, shape (K, 3)."""

    grip_point: np.ndarray
    """Grip point refined from `points`."""


def estimate_grip_point(
    bounds: BoundingBox, height_fraction: float = DEFAULT_GRIP_HEIGHT_FRACTION
) -> np.ndarray:
    """Estimate a weapon grip from its bounds alone.

    Places the grip a fixed fraction of the vertical extent above the lowest
    point, centered on X and Z. This is a low-confidence heuristic used when
    neither an explicit grip nor a rendered analysis is available.

    Args:
        bounds: World-space bounds of the weapon.
        height_fraction: Fraction of the height above min-Y.

    Returns:
        Grip point (x, y, z).

    Raises:
        EmptyBoundsError: If `bounds` is empty.
    """
    center = bounds.center
    grip_y = bounds.min[1] + bounds.height * height_fraction
    return np.array([center[0], grip_y, center[2]])
