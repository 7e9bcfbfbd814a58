"""Robust grip refinement from candidate handle vertices."""

import numpy as np

DEFAULT_OUTLIER_DISTANCE = 0.2
DEFAULT_MIN_INLIER_FRACTION = 0.3
DEFAULT_DECIMALS = 3


def cluster(
    points: np.ndarray,
    outlier_distance: float = DEFAULT_OUTLIER_DISTANCE,
    min_inlier_fraction: float = DEFAULT_MIN_INLIER_FRACTION,
    decimals: int = DEFAULT_DECIMALS,
) -> np.ndarray:
    """Outlier-filtered centroid of candidate points.

    Points farther than `outlier_distance` from the raw centroid are dropped
    and the centroid is recomputed from the rest. If fewer than
    `min_inlier_fraction` of the points survive, the raw centroid is kept.

    Args:
        points: Candidate points, shape (K, 3).
        outlier_distance: Distance from the raw centroid beyond which a point
            is an outlier.
        min_inlier_fraction: Minimum surviving fraction to trust the filter.
        decimals: Rounding applied to the result.

    Returns:
        Grip point (x, y, z); exactly the origin for empty input.
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if len(points) == 0:
        return np.zeros(3)

    centroid = points.mean(axis=0)
    distances = np.linalg.norm(points - centroid, axis=1)
    inliers = points[distances <= outlier_distance]
    if len(inliers) > 0 and len(inliers) >= min_inlier_fraction * len(points):
        centroid = inliers.mean(axis=0)

    # Adding 0.0 turns -0.0 into 0.0.
    return np.round(centroid, decimals) + 0.0
