"""Weapon handle detection.

Provides:
- HandleDetectionService: Orient, render and analyze a weapon for its grip
- find_handle_region: Width-profile handle localization on a silhouette
- detect_axis_misalignment / needs_flip: Orientation checks
- cluster: Outlier-filtered centroid of candidate grip vertices
"""

from assetforge.handle_detection.camera import OrthographicCamera, fit_front_camera
from assetforge.handle_detection.orientation import (
    AxisMisalignment,
    detect_axis_misalignment,
    needs_flip,
)
from assetforge.handle_detection.service import (
    DetectionConfidence,
    FrontViewRenderer,
    HandleDetectionResult,
    HandleDetectionService,
)
from assetforge.handle_detection.vertex_clusterer import cluster
from assetforge.handle_detection.width_profile import (
    GripBounds,
    HandleRegion,
    WidthProfileConfig,
    compute_width_profile,
    find_handle_region,
)

__all__ = [
    "AxisMisalignment",
    "DetectionConfidence",
    "FrontViewRenderer",
    "GripBounds",
    "HandleDetectionResult",
    "HandleDetectionService",
    "HandleRegion",
    "OrthographicCamera",
    "WidthProfileConfig",
    "cluster",
    "compute_width_profile",
    "detect_axis_misalignment",
    "find_handle_region",
    "fit_front_camera",
    "needs_flip",
]
