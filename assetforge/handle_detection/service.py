"""Weapon handle detection from a rendered front view.

The service never touches the caller's model: it orients a copy, renders it
through an injected renderer, finds the handle rows in the silhouette and
maps the result back into the caller's frame.
"""

import logging

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import numpy as np

from omegaconf import DictConfig, OmegaConf
from scipy.spatial.transform import Rotation

from assetforge.config import load_section
from assetforge.geometry.bounds import BoundingBox, compute_world_bounds
from assetforge.geometry.scene_graph import Model, Transform
from assetforge.handle_detection.camera import (
    VIEW_AXIS,
    OrthographicCamera,
    fit_front_camera,
)
from assetforge.handle_detection.orientation import (
    detect_axis_misalignment,
    needs_flip,
)
from assetforge.handle_detection.vertex_clusterer import cluster
from assetforge.handle_detection.width_profile import (
    GripBounds,
    WidthProfileConfig,
    find_handle_region,
    grip_bounds_for_region,
)
from assetforge.normalization.grip_estimator import (
    DEFAULT_GRIP_HEIGHT_FRACTION,
    GripCandidate,
    estimate_grip_point,
)
from assetforge.utils.image_utils import (
    blank_image,
    draw_box,
    encode_image_to_data_url,
    to_rgb_array,
)

console_logger = logging.getLogger(__name__)


class FrontViewRenderer(Protocol):
    """Renders a model through an orthographic front camera."""

    def render(self, model: Model, camera: OrthographicCamera) -> np.ndarray:
        """Return an (H, W), (H, W, 3) or (H, W, 4) raster of the camera size."""
        ...


class DetectionConfidence(str, Enum):
    """How the grip point was obtained."""

    HIGH = "high"
    """Grip refined from vertices inside a detected handle region."""

    LOW = "low"
    """Grip estimated from bounds alone."""


@dataclass
class HandleDetectionResult:
    """Detected grip of a weapon, expressed in the caller's model frame."""

    grip_point: np.ndarray
    """Grip point (x, y, z)."""

    vertices: np.ndarray
    """Vertices that support the grip, shape (K, 3)."""

    confidence: DetectionConfidence
    """HIGH when a handle region was found, LOW for the geometric fallback."""

    annotated_image: np.ndarray
    """Render used for detection with the handle box drawn on it."""

    grip_bounds: GripBounds | None = None
    """Handle box in pixels, None when no handle was found."""

    orientation_flipped: bool = False
    """True when the render was flipped 180 degrees before analysis."""

    orientation_correction: np.ndarray | None = None
    """Rotation (XYZ Euler radians) applied before rendering, if any."""

    def to_dict(self) -> dict:
        return {
            "grip_point": self.grip_point.tolist(),
            "vertices": self.vertices.tolist(),
            "confidence": self.confidence.value,
            "annotated_image": encode_image_to_data_url(self.annotated_image),
            "grip_bounds": (
                self.grip_bounds.to_dict() if self.grip_bounds is not None else None
            ),
            "orientation_flipped": self.orientation_flipped,
            "orientation_correction": (
                self.orientation_correction.tolist()
                if self.orientation_correction is not None
                else None
            ),
        }


@dataclass
class _OrientedView:
    model: Model
    bounds: BoundingBox
    camera: OrthographicCamera
    image: np.ndarray
    rotation: Rotation = field(default_factory=Rotation.identity)
    corrected: bool = False
    flipped: bool = False


class HandleDetectionService:
    """Locates the grip of a weapon model."""

    def __init__(self, renderer: FrontViewRenderer, cfg: DictConfig | None = None):
        """Initialize service.

        Args:
            renderer: Front-view renderer used for the silhouette.
            cfg: The `handle_detection` config section. Loads the packaged
                defaults when None.
        """
        self.renderer = renderer
        self.cfg = load_section("handle_detection", cfg)

        self.resolution = int(
            OmegaConf.select(self.cfg, "render_resolution", default=512)
        )
        self.camera_padding = float(
            OmegaConf.select(self.cfg, "camera_padding", default=0.1)
        )
        self.up_axis = str(OmegaConf.select(self.cfg, "up_axis", default="y"))
        self.box_padding_px = float(
            OmegaConf.select(self.cfg, "back_projection_padding_px", default=2)
        )
        self.width_config = WidthProfileConfig.from_cfg(
            OmegaConf.select(self.cfg, "width_profile", default=None)
        )
        self.background_brightness = float(
            OmegaConf.select(self.cfg, "orientation.background_brightness", default=30)
        )
        self.flip_brightness_ratio = float(
            OmegaConf.select(self.cfg, "orientation.flip_brightness_ratio", default=1.3)
        )
        self.outlier_distance = float(
            OmegaConf.select(self.cfg, "clustering.outlier_distance", default=0.2)
        )
        self.min_inlier_fraction = float(
            OmegaConf.select(self.cfg, "clustering.min_inlier_fraction", default=0.3)
        )
        self.decimals = int(
            OmegaConf.select(self.cfg, "clustering.decimals", default=3)
        )
        self.grip_height_fraction = float(
            OmegaConf.select(
                self.cfg, "grip_height_fraction", default=DEFAULT_GRIP_HEIGHT_FRACTION
            )
        )

    def detect_handle(self, model: Model) -> HandleDetectionResult:
        """Detect the grip of a weapon.

        Args:
            model: Weapon model. Not modified.

        Returns:
            Grip point and supporting data in the model's own frame. Models
            without geometry yield a LOW confidence result at the origin.
        """
        working = model.copy()
        bounds = compute_world_bounds(working)
        if bounds.is_empty:
            console_logger.warning(
                f"Model '{model.name}' has no geometry; returning origin grip"
            )
            return HandleDetectionResult(
                grip_point=np.zeros(3),
                vertices=np.zeros((0, 3)),
                confidence=DetectionConfidence.LOW,
                annotated_image=blank_image(self.resolution),
            )

        view = self._orient_and_render(working, bounds)

        region = find_handle_region(view.image, self.width_config)
        grip_bounds = (
            grip_bounds_for_region(view.image, region, self.width_config)
            if region is not None
            else None
        )

        if grip_bounds is None:
            console_logger.warning(
                f"No handle found for '{model.name}'; using geometric grip estimate"
            )
            grip = estimate_grip_point(view.bounds, self.grip_height_fraction)
            supporting = np.zeros((0, 3))
            confidence = DetectionConfidence.LOW
            annotated = to_rgb_array(view.image)
        else:
            candidate = self._back_project(view, grip_bounds)
            grip = candidate.grip_point
            supporting = candidate.points
            confidence = DetectionConfidence.HIGH
            annotated = draw_box(view.image, grip_bounds.as_box())

        # Undo the orientation correction so results match the caller's model.
        inverse = view.rotation.inv()
        grip = inverse.apply(grip)
        if len(supporting) > 0:
            supporting = inverse.apply(supporting)

        console_logger.info(
            f"Detected grip for '{model.name}' at {np.round(grip, 4).tolist()} "
            f"({confidence.value} confidence)"
        )
        return HandleDetectionResult(
            grip_point=grip,
            vertices=supporting,
            confidence=confidence,
            annotated_image=annotated,
            grip_bounds=grip_bounds,
            orientation_flipped=view.flipped,
            orientation_correction=(
                view.rotation.as_euler("xyz") if view.corrected else None
            ),
        )

    def _orient_and_render(self, working: Model, bounds: BoundingBox) -> _OrientedView:
        rotation = Rotation.identity()
        corrected = False

        misalignment = detect_axis_misalignment(bounds, self.up_axis)
        if misalignment is not None:
            console_logger.info(
                f"'{working.name}' lies along {misalignment.longest_axis}; "
                "rotating it upright"
            )
            self._rotate(working, misalignment.rotation)
            rotation = misalignment.rotation * rotation
            corrected = True
            bounds = compute_world_bounds(working)

        camera = fit_front_camera(bounds, self.resolution, self.camera_padding)
        image = self.renderer.render(working, camera)

        flipped = needs_flip(
            image, self.background_brightness, self.flip_brightness_ratio
        )
        if flipped:
            console_logger.info(f"'{working.name}' renders blade-down; flipping it")
            flip = Rotation.from_rotvec(np.pi * VIEW_AXIS)
            self._rotate(working, flip)
            rotation = flip * rotation
            corrected = True
            bounds = compute_world_bounds(working)
            camera = fit_front_camera(bounds, self.resolution, self.camera_padding)
            image = self.renderer.render(working, camera)

        return _OrientedView(
            model=working,
            bounds=bounds,
            camera=camera,
            image=image,
            rotation=rotation,
            corrected=corrected,
            flipped=flipped,
        )

    def _rotate(self, model: Model, rotation: Rotation) -> None:
        root = model.nodes[model.root]
        root.transform = Transform(rotation=rotation).compose(root.transform)

    def _back_project(
        self, view: _OrientedView, grip_bounds: GripBounds
    ) -> GripCandidate:
        vertices = view.model.world_vertices()
        in_box = view.camera.box_mask(vertices, grip_bounds, self.box_padding_px)
        candidates = vertices[in_box]

        if len(candidates) == 0:
            # Box corners missed every vertex; use the box center at the depth
            # of the geometry spanning the handle rows.
            in_rows = view.camera.rows_mask(
                vertices, grip_bounds.min_y, grip_bounds.max_y, self.box_padding_px
            )
            depth = (
                float(np.median(vertices[in_rows][:, 2]))
                if in_rows.any()
                else float(view.bounds.center[2])
            )
            candidates = view.camera.unproject(
                np.array([grip_bounds.center]), depth
            )
            console_logger.debug(
                f"No vertices inside handle box; using box center at z={depth:.4f}"
            )

        grip = cluster(
            candidates, self.outlier_distance, self.min_inlier_fraction, self.decimals
        )
        return GripCandidate(points=candidates, grip_point=grip)
