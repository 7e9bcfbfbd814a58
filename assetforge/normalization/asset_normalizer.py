"""Category-aware normalization of decoded models.

The normalizer computes one transform per call, composes it onto the model
root and bakes it into the vertices, so the output carries identity
transforms everywhere and obeys the category's convention.
"""

import logging
import math

from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from omegaconf import DictConfig, OmegaConf
from scipy.spatial.transform import Rotation

from assetforge.config import load_section
from assetforge.errors import InvalidScaleFactorError
from assetforge.geometry.bounds import BoundingBox, compute_world_bounds
from assetforge.geometry.scene_graph import Model, Transform
from assetforge.geometry.transform_baker import bake_transforms
from assetforge.geometry.trimesh_codec import TrimeshCodec
from assetforge.normalization.conventions import (
    AssetCategory,
    AssetConvention,
    is_helmet_subtype,
    load_conventions,
)
from assetforge.normalization.grip_estimator import (
    DEFAULT_GRIP_HEIGHT_FRACTION,
    estimate_grip_point,
)

console_logger = logging.getLogger(__name__)


@dataclass
class NormalizationOptions:
    """Per-call options for AssetNormalizer.normalize."""

    grip_point: np.ndarray | None = None
    """Weapon grip in model space. Estimated from the bounds when None."""

    target_height: float | None = None
    """Character height override. Uses the convention default when None."""

    rotation: np.ndarray | None = None
    """Weapon rotation as XYZ Euler radians, applied about the grip."""

    clone: bool = False
    """Normalize a copy and leave the caller's model untouched."""


@dataclass(frozen=True)
class AppliedTransform:
    """The exact transform that was baked into the model."""

    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    """Translation (x, y, z), applied after rotation and scale."""

    rotation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    """Rotation as XYZ Euler angles in radians."""

    scale: float = 1.0
    """Uniform scale factor."""

    @classmethod
    def from_transform(cls, transform: Transform) -> "AppliedTransform":
        return cls(
            translation=transform.translation.copy(),
            rotation=transform.rotation.as_euler("xyz"),
            scale=float(transform.scale[0]),
        )

    def to_dict(self) -> dict:
        return {
            "translation": self.translation.tolist(),
            "rotation": self.rotation.tolist(),
            "scale": self.scale,
        }


@dataclass(frozen=True)
class Dimensions:
    """Extents of normalized geometry in meters."""

    width: float
    """Extent along X."""

    height: float
    """Extent along Y."""

    depth: float
    """Extent along Z."""

    @classmethod
    def from_bounds(cls, bounds: BoundingBox) -> "Dimensions | None":
        if bounds.is_empty:
            return None
        width, height, depth = (float(v) for v in bounds.size)
        return cls(width=width, height=height, depth=depth)

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height, "depth": self.depth}


@dataclass(frozen=True)
class NormalizationResult:
    """Outcome of normalizing one model."""

    category: AssetCategory
    """Category whose convention was applied."""

    original_bounds: BoundingBox
    """World bounds before normalization."""

    normalized_bounds: BoundingBox
    """World bounds after normalization."""

    transform: AppliedTransform
    """Transform baked into the model."""

    dimensions: Dimensions | None
    """Output dimensions, None for empty geometry."""

    subtype: str | None = None
    """Subtype passed by the caller, if any."""

    output: bytes | None = None
    """Encoded model when the normalizer has a codec."""

    def to_dict(self) -> dict:
        """JSON-serializable summary. Encoded output is reported by size only."""
        return {
            "category": self.category.value,
            "subtype": self.subtype,
            "original_bounds": self.original_bounds.to_dict(),
            "normalized_bounds": self.normalized_bounds.to_dict(),
            "transform": self.transform.to_dict(),
            "dimensions": (
                self.dimensions.to_dict() if self.dimensions is not None else None
            ),
            "output_size": len(self.output) if self.output is not None else None,
        }


class AssetNormalizer:
    """Normalizes models to the spatial convention of their category."""

    def __init__(
        self, cfg: DictConfig | None = None, codec: TrimeshCodec | None = None
    ):
        """Initialize normalizer.

        Args:
            cfg: The `normalization` config section. Loads the packaged
                defaults when None.
            codec: Optional codec used to encode the normalized model into
                `NormalizationResult.output`.
        """
        self.cfg = load_section("normalization", cfg)
        self.codec = codec
        self.conventions = load_conventions(self.cfg)
        self.helmet_subtypes = list(
            OmegaConf.select(self.cfg, "helmet_subtypes", default=[])
        )
        self.grip_height_fraction = float(
            OmegaConf.select(
                self.cfg, "grip_height_fraction", default=DEFAULT_GRIP_HEIGHT_FRACTION
            )
        )

        self._builders: dict[
            AssetCategory,
            Callable[[BoundingBox, str | None, NormalizationOptions], Transform],
        ] = {
            AssetCategory.WEAPON: self._weapon_transform,
            AssetCategory.CHARACTER: self._character_transform,
            AssetCategory.ARMOR: self._armor_transform,
            AssetCategory.BUILDING: self._ground_transform,
            AssetCategory.ITEM: self._ground_transform,
        }

    def convention(self, category: AssetCategory | str) -> AssetConvention:
        return self.conventions[AssetCategory.parse(category)]

    def normalize(
        self,
        model: Model,
        category: AssetCategory | str,
        subtype: str | None = None,
        options: NormalizationOptions | None = None,
    ) -> NormalizationResult:
        """Normalize a model in place (or a clone of it).

        Args:
            model: Decoded model.
            category: Asset category. Unknown names use the item rules.
            subtype: Optional subtype, e.g. "helmet" for armor.
            options: Per-call options.

        Returns:
            Bounds before and after, the baked transform and the dimensions.

        Raises:
            InvalidScaleFactorError: If a character cannot be scaled to its
                target height (zero height or non-finite factor).
            EncodingError: If a codec is configured and the model has no
                geometry to encode.
        """
        options = options or NormalizationOptions()
        category = AssetCategory.parse(category)
        if options.clone:
            model = model.copy()

        original_bounds = compute_world_bounds(model)
        if original_bounds.is_empty:
            console_logger.warning(
                f"Model '{model.name}' has no geometry; skipping {category.value} "
                "normalization"
            )
            return NormalizationResult(
                category=category,
                subtype=subtype,
                original_bounds=original_bounds,
                normalized_bounds=original_bounds,
                transform=AppliedTransform(),
                dimensions=None,
                output=self.codec.encode(model) if self.codec is not None else None,
            )

        transform = self._builders[category](original_bounds, subtype, options)
        console_logger.debug(
            f"Normalization transform for '{model.name}': "
            f"translation={transform.translation}, "
            f"rotation={transform.rotation.as_euler('xyz')}, scale={transform.scale[0]}"
        )

        # The root must be identity before composing for the result to stay TRS.
        bake_transforms(model)
        root = model.nodes[model.root]
        root.transform = transform.compose(root.transform)
        bake_transforms(model)

        normalized_bounds = compute_world_bounds(model)
        output = self.codec.encode(model) if self.codec is not None else None

        console_logger.info(
            f"Normalized '{model.name}' as {category.value}"
            + (f"/{subtype}" if subtype else "")
            + f": size {normalized_bounds.size.round(4).tolist()}"
        )
        return NormalizationResult(
            category=category,
            subtype=subtype,
            original_bounds=original_bounds,
            normalized_bounds=normalized_bounds,
            transform=AppliedTransform.from_transform(transform),
            dimensions=Dimensions.from_bounds(normalized_bounds),
            output=output,
        )

    def _weapon_transform(
        self, bounds: BoundingBox, subtype: str | None, options: NormalizationOptions
    ) -> Transform:
        if options.grip_point is not None:
            grip = np.asarray(options.grip_point, dtype=np.float64).reshape(3)
        else:
            grip = estimate_grip_point(bounds, self.grip_height_fraction)
            console_logger.debug(f"No grip point given; estimated {grip}")

        rotation = (
            Rotation.from_euler("xyz", np.asarray(options.rotation, dtype=np.float64))
            if options.rotation is not None
            else Rotation.identity()
        )
        # Move the grip to the origin, then rotate about it.
        return Transform(translation=rotation.apply(-grip), rotation=rotation)

    def _character_transform(
        self, bounds: BoundingBox, subtype: str | None, options: NormalizationOptions
    ) -> Transform:
        target_height = options.target_height
        if target_height is None:
            target_height = self.conventions[AssetCategory.CHARACTER].target_height

        height = bounds.height
        if height <= 0.0 or not math.isfinite(height):
            raise InvalidScaleFactorError(height, target_height)
        scale = target_height / height
        if not math.isfinite(scale) or scale <= 0.0:
            raise InvalidScaleFactorError(height, target_height)

        center = bounds.center
        translation = -scale * np.array([center[0], bounds.min[1], center[2]])
        return Transform(translation=translation, scale=np.full(3, scale))

    def _armor_transform(
        self, bounds: BoundingBox, subtype: str | None, options: NormalizationOptions
    ) -> Transform:
        if is_helmet_subtype(subtype, self.helmet_subtypes):
            return self._ground_transform(bounds, subtype, options)
        return Transform(translation=-bounds.center)

    def _ground_transform(
        self, bounds: BoundingBox, subtype: str | None, options: NormalizationOptions
    ) -> Transform:
        center = bounds.center
        return Transform(translation=-np.array([center[0], bounds.min[1], center[2]]))
