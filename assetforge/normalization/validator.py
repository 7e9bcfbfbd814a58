"""Checks that a model already satisfies its category convention."""

import logging

from dataclasses import dataclass

import numpy as np

from omegaconf import DictConfig, OmegaConf

from assetforge.config import load_section
from assetforge.geometry.bounds import BoundingBox, compute_world_bounds
from assetforge.geometry.scene_graph import Model
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


@dataclass(frozen=True)
class ValidationReport:
    """Result of validating one model."""

    origin_correct: bool
    """Origin sits where the convention puts it."""

    scale_correct: bool
    """Scale matches the convention (height window for characters)."""

    transforms_baked: bool
    """Every node carries an identity transform."""

    errors: tuple[str, ...]
    """Human-readable descriptions of each failed check."""

    convention: AssetConvention
    """Convention the model was checked against."""

    @property
    def is_valid(self) -> bool:
        return self.origin_correct and self.scale_correct and self.transforms_baked

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "origin_correct": self.origin_correct,
            "scale_correct": self.scale_correct,
            "transforms_baked": self.transforms_baked,
            "errors": list(self.errors),
            "convention": self.convention.to_dict(),
        }


class NormalizationValidator:
    """Read-only checks mirroring AssetNormalizer's rules."""

    def __init__(self, cfg: DictConfig | None = None):
        self.cfg = load_section("normalization", cfg)
        self.conventions = load_conventions(self.cfg)
        self.tolerance = float(
            OmegaConf.select(self.cfg, "origin_tolerance", default=0.01)
        )
        self.helmet_subtypes = list(
            OmegaConf.select(self.cfg, "helmet_subtypes", default=[])
        )
        self.grip_height_fraction = float(
            OmegaConf.select(
                self.cfg, "grip_height_fraction", default=DEFAULT_GRIP_HEIGHT_FRACTION
            )
        )

    def validate(
        self,
        model: Model,
        category: AssetCategory | str,
        subtype: str | None = None,
        grip_point: np.ndarray | None = None,
    ) -> ValidationReport:
        """Validate a model against its category convention.

        The model is not modified.

        Args:
            model: Model to check.
            category: Asset category. Unknown names use the item rules.
            subtype: Optional subtype, e.g. "helmet" for armor.
            grip_point: Known weapon grip. Estimated from the bounds when None.

        Returns:
            ValidationReport listing every failed check.
        """
        category = AssetCategory.parse(category)
        convention = self.conventions[category]
        errors: list[str] = []

        unbaked = [
            model.nodes[i].name
            for i in model.traverse()
            if not model.nodes[i].transform.is_identity()
        ]
        transforms_baked = not unbaked
        if unbaked:
            errors.append(f"Transforms not baked on nodes: {', '.join(unbaked)}")

        bounds = compute_world_bounds(model)
        if bounds.is_empty:
            console_logger.warning(f"Model '{model.name}' has no geometry to validate")
            return ValidationReport(
                origin_correct=False,
                scale_correct=False,
                transforms_baked=False,
                errors=("Model has no geometry",),
                convention=convention,
            )

        scale_correct = True
        if category == AssetCategory.WEAPON:
            if grip_point is not None:
                grip = np.asarray(grip_point, dtype=np.float64).reshape(3)
            else:
                grip = estimate_grip_point(bounds, self.grip_height_fraction)
            distance = float(np.linalg.norm(grip))
            origin_correct = distance <= self.tolerance
            if not origin_correct:
                errors.append(
                    f"Grip point {grip.round(4).tolist()} is {distance:.4f} from origin"
                )
        elif category == AssetCategory.ARMOR and not is_helmet_subtype(
            subtype, self.helmet_subtypes
        ):
            origin_correct = self._check_centered(bounds, errors)
        else:
            origin_correct = self._check_grounded(bounds, errors)

        if category == AssetCategory.CHARACTER:
            scale_correct = self._check_height(bounds, convention, errors)

        report = ValidationReport(
            origin_correct=origin_correct,
            scale_correct=scale_correct,
            transforms_baked=transforms_baked,
            errors=tuple(errors),
            convention=convention,
        )
        console_logger.debug(
            f"Validated '{model.name}' as {category.value}: valid={report.is_valid}"
        )
        return report

    def _check_centered(self, bounds: BoundingBox, errors: list[str]) -> bool:
        center = bounds.center
        if np.all(np.abs(center) <= self.tolerance):
            return True
        errors.append(f"Center {center.round(4).tolist()} is not at origin")
        return False

    def _check_grounded(self, bounds: BoundingBox, errors: list[str]) -> bool:
        ok = True
        min_y = float(bounds.min[1])
        if abs(min_y) > self.tolerance:
            errors.append(f"Lowest point Y={min_y:.4f} is not on the ground")
            ok = False
        center = bounds.center
        if abs(center[0]) > self.tolerance or abs(center[2]) > self.tolerance:
            errors.append(
                f"X/Z center ({center[0]:.4f}, {center[2]:.4f}) is not at origin"
            )
            ok = False
        return ok

    def _check_height(
        self, bounds: BoundingBox, convention: AssetConvention, errors: list[str]
    ) -> bool:
        if convention.accepted_height_range is None:
            return True
        low, high = convention.accepted_height_range
        height = bounds.height
        if low <= height <= high:
            return True
        errors.append(f"Height {height:.3f} out of range [{low}, {high}]")
        return False
