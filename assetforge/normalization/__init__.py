"""Category-aware asset normalization.

Provides:
- AssetNormalizer: Bake a model into its category convention
- NormalizationValidator: Check a model against its convention
- estimate_grip_point: Geometric weapon grip fallback
"""

from assetforge.normalization.asset_normalizer import (
    AppliedTransform,
    AssetNormalizer,
    Dimensions,
    NormalizationOptions,
    NormalizationResult,
)
from assetforge.normalization.conventions import AssetCategory, AssetConvention
from assetforge.normalization.grip_estimator import GripCandidate, estimate_grip_point
from assetforge.normalization.validator import NormalizationValidator, ValidationReport

__all__ = [
    "AppliedTransform",
    "AssetCategory",
    "AssetConvention",
    "AssetNormalizer",
    "Dimensions",
    "GripCandidate",
    "NormalizationOptions",
    "NormalizationResult",
    "NormalizationValidator",
    "ValidationReport",
    "estimate_grip_point",
]
