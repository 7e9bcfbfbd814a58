"""Asset categories and the spatial conventions each one must satisfy."""

import logging

from dataclasses import dataclass
from enum import Enum

from omegaconf import DictConfig, OmegaConf

console_logger = logging.getLogger(__name__)


class AssetCategory(str, Enum):
    """Asset categories with distinct normalization rules."""

    WEAPON = "weapon"
    """Held items; origin at the grip point, scale untouched."""

    CHARACTER = "character"
    """Rigged or static characters; feet on the ground, fixed height."""

    ARMOR = "armor"
    """Wearables; geometric center, or neck for helmet-like subtypes."""

    BUILDING = "building"
    """Placed structures; ground at Y=0, centered on X/Z."""

    ITEM = "item"
    """Anything else; same rule as buildings."""

    @classmethod
    def parse(cls, value: "AssetCategory | str") -> "AssetCategory":
        """Parse a category, falling back to ITEM for unknown names."""
        if isinstance(value, AssetCategory):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            console_logger.warning(
                f"Unknown asset category '{value}', using '{cls.ITEM.value}' rules"
            )
            return cls.ITEM


@dataclass(frozen=True)
class AssetConvention:
    """Spatial convention for one asset category."""

    category: AssetCategory
    """Category the convention applies to."""

    up_axis: str
    """Signed up axis, e.g. "+Y"."""

    front_direction: str
    """Signed front axis, e.g. "+Z"."""

    scale: str
    """Human-readable unit description."""

    origin: str
    """Human-readable description of where the origin sits."""

    center_at_origin: bool
    """True when the full geometric center must sit at the origin."""

    target_height: float | None = None
    """Height the category is scaled to, None when scale is untouched."""

    accepted_height_range: tuple[float, float] | None = None
    """Inclusive (min, max) height accepted by validation."""

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "up_axis": self.up_axis,
            "front_direction": self.front_direction,
            "scale": self.scale,
            "origin": self.origin,
            "center_at_origin": self.center_at_origin,
            "target_height": self.target_height,
            "accepted_height_range": (
                list(self.accepted_height_range)
                if self.accepted_height_range is not None
                else None
            ),
        }


def load_conventions(cfg: DictConfig) -> dict[AssetCategory, AssetConvention]:
    """Build the convention table from the `normalization` config section.

    Args:
        cfg: Normalization config holding a `conventions` mapping.

    Returns:
        One AssetConvention per AssetCategory.

    Raises:
        KeyError: If a category has no entry in the config.
    """
    conventions = {}
    for category in AssetCategory:
        entry = OmegaConf.select(cfg, f"conventions.{category.value}")
        if entry is None:
            raise KeyError(f"No convention configured for '{category.value}'")

        target_height = OmegaConf.select(entry, "target_height", default=None)
        height_range = OmegaConf.select(entry, "accepted_height_range", default=None)
        conventions[category] = AssetConvention(
            category=category,
            up_axis=entry.up_axis,
            front_direction=entry.front_direction,
            scale=entry.scale,
            origin=entry.origin,
            center_at_origin=bool(entry.center_at_origin),
            target_height=float(target_height) if target_height is not None else None,
            accepted_height_range=(
                (float(height_range[0]), float(height_range[1]))
                if height_range is not None
                else None
            ),
        )
    return conventions


def is_helmet_subtype(subtype: str | None, helmet_subtypes) -> bool:
    """True if an armor subtype attaches at the neck rather than its center."""
    if not subtype:
        return False
    return subtype.strip().lower() in {s.lower() for s in helmet_subtypes}
