"""Orientation checks for weapons before handle detection."""

import logging

from dataclasses import dataclass

import numpy as np

from scipy.spatial.transform import Rotation

from assetforge.geometry.bounds import BoundingBox
from assetforge.utils.image_utils import brightness

console_logger = logging.getLogger(__name__)

AXIS_NAMES = ("x", "y", "z")


@dataclass(frozen=True)
class AxisMisalignment:
    """A model whose longest extent is not along the up axis."""

    longest_axis: str
    """Name of the longest axis ("x" or "z" for a Y-up convention)."""

    rotation: Rotation
    """Rotation that brings the longest axis onto the up axis."""

    @property
    def euler(self) -> np.ndarray:
        """Corrective rotation as XYZ Euler radians."""
        return self.rotation.as_euler("xyz")


def detect_axis_misalignment(
    bounds: BoundingBox, up_axis: str = "y"
) -> AxisMisalignment | None:
    """Check whether a weapon lies along a horizontal axis.

    Weapons are modeled tip-up, so the longest extent should be vertical. When
    another axis is strictly longer, the correction is a -90 degree rotation
    about cross(longest, up): X-longest turns about Z by -90 degrees,
    Z-longest about X by +90 degrees.

    Args:
        bounds: Model bounds.
        up_axis: Canonical up axis name.

    Returns:
        The misalignment, or None when the up axis is (one of) the longest.

    Raises:
        EmptyBoundsError: If `bounds` is empty.
    """
    size = bounds.size
    up_index = AXIS_NAMES.index(up_axis)
    longest_index = int(np.argmax(size))
    if size[longest_index] <= size[up_index]:
        return None

    longest = np.eye(3)[longest_index]
    up = np.eye(3)[up_index]
    rotation = Rotation.from_rotvec(-np.pi / 2 * np.cross(longest, up))
    console_logger.debug(
        f"Longest extent along {AXIS_NAMES[longest_index]} "
        f"({size[longest_index]:.4f} > {size[up_index]:.4f}), "
        f"correcting by {rotation.as_euler('xyz')}"
    )
    return AxisMisalignment(longest_axis=AXIS_NAMES[longest_index], rotation=rotation)


def needs_flip(
    image: np.ndarray,
    background_brightness: float = 30.0,
    flip_brightness_ratio: float = 1.3,
) -> bool:
    """Check whether a front render shows the weapon upside down.

    Blades render brighter than handles. If the bottom third of the
    silhouette is clearly brighter than the top third, the blade points down.

    Args:
        image: Raster of shape (H, W), (H, W, 3) or (H, W, 4).
        background_brightness: Pixels at or below this are ignored.
        flip_brightness_ratio: Bottom/top brightness ratio that triggers a flip.

    Returns:
        True when the weapon should be rotated 180 degrees.
    """
    values = brightness(image)
    height = values.shape[0]
    third = height // 3

    top = values[:third]
    bottom = values[height - third + 1 :]
    top_pixels = top[top > background_brightness]
    bottom_pixels = bottom[bottom > background_brightness]
    if len(top_pixels) == 0 or len(bottom_pixels) == 0:
        return False

    top_mean = float(top_pixels.mean())
    bottom_mean = float(bottom_pixels.mean())
    console_logger.debug(
        f"Silhouette brightness top={top_mean:.1f}, bottom={bottom_mean:.1f}"
    )
    return bottom_mean > top_mean * flip_brightness_ratio
