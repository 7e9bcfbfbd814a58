"""Handle localization from the silhouette width of a front-view render.

A weapon rendered blade-up shows a sharp contraction where the guard (or
head) meets the handle. The handle starts just below that contraction and
ends where the silhouette widens again (pommel) or disappears.
"""

import logging
import math

from dataclasses import dataclass, fields

import numpy as np

from omegaconf import DictConfig

from assetforge.utils.image_utils import brightness

console_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandleRegion:
    """Vertical pixel range of a detected handle, min_y < max_y."""

    min_y: int
    """First handle row (top)."""

    max_y: int
    """Last handle row (bottom)."""

    def __post_init__(self) -> None:
        if self.min_y >= self.max_y:
            raise ValueError(
                f"Handle region min_y ({self.min_y}) must be below max_y ({self.max_y})"
            )

    def to_dict(self) -> dict:
        return {"min_y": self.min_y, "max_y": self.max_y}


@dataclass(frozen=True)
class GripBounds:
    """Pixel box around the handle, inclusive on all sides."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @property
    def center(self) -> tuple[float, float]:
        # Pixel i covers [i, i + 1) in image coordinates.
        return (
            (self.min_x + self.max_x + 1) / 2.0,
            (self.min_y + self.max_y + 1) / 2.0,
        )

    def as_box(self) -> tuple[int, int, int, int]:
        return self.min_x, self.min_y, self.max_x, self.max_y

    def to_dict(self) -> dict:
        return {
            "min_x": self.min_x,
            "min_y": self.min_y,
            "max_x": self.max_x,
            "max_y": self.max_y,
        }


@dataclass(frozen=True)
class WidthProfileConfig:
    """Thresholds of the width-profile heuristic.

    The values are empirical and assume a blade-up front render with the
    weapon filling most of the frame.
    """

    brightness_threshold: float = 40.0
    """Pixels brighter than this belong to the silhouette."""

    search_start_fraction: float = 0.2
    """Top of the guard search window, as a fraction of the image height."""

    search_end_fraction: float = 0.8
    """Bottom (exclusive) of the guard search window."""

    guard_span_rows: int = 5
    """Row distance over which a contraction is measured."""

    min_contraction_ratio: float = 0.5
    """A contraction must exceed this fraction of the narrower width."""

    handle_offset_rows: int = 10
    """Rows between the guard row and the handle start."""

    default_handle_rows: int = 80
    """Handle length when no end is found."""

    end_scan_offset_rows: int = 20
    """Rows below the handle start where the end scan begins."""

    max_handle_rows: int = 120
    """Rows below the handle start where the end scan stops."""

    bottom_margin_rows: int = 10
    """Rows at the bottom of the image never scanned for an end."""

    growth_ratio: float = 1.3
    """A row this much wider than the handle start ends the handle."""

    growth_end_backoff_rows: int = 5
    """Rows above a widening row where the handle ends."""

    empty_end_backoff_rows: int = 10
    """Rows above an empty row where the handle ends."""

    @classmethod
    def from_cfg(cls, cfg: DictConfig | None) -> "WidthProfileConfig":
        """Build from a `width_profile` config node; missing keys keep defaults."""
        if cfg is None:
            return cls()
        names = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in cfg.items() if key in names})


def compute_width_profile(
    image: np.ndarray, brightness_threshold: float = 40.0
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Compute the silhouette extent of every image row.

    Args:
        image: Raster of shape (H, W), (H, W, 3) or (H, W, 4).
        brightness_threshold: Pixels brighter than this are silhouette.

    Returns:
        Tuple of (widths, lefts, rights), each of length H. `widths` is
        right - left, 0 for empty rows; `lefts` and `rights` are -1 there.
    """
    mask = brightness(image) > brightness_threshold
    height, width = mask.shape
    has_pixels = mask.any(axis=1)

    lefts = np.where(has_pixels, mask.argmax(axis=1), -1)
    rights = np.where(has_pixels, width - 1 - mask[:, ::-1].argmax(axis=1), -1)
    widths = np.where(has_pixels, rights - lefts, 0)
    return widths, lefts, rights


def _find_guard_row(widths: np.ndarray, config: WidthProfileConfig) -> int | None:
    height = len(widths)
    span = config.guard_span_rows
    guard_row = None
    max_change = 0

    start = math.floor(height * config.search_start_fraction)
    y = start
    while y < height * config.search_end_fraction and y + span < height:
        below = widths[y + span]
        if widths[y] > 0 and below > 0:
            change = widths[y] - below
            # Strict comparison keeps the first row of a tie.
            if change > max_change and change > below * config.min_contraction_ratio:
                max_change = change
                guard_row = y
        y += 1
    return guard_row


def find_handle_region(
    image: np.ndarray, config: WidthProfileConfig | None = None
) -> HandleRegion | None:
    """Locate the handle rows in a blade-up front-view silhouette.

    Args:
        image: Raster of shape (H, W), (H, W, 3) or (H, W, 4).
        config: Heuristic thresholds. Defaults to WidthProfileConfig().

    Returns:
        The handle rows, or None when no guard-like contraction exists.
    """
    config = config or WidthProfileConfig()
    widths, _, _ = compute_width_profile(image, config.brightness_threshold)
    height = len(widths)

    guard_row = _find_guard_row(widths, config)
    if guard_row is None:
        console_logger.debug("No guard contraction found in width profile")
        return None

    handle_start = guard_row + config.handle_offset_rows
    handle_end = handle_start + config.default_handle_rows
    start_width = widths[min(handle_start, height - 1)]

    scan_stop = min(
        handle_start + config.max_handle_rows, height - config.bottom_margin_rows
    )
    for y in range(handle_start + config.end_scan_offset_rows, scan_stop):
        if widths[y] > start_width * config.growth_ratio:
            handle_end = y - config.growth_end_backoff_rows
            break
        if widths[y] == 0:
            handle_end = y - config.empty_end_backoff_rows
            break

    handle_end = min(handle_end, height - 1)
    if handle_start >= handle_end:
        console_logger.debug(
            f"Guard at row {guard_row} leaves no room for a handle in {height} rows"
        )
        return None

    console_logger.debug(
        f"Guard at row {guard_row}, handle rows {handle_start}-{handle_end}"
    )
    return HandleRegion(min_y=int(handle_start), max_y=int(handle_end))


def grip_bounds_for_region(
    image: np.ndarray, region: HandleRegion, config: WidthProfileConfig | None = None
) -> GripBounds | None:
    """Horizontal silhouette extent over the handle rows.

    Returns:
        Pixel box spanning the handle rows, or None if they are all empty.
    """
    config = config or WidthProfileConfig()
    _, lefts, rights = compute_width_profile(image, config.brightness_threshold)
    rows = slice(region.min_y, region.max_y + 1)
    row_lefts = lefts[rows]
    row_rights = rights[rows]
    filled = row_lefts >= 0
    if not filled.any():
        return None
    return GripBounds(
        min_x=int(row_lefts[filled].min()),
        min_y=region.min_y,
        max_x=int(row_rights[filled].max()),
        max_y=region.max_y,
    )
