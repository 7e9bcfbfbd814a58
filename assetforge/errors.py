"""Exceptions raised by the geometry core.

Orchestrators (AssetNormalizer, HandleDetectionService) catch
`EmptyBoundsError` and turn it into an empty or trivial result. The other
errors are fatal for the call that raised them. Codec errors from trimesh
propagate unchanged; `EncodingError` covers models trimesh cannot represent.
"""


class GeometryError(Exception):
    """Base class for geometry errors."""


class EmptyBoundsError(GeometryError):
    """Raised when a size, center or height is requested from empty bounds."""


class InvalidScaleFactorError(GeometryError):
    """Raised when a normalization scale factor is zero or not finite."""

    def __init__(self, source_height: float, target_height: float):
        self.source_height = source_height
        self.target_height = target_height
        super().__init__(
            f"Cannot scale model of height {source_height!r} to target height "
            f"{target_height!r}: scale factor is not a finite positive number"
        )


class DegenerateTransformError(GeometryError):
    """Raised when a singular transform would be baked into vertex normals."""


class EncodingError(GeometryError):
    """Raised when a model cannot be written in the requested file format."""
