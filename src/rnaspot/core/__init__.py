"""rnaspot core — data model, exceptions, and host-application interfaces."""

from rnaspot.core.accessors import (
    ImageAccessor,
    InMemoryImageAccessor,
    ListRegionSource,
    RegionSource,
)
from rnaspot.core.exceptions import (
    ChannelNotFoundError,
    ConfigurationError,
    EmptyRegionError,
    InvalidProminenceError,
    InvalidRadiusError,
    InvalidScaleError,
    SpotDetectionError,
)
from rnaspot.core.models import (
    ChannelSpec,
    MeasurementRecord,
    Raster,
    Region,
    RegionGeometry,
    Spot,
)

__all__ = [
    "ChannelSpec",
    "MeasurementRecord",
    "Raster",
    "Region",
    "RegionGeometry",
    "Spot",
    "ImageAccessor",
    "InMemoryImageAccessor",
    "RegionSource",
    "ListRegionSource",
    "SpotDetectionError",
    "ChannelNotFoundError",
    "ConfigurationError",
    "InvalidScaleError",
    "InvalidProminenceError",
    "InvalidRadiusError",
    "EmptyRegionError",
]
