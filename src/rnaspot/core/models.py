"""Data models for the rnaspot core module."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from rnaspot.core.exceptions import (
    ConfigurationError,
    InvalidProminenceError,
    InvalidScaleError,
)

# Prefix shared by measurement keys and derived detection classes.
RESULT_PREFIX = "RNAScope"


def spots_metric(channel: str) -> str:
    """Measurement key holding the spot count of a channel."""
    return f"{RESULT_PREFIX} {channel} Spots"


def density_metric(channel: str) -> str:
    """Measurement key holding the spot density of a channel."""
    return f"{RESULT_PREFIX} {channel} Density"


def derived_class(base_class: str | None, channel: str) -> str:
    """Classification label for the spots of ``channel`` inside a region."""
    suffix = f"{RESULT_PREFIX} {channel}"
    return f"{base_class} {suffix}" if base_class else suffix


@dataclass(frozen=True, eq=False)
class Raster:
    """A 2D multi-channel image window with physical calibration.

    Attributes:
        data: Pixel data as (C, Y, X). 2D input is promoted to one channel.
            The stored array is a read-only view.
        channel_names: One name per channel plane.
        pixel_size: Physical length of one pixel (µm), isotropic.
        origin: (x, y) of this window's top-left pixel in the source image.
    """

    data: np.ndarray
    channel_names: tuple[str, ...]
    pixel_size: float = 1.0
    origin: tuple[int, int] = (0, 0)

    def __post_init__(self) -> None:
        data = np.asarray(self.data)
        if data.ndim == 2:
            data = data[np.newaxis]
        if data.ndim != 3:
            raise ValueError(
                f"Raster data must be 2D (Y, X) or 3D (C, Y, X), got {data.ndim}D"
            )
        if isinstance(self.channel_names, str):
            names: tuple[str, ...] = (self.channel_names,)
        else:
            names = tuple(str(n) for n in self.channel_names)
        if len(names) != data.shape[0]:
            raise ValueError(
                f"Got {len(names)} channel names for {data.shape[0]} channel planes"
            )
        pixel_size = float(self.pixel_size)
        if not (math.isfinite(pixel_size) and pixel_size > 0):
            raise ValueError(f"pixel_size must be > 0, got {self.pixel_size}")

        data = data.view()
        data.flags.writeable = False
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "channel_names", names)
        object.__setattr__(self, "pixel_size", pixel_size)
        object.__setattr__(
            self, "origin", (int(self.origin[0]), int(self.origin[1])),
        )

    @property
    def n_channels(self) -> int:
        return int(self.data.shape[0])

    @property
    def height(self) -> int:
        return int(self.data.shape[1])

    @property
    def width(self) -> int:
        return int(self.data.shape[2])

    @property
    def plane(self) -> np.ndarray:
        """The 2D pixel array of a single-channel raster."""
        if self.n_channels != 1:
            raise ValueError(
                f"Raster has {self.n_channels} channels; extract one first"
            )
        return self.data[0]

    def with_data(self, data: np.ndarray, channel_name: str | None = None) -> Raster:
        """Build a single-channel raster sharing this raster's calibration."""
        name = channel_name or (self.channel_names[0] if self.n_channels == 1 else "result")
        return Raster(
            data=data,
            channel_names=(name,),
            pixel_size=self.pixel_size,
            origin=self.origin,
        )

    def crop(self, x: int, y: int, width: int, height: int) -> Raster:
        """Crop to a window given in source-image coordinates.

        The window is intersected with this raster's extent, so the result
        may be smaller than requested (or empty).
        """
        ox, oy = self.origin
        x0 = min(max(x - ox, 0), self.width)
        y0 = min(max(y - oy, 0), self.height)
        x1 = min(max(x + width - ox, x0), self.width)
        y1 = min(max(y + height - oy, y0), self.height)
        return Raster(
            data=self.data[:, y0:y1, x0:x1],
            channel_names=self.channel_names,
            pixel_size=self.pixel_size,
            origin=(ox + x0, oy + y0),
        )


def _as_points(vertices) -> np.ndarray:
    return np.asarray(vertices, dtype=np.float64).reshape(-1, 2)


def _shoelace(pts: np.ndarray) -> float:
    xs, ys = pts[:, 0], pts[:, 1]
    return 0.5 * abs(float(np.dot(xs, np.roll(ys, -1)) - np.dot(ys, np.roll(xs, -1))))


@dataclass(frozen=True, eq=False)
class RegionGeometry:
    """Shape of a region in source-image pixel coordinates.

    Attributes:
        x: Left edge of the bounding box.
        y: Top edge of the bounding box.
        width: Bounding box width in pixels.
        height: Bounding box height in pixels.
        mask: Boolean (height, width) array, True inside the region.
        area_pixels: Region area in square pixels.
        vertices: Polygon vertices (x, y), if the region is a polygon.
    """

    x: int
    y: int
    width: int
    height: int
    mask: np.ndarray
    area_pixels: float
    vertices: tuple[tuple[float, float], ...] | None = None

    def __post_init__(self) -> None:
        mask = np.asarray(self.mask, dtype=bool)
        if mask.shape != (self.height, self.width):
            raise ValueError(
                f"Mask shape {mask.shape} does not match bbox "
                f"({self.height}, {self.width})"
            )
        if self.area_pixels < 0:
            raise ValueError(f"area_pixels must be >= 0, got {self.area_pixels}")
        mask = mask.view()
        mask.flags.writeable = False
        object.__setattr__(self, "mask", mask)

    @classmethod
    def from_polygon(cls, vertices, holes=None) -> RegionGeometry:
        """Build a geometry from polygon vertices given as (x, y) pairs.

        A pixel belongs to the region when its centre lies inside the
        polygon and outside every hole. The area is the exact polygon area
        (shoelace formula) minus the hole areas.
        """
        geometry = cls.from_polygons([(vertices, holes or [])])
        pts = _as_points(vertices)
        object.__setattr__(
            geometry, "vertices", tuple((float(a), float(b)) for a, b in pts),
        )
        return geometry

    @classmethod
    def from_polygons(cls, polygons) -> RegionGeometry:
        """Build a geometry from several (exterior, holes) polygons.

        Parts are assumed not to overlap; the area is the sum of the parts.
        """
        from skimage.draw import polygon2mask

        parts = [(_as_points(ext), [_as_points(h) for h in holes]) for ext, holes in polygons]
        if not parts:
            raise ValueError("At least one polygon is required")
        for ext, _ in parts:
            if len(ext) == 0:
                raise ValueError("Polygon needs at least one vertex")

        all_pts = np.concatenate([ext for ext, _ in parts])
        x0 = int(math.floor(all_pts[:, 0].min()))
        y0 = int(math.floor(all_pts[:, 1].min()))
        width = int(math.ceil(all_pts[:, 0].max())) - x0
        height = int(math.ceil(all_pts[:, 1].max())) - y0

        def rasterize(pts: np.ndarray) -> np.ndarray:
            if width == 0 or height == 0 or len(pts) < 3:
                return np.zeros((height, width), dtype=bool)
            # Pixel (r, c) has its centre at (c + 0.5, r + 0.5)
            rowcol = np.column_stack([pts[:, 1] - y0 - 0.5, pts[:, 0] - x0 - 0.5])
            return polygon2mask((height, width), rowcol)

        mask = np.zeros((height, width), dtype=bool)
        area = 0.0
        for ext, holes in parts:
            part = rasterize(ext)
            part_area = _shoelace(ext)
            for hole in holes:
                part &= ~rasterize(hole)
                part_area -= _shoelace(hole)
            mask |= part
            area += max(part_area, 0.0)

        return cls(x=x0, y=y0, width=width, height=height, mask=mask, area_pixels=area)

    @classmethod
    def from_rectangle(cls, x: float, y: float, width: float, height: float) -> RegionGeometry:
        """Build an axis-aligned rectangular geometry."""
        return cls.from_polygon(
            [(x, y), (x + width, y), (x + width, y + height), (x, y + height)]
        )

    @classmethod
    def from_mask(cls, mask: np.ndarray, x: int = 0, y: int = 0) -> RegionGeometry:
        """Build a geometry from a boolean mask placed at (x, y).

        The mask is trimmed to its bounding box; the area is its pixel count.
        """
        mask = np.asarray(mask, dtype=bool)
        if mask.ndim != 2:
            raise ValueError(f"Mask must be 2D, got {mask.ndim}D")
        rows = np.flatnonzero(mask.any(axis=1))
        cols = np.flatnonzero(mask.any(axis=0))
        if len(rows) == 0:
            return cls(
                x=int(x), y=int(y), width=0, height=0,
                mask=np.zeros((0, 0), dtype=bool), area_pixels=0.0,
            )
        r0, r1 = int(rows[0]), int(rows[-1]) + 1
        c0, c1 = int(cols[0]), int(cols[-1]) + 1
        trimmed = mask[r0:r1, c0:c1]
        return cls(
            x=int(x) + c0, y=int(y) + r0,
            width=c1 - c0, height=r1 - r0,
            mask=trimmed.copy(),
            area_pixels=float(trimmed.sum()),
        )

    def area(self, pixel_size: float) -> float:
        """Region area in physical units squared (µm²)."""
        return self.area_pixels * pixel_size * pixel_size

    def mask_window(self, origin: tuple[int, int], shape: tuple[int, int]) -> np.ndarray:
        """Return the region mask aligned to an arbitrary image window.

        Args:
            origin: (x, y) of the window's top-left pixel in image coordinates.
            shape: (height, width) of the window.
        """
        ox, oy = origin
        h, w = shape
        out = np.zeros((h, w), dtype=bool)
        x0 = max(self.x, ox)
        y0 = max(self.y, oy)
        x1 = min(self.x + self.width, ox + w)
        y1 = min(self.y + self.height, oy + h)
        if x1 > x0 and y1 > y0:
            out[y0 - oy:y1 - oy, x0 - ox:x1 - ox] = self.mask[
                y0 - self.y:y1 - self.y, x0 - self.x:x1 - self.x
            ]
        return out


@dataclass(eq=False)
class Region:
    """An operator-drawn region of interest (an annotation).

    Geometry is read-only for the core; ``measurements`` is written by the
    batch runner after each region/channel pass.
    """

    name: str
    geometry: RegionGeometry
    path_class: str | None = None
    measurements: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ChannelSpec:
    """Detection parameters for one channel.

    Attributes:
        name: Channel name as listed in the image metadata.
        sigma: LoG scale in physical units (µm).
        prominence: Minimum drop separating a maximum from any higher point.
        color: Optional display colour (e.g. "#FF0000").
    """

    name: str
    sigma: float
    prominence: float
    color: str | None = None

    def __post_init__(self) -> None:
        """Validate parameters."""
        if not self.name:
            raise ConfigurationError("Channel name must not be empty")
        try:
            sigma = float(self.sigma)
        except (TypeError, ValueError):
            raise InvalidScaleError(self.sigma) from None
        if not (math.isfinite(sigma) and sigma > 0):
            raise InvalidScaleError(self.sigma)
        try:
            prominence = float(self.prominence)
        except (TypeError, ValueError):
            raise InvalidProminenceError(self.prominence) from None
        if not (math.isfinite(prominence) and prominence >= 0):
            raise InvalidProminenceError(self.prominence)
        object.__setattr__(self, "sigma", sigma)
        object.__setattr__(self, "prominence", prominence)


@dataclass(frozen=True)
class Spot:
    """A detected local maximum at an integer pixel position."""

    row: int
    col: int
    value: float = 0.0

    @property
    def x(self) -> int:
        return self.col

    @property
    def y(self) -> int:
        return self.row

    def translated(self, drow: int, dcol: int) -> Spot:
        return Spot(row=self.row + drow, col=self.col + dcol, value=self.value)


@dataclass(frozen=True)
class MeasurementRecord:
    """A single measurement value for one region on one channel."""

    region: str
    channel: str
    metric: str
    value: float
