"""Interfaces to the host application: image access and region listing."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from rnaspot.core.exceptions import ChannelNotFoundError
from rnaspot.core.models import Raster, Region


class ImageAccessor(ABC):
    """Abstract source of image pixels for regions.

    Concrete implementations wrap whatever holds the image (an in-memory
    array, a whole-slide server, ...). The core only ever asks for the
    bounding window of one region at a time.
    """

    @abstractmethod
    def channel_names(self) -> list[str]:
        """Names of all channels in the image, in plane order."""

    @abstractmethod
    def get_region_raster(
        self, region: Region, channels: Sequence[str] | None = None,
    ) -> Raster:
        """Return the pixels under a region's bounding box.

        Args:
            region: Region whose bounding box is requested.
            channels: Channel names to include. None = all channels.

        Returns:
            Multi-channel Raster whose ``origin`` is the window position in
            the source image.

        Raises:
            ChannelNotFoundError: If a requested channel does not exist.
        """

    @abstractmethod
    def get_pixel_size(self) -> float:
        """Physical pixel size (µm per pixel)."""

    def get_channel_color(self, name: str) -> str | None:
        """Display colour of a channel, or None if unknown."""
        return None


class RegionSource(ABC):
    """Abstract supplier of the regions to analyze."""

    @abstractmethod
    def list_regions(self) -> list[Region]:
        """Return all regions, in a stable order."""


class InMemoryImageAccessor(ImageAccessor):
    """ImageAccessor over a full image Raster held in memory.

    Args:
        raster: The whole image, (C, Y, X), with origin (0, 0).
        channel_colors: Optional mapping of channel name to display colour.
    """

    def __init__(
        self,
        raster: Raster,
        channel_colors: dict[str, str] | None = None,
    ) -> None:
        self._raster = raster
        self._colors = dict(channel_colors or {})

    @property
    def raster(self) -> Raster:
        return self._raster

    def channel_names(self) -> list[str]:
        return list(self._raster.channel_names)

    def get_pixel_size(self) -> float:
        return self._raster.pixel_size

    def get_channel_color(self, name: str) -> str | None:
        if name not in self._raster.channel_names:
            raise ChannelNotFoundError(name)
        return self._colors.get(name)

    def get_region_raster(
        self, region: Region, channels: Sequence[str] | None = None,
    ) -> Raster:
        geom = region.geometry
        window = self._raster.crop(geom.x, geom.y, geom.width, geom.height)
        if channels is None:
            return window

        names = list(self._raster.channel_names)
        indices = []
        for name in channels:
            if name not in names:
                raise ChannelNotFoundError(name)
            indices.append(names.index(name))
        return Raster(
            data=np.take(window.data, indices, axis=0),
            channel_names=tuple(channels),
            pixel_size=window.pixel_size,
            origin=window.origin,
        )


class ListRegionSource(RegionSource):
    """RegionSource over a plain list of regions."""

    def __init__(self, regions: Sequence[Region]) -> None:
        self._regions = list(regions)

    def list_regions(self) -> list[Region]:
        return list(self._regions)
