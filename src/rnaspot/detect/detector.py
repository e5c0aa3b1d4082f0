"""RegionSpotDetector — spot detection for one region on one channel."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from rnaspot.core.exceptions import EmptyRegionError
from rnaspot.core.models import ChannelSpec, Raster, Region, Spot
from rnaspot.detect.channels import extract_channel
from rnaspot.detect.denoise import DEFAULT_MEDIAN_RADIUS, circular_footprint, median_denoise
from rnaspot.detect.log_filter import laplacian_of_gaussian
from rnaspot.detect.maxima import find_maxima

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpotDetectionResult:
    """Spots and measurements for one region on one channel.

    Attributes:
        region: Region name.
        channel: Channel name.
        spots: Detected spots in source-image pixel coordinates.
        count: Number of spots.
        area_um2: Region area in µm², identical for every channel.
        density: Spots per µm² (0.0 for empty regions).
        warnings: Problems found while processing (e.g. zero area).
    """

    region: str
    channel: str
    spots: list[Spot]
    count: int
    area_um2: float
    density: float
    warnings: list[str] = field(default_factory=list)


class RegionSpotDetector:
    """Median filter, LoG enhancement and prominence maxima inside a region.

    For a region and a channel:
    1. Crop the channel to the region's bounding box
    2. Median filter to remove shot noise
    3. LoG at the channel's sigma
    4. Prominence maxima, restricted to the region mask
    5. Translate spots back to image coordinates, count, density

    Args:
        median_radius: Median kernel radius in pixels (default: 1.5).
        normalize: Scale-normalize the LoG response (default: True).
        strict: Strict prominence acceptance (default: True).
    """

    def __init__(
        self,
        median_radius: float = DEFAULT_MEDIAN_RADIUS,
        normalize: bool = True,
        strict: bool = True,
    ) -> None:
        circular_footprint(median_radius)
        self._median_radius = median_radius
        self._normalize = normalize
        self._strict = strict

    @property
    def median_radius(self) -> float:
        return self._median_radius

    @property
    def strict(self) -> bool:
        return self._strict

    def detect(
        self, region: Region, channel_raster: Raster, spec: ChannelSpec,
    ) -> SpotDetectionResult:
        """Detect spots of one channel inside one region.

        Args:
            region: Region to analyze (not modified).
            channel_raster: Raster covering the region. If it holds several
                channels, ``spec.name`` is extracted from it.
            spec: Channel detection parameters.

        Returns:
            SpotDetectionResult. Regions with zero area give count 0,
            density 0.0 and a warning instead of raising.

        Raises:
            ChannelNotFoundError: If the raster lacks ``spec.name``.
        """
        if channel_raster.n_channels != 1 or channel_raster.channel_names[0] != spec.name:
            channel_raster = extract_channel(channel_raster, spec.name)

        area_um2 = region.geometry.area(channel_raster.pixel_size)

        try:
            crop = self._crop(region, channel_raster)
        except EmptyRegionError as exc:
            message = f"{region.name}/{spec.name}: {exc}; recorded 0 spots"
            logger.warning("%s", message)
            return SpotDetectionResult(
                region=region.name,
                channel=spec.name,
                spots=[],
                count=0,
                area_um2=area_um2,
                density=0.0,
                warnings=[message],
            )

        denoised = median_denoise(crop, self._median_radius)
        response = laplacian_of_gaussian(denoised, spec.sigma, normalize=self._normalize)
        mask = region.geometry.mask_window(crop.origin, (crop.height, crop.width))
        local_spots = find_maxima(response, spec.prominence, mask=mask, strict=self._strict)

        ox, oy = crop.origin
        spots = [s.translated(oy, ox) for s in local_spots]
        count = len(spots)
        density = count / area_um2

        logger.debug(
            "%s/%s: %d spots in %.2f µm²", region.name, spec.name, count, area_um2,
        )
        return SpotDetectionResult(
            region=region.name,
            channel=spec.name,
            spots=spots,
            count=count,
            area_um2=area_um2,
            density=density,
        )

    def _crop(self, region: Region, raster: Raster) -> Raster:
        """Crop to the region bounding box, rejecting empty regions."""
        geom = region.geometry
        if geom.area_pixels <= 0:
            raise EmptyRegionError(region.name)
        crop = raster.crop(geom.x, geom.y, geom.width, geom.height)
        if crop.width == 0 or crop.height == 0:
            raise EmptyRegionError(region.name)
        return crop
