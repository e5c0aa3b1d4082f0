"""Median filtering to suppress shot noise before blob enhancement."""

from __future__ import annotations

import math

import numpy as np
from scipy.ndimage import median_filter

from rnaspot.core.exceptions import InvalidRadiusError
from rnaspot.core.models import Raster

DEFAULT_MEDIAN_RADIUS = 1.5


def circular_footprint(radius: float) -> np.ndarray:
    """Circular kernel for a rank filter of the given radius (pixels).

    Uses the ImageJ rank-filter rule: an offset (dy, dx) is inside the
    kernel when dy² + dx² <= int(radius²) + 1. Radius 0.5 gives a cross,
    1.5 a full 3x3 square, 2 a 5x5 square without corners.

    Raises:
        InvalidRadiusError: If radius is not > 0.
    """
    if not (math.isfinite(radius) and radius > 0):
        raise InvalidRadiusError(radius)
    r2 = int(radius * radius) + 1
    k = int(math.sqrt(r2 + 1e-10))
    dy, dx = np.mgrid[-k:k + 1, -k:k + 1]
    return (dy * dy + dx * dx) <= r2


def median_denoise(raster: Raster, radius: float = DEFAULT_MEDIAN_RADIUS) -> Raster:
    """Apply a circular median filter to a single-channel raster.

    Edge pixels are repeated beyond the border. The output is float64.

    Args:
        raster: Single-channel raster.
        radius: Kernel radius in pixels.

    Returns:
        New denoised Raster.
    """
    footprint = circular_footprint(radius)
    plane = raster.plane.astype(np.float64)
    if plane.size == 0:
        return raster.with_data(plane)
    filtered = median_filter(plane, footprint=footprint, mode="nearest")
    return raster.with_data(filtered)
