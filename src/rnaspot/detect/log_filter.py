"""Laplacian-of-Gaussian blob enhancement.

The LoG is computed separably: each second partial derivative is a 1D
second-derivative-of-Gaussian kernel along one axis followed by a 1D
Gaussian along the other, so the cost grows with the kernel length rather
than its area.
"""

from __future__ import annotations

import math

import numpy as np
from scipy.ndimage import convolve1d

from rnaspot.core.exceptions import InvalidScaleError
from rnaspot.core.models import Raster

DEFAULT_TRUNCATE = 4.0


def gaussian_kernel1d(sigma: float, order: int = 0, truncate: float = DEFAULT_TRUNCATE) -> np.ndarray:
    """Sampled 1D Gaussian (order 0) or its second derivative (order 2).

    Args:
        sigma: Standard deviation in pixels.
        order: 0 for the Gaussian, 2 for its second derivative.
        truncate: Kernel half-width in standard deviations.

    Returns:
        Kernel of length 2 * int(truncate * sigma + 0.5) + 1.
    """
    if not (math.isfinite(sigma) and sigma > 0):
        raise InvalidScaleError(sigma)
    radius = int(truncate * sigma + 0.5)
    x = np.arange(-radius, radius + 1, dtype=np.float64)
    sigma2 = sigma * sigma
    phi = np.exp(-0.5 * x * x / sigma2)
    phi /= phi.sum()
    if order == 0:
        return phi
    if order == 2:
        return phi * (x * x - sigma2) / (sigma2 * sigma2)
    raise ValueError(f"Only orders 0 and 2 are supported, got {order}")


def laplacian_of_gaussian(
    raster: Raster,
    sigma: float,
    normalize: bool = True,
    truncate: float = DEFAULT_TRUNCATE,
) -> Raster:
    """Compute the negated LoG response of a single-channel raster.

    Bright blobs produce positive peaks, strongest for blobs of radius
    about sigma * sqrt(2).

    Args:
        raster: Single-channel raster.
        sigma: Gaussian scale in physical units (same unit as pixel_size).
        normalize: Multiply by sigma² (in pixels) so responses are
            comparable across scales.
        truncate: Kernel half-width in standard deviations.

    Returns:
        New float64 Raster of the same size.

    Raises:
        InvalidScaleError: If sigma is not > 0.
    """
    try:
        sigma = float(sigma)
    except (TypeError, ValueError):
        raise InvalidScaleError(sigma) from None
    if not (math.isfinite(sigma) and sigma > 0):
        raise InvalidScaleError(sigma)

    sigma_px = sigma / raster.pixel_size
    plane = raster.plane.astype(np.float64)
    if plane.size == 0:
        return raster.with_data(plane)

    smooth = gaussian_kernel1d(sigma_px, order=0, truncate=truncate)
    second = gaussian_kernel1d(sigma_px, order=2, truncate=truncate)

    d_yy = convolve1d(convolve1d(plane, second, axis=0, mode="reflect"), smooth, axis=1, mode="reflect")
    d_xx = convolve1d(convolve1d(plane, smooth, axis=0, mode="reflect"), second, axis=1, mode="reflect")

    response = -(d_yy + d_xx)
    if normalize:
        response *= sigma_px * sigma_px
    return raster.with_data(response)
