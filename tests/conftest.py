"""Shared test fixtures for rnaspot."""

from __future__ import annotations

import numpy as np
import pytest

from rnaspot.core.accessors import InMemoryImageAccessor
from rnaspot.core.models import Raster, Region, RegionGeometry


def _gaussian_bumps(
    shape: tuple[int, int],
    centers: list[tuple[float, float]],
    sigma: float = 2.0,
    amplitude: float = 100.0,
    background: float = 0.0,
) -> np.ndarray:
    yy, xx = np.mgrid[0:shape[0], 0:shape[1]].astype(np.float64)
    image = np.full(shape, background, dtype=np.float64)
    for row, col in centers:
        image += amplitude * np.exp(-((yy - row) ** 2 + (xx - col) ** 2) / (2 * sigma ** 2))
    return image


@pytest.fixture
def make_bumps():
    """Factory for float images with 2D Gaussian bumps at (row, col) centres."""
    return _gaussian_bumps


@pytest.fixture
def two_channel_raster() -> Raster:
    """80x120 image, pixel size 0.5 µm, channels CY5 and FITC.

    CY5: bumps at (20, 20) and (20, 40) inside region A,
         one bump at (60, 90) inside region B.
    FITC: empty (all zeros).
    """
    cy5 = _gaussian_bumps((80, 120), [(20, 20), (20, 40), (60, 90)])
    fitc = np.zeros((80, 120), dtype=np.float64)
    return Raster(
        data=np.stack([cy5, fitc]),
        channel_names=("CY5", "FITC"),
        pixel_size=0.5,
    )


@pytest.fixture
def accessor(two_channel_raster: Raster) -> InMemoryImageAccessor:
    return InMemoryImageAccessor(two_channel_raster, channel_colors={"CY5": "#FF0000"})


@pytest.fixture
def regions() -> list[Region]:
    """Region A (50x40 px at 5,5, class Tumor) and region B (40x30 px at 70,45)."""
    return [
        Region(
            name="A",
            geometry=RegionGeometry.from_rectangle(5, 5, 50, 40),
            path_class="Tumor",
        ),
        Region(
            name="B",
            geometry=RegionGeometry.from_rectangle(70, 45, 40, 30),
        ),
    ]
