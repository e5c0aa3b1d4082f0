"""Shared fixtures for CLI module tests."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest
import tifffile
from click.testing import CliRunner


def _square(x, y, w, h):
    return [[x, y], [x + w, y], [x + w, y + h], [x, y + h], [x, y]]


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def image_path(tmp_path: Path, make_bumps) -> Path:
    """OME-TIFF with channels DAPI (empty) and CY5 (three spots), 0.5 µm pixels."""
    cy5 = make_bumps((80, 120), [(20, 20), (20, 40), (60, 90)]).round().astype(np.uint16)
    dapi = np.zeros_like(cy5)
    path = tmp_path / "slide.ome.tif"
    tifffile.imwrite(
        path, np.stack([dapi, cy5]), ome=True,
        metadata={
            "axes": "CYX",
            "PhysicalSizeX": 0.5,
            "PhysicalSizeXUnit": "µm",
            "PhysicalSizeY": 0.5,
            "PhysicalSizeYUnit": "µm",
            "Channel": {"Name": ["DAPI", "CY5"]},
        },
    )
    return path


@pytest.fixture
def regions_path(tmp_path: Path) -> Path:
    """GeoJSON with region A (class Tumor) and region B."""
    collection = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Polygon", "coordinates": [_square(5, 5, 50, 40)]},
                "properties": {
                    "objectType": "annotation",
                    "name": "A",
                    "classification": {"name": "Tumor"},
                },
            },
            {
                "type": "Feature",
                "geometry": {"type": "Polygon", "coordinates": [_square(70, 45, 40, 30)]},
                "properties": {"objectType": "annotation", "name": "B"},
            },
        ],
    }
    path = tmp_path / "regions.geojson"
    path.write_text(json.dumps(collection))
    return path
