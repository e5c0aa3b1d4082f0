"""Tests for rnaspot.io.export."""

import json

import pandas as pd
import pytest

from rnaspot.core.models import ChannelSpec
from rnaspot.detect.batch import BatchRunner
from rnaspot.io.export import (
    SPOT_COLUMNS,
    detections_geojson,
    measurements_dataframe,
    spots_dataframe,
    write_detections_geojson,
    write_measurements_csv,
    write_spots_csv,
)

SPECS = [
    ChannelSpec("CY5", sigma=0.5, prominence=10.0),
    ChannelSpec("FITC", sigma=0.5, prominence=10.0),
]


@pytest.fixture
def batch_result(regions, accessor):
    return BatchRunner(max_workers=1).run_all(regions, SPECS, accessor)


class TestMeasurementsDataframe:
    def test_one_row_per_region(self, batch_result):
        df = measurements_dataframe(batch_result)
        assert list(df["region"]) == ["A", "B"]
        assert list(df.columns[:3]) == ["region", "class", "area_um2"]

    def test_metric_columns(self, batch_result):
        df = measurements_dataframe(batch_result).set_index("region")
        assert df.loc["A", "RNAScope CY5 Spots"] == 2.0
        assert df.loc["B", "RNAScope CY5 Spots"] == 1.0
        assert df.loc["A", "RNAScope FITC Density"] == 0.0
        assert df.loc["A", "area_um2"] == pytest.approx(500.0)

    def test_write_csv(self, batch_result, tmp_path):
        path = tmp_path / "measurements.csv"
        write_measurements_csv(batch_result, path)
        df = pd.read_csv(path)
        assert len(df) == 2
        assert "RNAScope CY5 Density" in df.columns


class TestSpotsDataframe:
    def test_one_row_per_spot(self, batch_result):
        df = spots_dataframe(batch_result)
        assert list(df.columns) == SPOT_COLUMNS
        assert len(df) == 3
        assert set(df["channel"]) == {"CY5"}

    def test_derived_class_column(self, batch_result):
        df = spots_dataframe(batch_result)
        classes = set(df["class"])
        assert classes == {"Tumor RNAScope CY5", "RNAScope CY5"}

    def test_empty_result_keeps_columns(self, regions, accessor):
        result = BatchRunner(max_workers=1).run_all(regions, SPECS[1:], accessor)
        df = spots_dataframe(result)
        assert df.empty
        assert list(df.columns) == SPOT_COLUMNS

    def test_write_csv(self, batch_result, tmp_path):
        path = tmp_path / "spots.csv"
        write_spots_csv(batch_result, path)
        assert len(pd.read_csv(path)) == 3


class TestDetectionsGeojson:
    def test_feature_per_region_channel(self, batch_result):
        data = detections_geojson(batch_result)
        assert data["type"] == "FeatureCollection"
        assert len(data["features"]) == 4

    def test_points_at_pixel_centres(self, batch_result):
        feature = detections_geojson(batch_result)["features"][2]
        spot = batch_result.results[2].detection.spots[0]
        assert feature["geometry"]["type"] == "MultiPoint"
        assert feature["geometry"]["coordinates"] == [[spot.x + 0.5, spot.y + 0.5]]

    def test_properties(self, batch_result):
        props = detections_geojson(batch_result)["features"][0]["properties"]
        assert props["objectType"] == "detection"
        assert props["name"] == "A CY5"
        assert props["classification"] == {"name": "Tumor RNAScope CY5", "color": [255, 0, 0]}
        assert props["measurements"] == {"Num points": 2}

    def test_no_color_when_unknown(self, batch_result):
        props = detections_geojson(batch_result)["features"][1]["properties"]
        assert props["classification"] == {"name": "Tumor RNAScope FITC"}

    def test_write(self, batch_result, tmp_path):
        path = tmp_path / "points.geojson"
        write_detections_geojson(batch_result, path)
        data = json.loads(path.read_text())
        assert len(data["features"]) == 4
