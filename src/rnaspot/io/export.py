"""Export of detection results: CSV tables and QuPath GeoJSON points."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from rnaspot.core.models import density_metric, spots_metric
from rnaspot.detect.batch import BatchResult

SPOT_COLUMNS = ["region", "region_class", "channel", "class", "x", "y", "response"]


def measurements_dataframe(result: BatchResult) -> pd.DataFrame:
    """One row per region, one column per measurement.

    Columns: region, class, area_um2, then "RNAScope <channel> Spots" and
    "RNAScope <channel> Density" for each processed channel.
    """
    rows: dict[int, dict] = {}
    for entry in result.results:
        region = entry.region
        detection = entry.detection
        row = rows.setdefault(id(region), {
            "region": region.name,
            "class": region.path_class,
            "area_um2": detection.area_um2,
        })
        row[spots_metric(detection.channel)] = float(detection.count)
        row[density_metric(detection.channel)] = float(detection.density)
    return pd.DataFrame(list(rows.values()))


def spots_dataframe(result: BatchResult) -> pd.DataFrame:
    """One row per detected spot, in image pixel coordinates."""
    rows = [
        {
            "region": entry.region.name,
            "region_class": entry.region.path_class,
            "channel": entry.detection.channel,
            "class": entry.path_class,
            "x": spot.x,
            "y": spot.y,
            "response": spot.value,
        }
        for entry in result.results
        for spot in entry.detection.spots
    ]
    return pd.DataFrame(rows, columns=SPOT_COLUMNS)


def write_measurements_csv(result: BatchResult, path: Path) -> None:
    measurements_dataframe(result).to_csv(path, index=False)


def write_spots_csv(result: BatchResult, path: Path) -> None:
    spots_dataframe(result).to_csv(path, index=False)


def _hex_to_rgb(color: str | None) -> list[int] | None:
    if not color or not color.startswith("#") or len(color) != 7:
        return None
    try:
        return [int(color[i:i + 2], 16) for i in (1, 3, 5)]
    except ValueError:
        return None


def detections_geojson(result: BatchResult) -> dict:
    """Spots as QuPath detections: one MultiPoint feature per region/channel.

    Coordinates are pixel centres (x + 0.5, y + 0.5), QuPath's convention.
    """
    features = []
    for entry in result.results:
        classification: dict = {"name": entry.path_class}
        rgb = _hex_to_rgb(entry.color)
        if rgb is not None:
            classification["color"] = rgb
        features.append({
            "type": "Feature",
            "geometry": {
                "type": "MultiPoint",
                "coordinates": [
                    [spot.x + 0.5, spot.y + 0.5] for spot in entry.detection.spots
                ],
            },
            "properties": {
                "objectType": "detection",
                "name": f"{entry.region.name} {entry.detection.channel}",
                "classification": classification,
                "measurements": {"Num points": entry.detection.count},
            },
        })
    return {"type": "FeatureCollection", "features": features}


def write_detections_geojson(result: BatchResult, path: Path) -> None:
    with open(path, "w") as f:
        json.dump(detections_geojson(result), f, indent=2)
