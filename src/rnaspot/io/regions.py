"""Region import from QuPath GeoJSON exports and label images."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import numpy as np

from rnaspot.core.models import RESULT_PREFIX, Region, RegionGeometry

logger = logging.getLogger(__name__)


def _feature_class(properties: dict) -> str | None:
    classification = properties.get("classification")
    if isinstance(classification, dict):
        return classification.get("name")
    if isinstance(classification, str):
        return classification
    return None


def _feature_geometry(geometry: dict) -> RegionGeometry | None:
    kind = geometry.get("type")
    coords = geometry.get("coordinates")
    if not coords:
        return None
    if kind == "Polygon":
        exterior, *holes = coords
        return RegionGeometry.from_polygon(exterior, holes)
    if kind == "MultiPolygon":
        return RegionGeometry.from_polygons(
            [(rings[0], rings[1:]) for rings in coords if rings]
        )
    return None


def regions_from_geojson(path: Path) -> list[Region]:
    """Load annotation regions from a QuPath GeoJSON export.

    Polygon and MultiPolygon features become regions; other geometry types
    (points, lines) are skipped with a log message. The class comes from
    ``properties.classification.name``, the name from ``properties.name``
    (or the feature index), and numeric ``properties.measurements`` are
    copied into the region.

    Args:
        path: Path to a GeoJSON FeatureCollection, Feature, or list of
            features.

    Returns:
        Regions in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not GeoJSON.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Region file not found: {path}")
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid GeoJSON in {path}: {e}") from e

    if isinstance(data, list):
        features = data
    elif isinstance(data, dict) and data.get("type") == "FeatureCollection":
        features = data.get("features", [])
    elif isinstance(data, dict) and data.get("type") == "Feature":
        features = [data]
    else:
        raise ValueError(f"{path.name} is not a GeoJSON feature collection")

    regions: list[Region] = []
    for i, feature in enumerate(features):
        properties = feature.get("properties") or {}
        geometry = _feature_geometry(feature.get("geometry") or {})
        if geometry is None:
            logger.info(
                "Skipping feature %d in %s: unsupported geometry %r",
                i, path.name, (feature.get("geometry") or {}).get("type"),
            )
            continue

        measurements = properties.get("measurements") or {}
        if isinstance(measurements, list):
            # Older QuPath exports: [{"name": ..., "value": ...}, ...]
            measurements = {m.get("name"): m.get("value") for m in measurements}
        numeric = {
            str(k): float(v) for k, v in measurements.items()
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        }

        regions.append(Region(
            name=str(properties.get("name") or f"Annotation {i + 1}"),
            geometry=geometry,
            path_class=_feature_class(properties),
            measurements=numeric,
        ))
    return regions


def regions_from_labels(
    labels: np.ndarray, path_class: str | None = None, prefix: str = "Region",
) -> list[Region]:
    """Build one region per non-zero label of a 2D label image.

    Args:
        labels: 2D integer array, 0 = background.
        path_class: Classification assigned to every region.
        prefix: Region names are "<prefix> <label>".

    Raises:
        ValueError: If labels is not a 2D integer array.
    """
    from skimage.measure import regionprops

    labels = np.asarray(labels)
    if labels.ndim != 2:
        raise ValueError(f"Labels must be 2D, got {labels.ndim}D with shape {labels.shape}")
    if not np.issubdtype(labels.dtype, np.integer):
        raise ValueError(
            f"Labels must have integer dtype, got {labels.dtype}. "
            "Cast to int32 before importing."
        )
    if labels.size == 0 or labels.max() <= 0:
        return []

    regions: list[Region] = []
    for prop in regionprops(labels.astype(np.int32, copy=False)):
        min_row, min_col, _, _ = prop.bbox
        geometry = RegionGeometry.from_mask(prop.image, x=min_col, y=min_row)
        regions.append(Region(
            name=f"{prefix} {prop.label}",
            geometry=geometry,
            path_class=path_class,
        ))
    return regions


def clear_previous_results(regions: list[Region]) -> int:
    """Remove spot measurements left by a previous run.

    Returns:
        Number of measurement entries removed.
    """
    removed = 0
    for region in regions:
        stale = [k for k in region.measurements if k.startswith(f"{RESULT_PREFIX} ")]
        for key in stale:
            del region.measurements[key]
        removed += len(stale)
    return removed
