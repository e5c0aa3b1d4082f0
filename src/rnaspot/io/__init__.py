"""rnaspot IO — image loading, region import, and result export."""

from rnaspot.io.export import (
    detections_geojson,
    measurements_dataframe,
    spots_dataframe,
    write_detections_geojson,
    write_measurements_csv,
    write_spots_csv,
)
from rnaspot.io.regions import (
    clear_previous_results,
    regions_from_geojson,
    regions_from_labels,
)
from rnaspot.io.tiff import load_raster, read_tiff, read_tiff_metadata

__all__ = [
    "clear_previous_results",
    "detections_geojson",
    "load_raster",
    "measurements_dataframe",
    "read_tiff",
    "read_tiff_metadata",
    "regions_from_geojson",
    "regions_from_labels",
    "spots_dataframe",
    "write_detections_geojson",
    "write_measurements_csv",
    "write_spots_csv",
]
