"""TIFF loading with channel names and pixel calibration via tifffile."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import numpy as np
import tifffile

from rnaspot.core.models import Raster

logger = logging.getLogger(__name__)

_UM_FACTORS = {
    "µm": 1.0, "um": 1.0, "micron": 1.0, "microns": 1.0, "micrometer": 1.0,
    "nm": 1e-3, "nanometer": 1e-3,
    "mm": 1e3, "millimeter": 1e3,
}


def read_tiff(path: Path) -> np.ndarray:
    """Read a TIFF file into a numpy array."""
    return tifffile.imread(str(path))


def read_tiff_metadata(path: Path) -> dict:
    """Extract metadata from a TIFF file without reading pixel data.

    Returns:
        Dict with keys 'shape', 'axes', 'dtype', 'pixel_size_um',
        'channel_names' and 'channel_colors'. Missing values are None
        (or empty).
    """
    with tifffile.TiffFile(str(path)) as tif:
        series = tif.series[0]
        ome = _parse_ome(tif.ome_metadata) if tif.ome_metadata else {}
        ij = tif.imagej_metadata or {}

        pixel_size = ome.get("pixel_size_um")
        if pixel_size is None:
            pixel_size = _resolution_pixel_size(tif.pages[0], ij.get("unit"))

        names = ome.get("channel_names") or _imagej_channel_names(ij)

        return {
            "shape": tuple(series.shape),
            "axes": series.axes,
            "dtype": str(series.dtype),
            "pixel_size_um": pixel_size,
            "channel_names": list(names or []),
            "channel_colors": dict(ome.get("channel_colors") or {}),
        }


def _parse_ome(xml: str) -> dict:
    """Pixel size, channel names and colours from OME-XML."""
    import defusedxml.ElementTree as ET

    try:
        root = ET.fromstring(xml)
    except Exception as e:
        logger.warning("Could not parse OME-XML metadata: %s", e)
        return {}

    result: dict = {}
    pixels = root.find(".//{*}Pixels")
    if pixels is None:
        return result

    ps_x = pixels.get("PhysicalSizeX")
    if ps_x is not None:
        unit = pixels.get("PhysicalSizeXUnit", "µm")
        try:
            result["pixel_size_um"] = float(ps_x) * _UM_FACTORS.get(unit, 1.0)
        except ValueError:
            logger.warning("Invalid OME PhysicalSizeX: %r", ps_x)

    names: list[str] = []
    colors: dict[str, str] = {}
    for i, channel in enumerate(pixels.findall("{*}Channel")):
        name = channel.get("Name") or f"Channel {i + 1}"
        names.append(name)
        color = channel.get("Color")
        if color is not None:
            try:
                colors[name] = _ome_color_to_hex(int(color))
            except ValueError:
                pass
    if names:
        result["channel_names"] = names
        result["channel_colors"] = colors
    return result


def _ome_color_to_hex(value: int) -> str:
    """OME colours are signed 32-bit RGBA integers."""
    rgba = value & 0xFFFFFFFF
    return "#{:02X}{:02X}{:02X}".format(
        (rgba >> 24) & 0xFF, (rgba >> 16) & 0xFF, (rgba >> 8) & 0xFF,
    )


def _imagej_channel_names(ij: dict) -> list[str] | None:
    labels = ij.get("Labels")
    channels = ij.get("channels")
    if isinstance(labels, (list, tuple)) and channels and len(labels) >= int(channels):
        return [str(label) for label in labels[: int(channels)]]
    return None


def _resolution_pixel_size(page: tifffile.TiffPage, imagej_unit: str | None = None) -> float | None:
    tags = page.tags
    if "XResolution" not in tags:
        return None
    x_res = tags["XResolution"].value
    res_unit = tags["ResolutionUnit"].value if "ResolutionUnit" in tags else 2
    if isinstance(x_res, tuple) and len(x_res) == 2:
        if x_res[1] == 0:
            return None
        pixels_per_unit = x_res[0] / x_res[1]
    else:
        pixels_per_unit = float(x_res)
    if pixels_per_unit <= 0:
        return None
    # ResolutionUnit: 1 = none, 2 = inch, 3 = centimeter
    if res_unit == 3:
        return 10000.0 / pixels_per_unit
    if res_unit == 2:
        return 25400.0 / pixels_per_unit
    # ImageJ writes ResolutionUnit NONE and keeps the unit in its metadata
    if res_unit == 1 and imagej_unit in _UM_FACTORS:
        return _UM_FACTORS[imagej_unit] / pixels_per_unit
    return None


def _to_cyx(data: np.ndarray, axes: str) -> np.ndarray:
    """Reorder an image with tifffile axes into (C, Y, X).

    Axes other than channel and plane axes must have size 1.
    """
    axes = axes.upper()
    if len(axes) != data.ndim:
        raise ValueError(f"Axes {axes!r} do not match {data.ndim}D data")

    # Plain shaped TIFFs label a leading stack axis as Q (unknown) or I
    if "C" not in axes and "S" not in axes:
        for unknown in "QI":
            if axes.count(unknown) == 1 and axes.index(unknown) < axes.find("Y"):
                axes = axes.replace(unknown, "C")
                break

    for ax in reversed(range(len(axes))):
        if axes[ax] not in "CSYX":
            if data.shape[ax] != 1:
                raise ValueError(
                    f"Only single-plane images are supported; axis {axes[ax]!r} "
                    f"has size {data.shape[ax]}"
                )
            data = np.take(data, 0, axis=ax)
            axes = axes[:ax] + axes[ax + 1:]

    if "C" in axes and "S" in axes:
        raise ValueError("Images with both C and S axes are not supported")
    axes = axes.replace("S", "C")
    if "C" not in axes:
        data = data[np.newaxis]
        axes = "C" + axes
    if sorted(axes) != sorted("CYX"):
        raise ValueError(f"Unsupported axes {axes!r}")
    return np.transpose(data, [axes.index(a) for a in "CYX"])


def load_raster(
    path: Path,
    channel_names: Sequence[str] | None = None,
    pixel_size: float | None = None,
) -> tuple[Raster, dict[str, str]]:
    """Load a TIFF image as a (C, Y, X) Raster.

    Args:
        path: Path to the TIFF file.
        channel_names: Override channel names from the metadata.
        pixel_size: Override the pixel size (µm) from the metadata.

    Returns:
        (raster, channel_colors). Channel colours come from OME metadata
        and may be empty.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the image layout is unsupported or the channel
            names do not match the channel count.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    meta = read_tiff_metadata(path)
    with tifffile.TiffFile(str(path)) as tif:
        series = tif.series[0]
        data = _to_cyx(series.asarray(), series.axes)

    n_channels = data.shape[0]
    if channel_names is not None:
        names = list(channel_names)
    elif len(meta["channel_names"]) == n_channels:
        names = meta["channel_names"]
    else:
        names = [f"Channel {i + 1}" for i in range(n_channels)]
    if len(names) != n_channels:
        raise ValueError(
            f"Got {len(names)} channel names for {n_channels} channels in {path.name}"
        )

    if pixel_size is None:
        pixel_size = meta["pixel_size_um"]
    if pixel_size is None:
        logger.warning("No pixel size found in %s; assuming 1.0 µm", path.name)
        pixel_size = 1.0

    raster = Raster(data=data, channel_names=tuple(names), pixel_size=pixel_size)
    colors = {n: c for n, c in meta["channel_colors"].items() if n in names}
    return raster, colors
