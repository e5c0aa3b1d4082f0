"""Tests for rnaspot.io.tiff."""

import logging
from pathlib import Path

import numpy as np
import pytest
import tifffile

from rnaspot.io.tiff import (
    _ome_color_to_hex,
    _parse_ome,
    _resolution_pixel_size,
    _to_cyx,
    load_raster,
    read_tiff,
    read_tiff_metadata,
)


@pytest.fixture
def ome_tiff(tmp_path: Path) -> Path:
    data = np.zeros((2, 32, 48), dtype=np.uint16)
    data[1, 10, 20] = 500
    path = tmp_path / "slide.ome.tif"
    tifffile.imwrite(
        path, data, ome=True,
        metadata={
            "axes": "CYX",
            "PhysicalSizeX": 0.325,
            "PhysicalSizeXUnit": "µm",
            "PhysicalSizeY": 0.325,
            "PhysicalSizeYUnit": "µm",
            "Channel": {"Name": ["DAPI", "CY5"]},
        },
    )
    return path


@pytest.fixture
def imagej_tiff(tmp_path: Path) -> Path:
    data = np.zeros((3, 20, 30), dtype=np.uint8)
    path = tmp_path / "hyperstack.tif"
    tifffile.imwrite(
        path, data, imagej=True,
        resolution=(4.0, 4.0), resolutionunit=1,
        metadata={"axes": "CYX", "unit": "um", "Labels": ["DAPI", "CY5", "FITC"]},
    )
    return path


@pytest.fixture
def plain_tiff(tmp_path: Path) -> Path:
    path = tmp_path / "plain.tif"
    tifffile.imwrite(
        path, np.arange(600, dtype=np.uint16).reshape(20, 30),
        resolution=(1.0, 1.0), resolutionunit=1,
    )
    return path


class TestReadTiff:
    def test_reads_array(self, plain_tiff):
        data = read_tiff(plain_tiff)
        assert data.shape == (20, 30)
        assert data[1, 0] == 30


class TestReadTiffMetadata:
    def test_ome_pixel_size_and_names(self, ome_tiff):
        meta = read_tiff_metadata(ome_tiff)
        assert meta["pixel_size_um"] == pytest.approx(0.325)
        assert meta["channel_names"] == ["DAPI", "CY5"]
        assert meta["shape"] == (2, 32, 48)
        assert meta["dtype"] == "uint16"

    def test_imagej_calibration_and_labels(self, imagej_tiff):
        meta = read_tiff_metadata(imagej_tiff)
        assert meta["pixel_size_um"] == pytest.approx(0.25)
        assert meta["channel_names"] == ["DAPI", "CY5", "FITC"]

    def test_uncalibrated(self, plain_tiff):
        meta = read_tiff_metadata(plain_tiff)
        assert meta["pixel_size_um"] is None
        assert meta["channel_names"] == []

    def test_centimeter_resolution(self, tmp_path):
        path = tmp_path / "cm.tif"
        tifffile.imwrite(
            path, np.zeros((8, 8), dtype=np.uint8),
            resolution=(20000.0, 20000.0), resolutionunit=3,
        )
        assert read_tiff_metadata(path)["pixel_size_um"] == pytest.approx(0.5)


class TestParseOme:
    OME = (
        '<?xml version="1.0"?>'
        '<OME xmlns="http://www.openmicroscopy.org/Schemas/OME/2016-06">'
        '<Image ID="Image:0"><Pixels ID="Pixels:0" DimensionOrder="XYCZT" '
        'Type="uint16" SizeX="4" SizeY="4" SizeC="2" SizeZ="1" SizeT="1" '
        'PhysicalSizeX="325" PhysicalSizeXUnit="nm">'
        '<Channel ID="Channel:0:0" Name="DAPI" Color="65535"/>'
        '<Channel ID="Channel:0:1" Color="-16776961"/>'
        "</Pixels></Image></OME>"
    )

    def test_pixel_size_unit_conversion(self):
        assert _parse_ome(self.OME)["pixel_size_um"] == pytest.approx(0.325)

    def test_channel_names_default(self):
        assert _parse_ome(self.OME)["channel_names"] == ["DAPI", "Channel 2"]

    def test_channel_colors(self):
        colors = _parse_ome(self.OME)["channel_colors"]
        assert colors == {"DAPI": "#0000FF", "Channel 2": "#FF0000"}

    def test_malformed_xml(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert _parse_ome("<OME><unclosed") == {}
        assert "Could not parse OME-XML" in caplog.text

    def test_entity_expansion_rejected(self):
        hostile = (
            '<?xml version="1.0"?>'
            '<!DOCTYPE OME [<!ENTITY xxe SYSTEM "file:///etc/passwd">]>'
            '<OME><Image><Pixels PhysicalSizeX="&xxe;"/></Image></OME>'
        )
        assert _parse_ome(hostile) == {}

    def test_color_conversion(self):
        assert _ome_color_to_hex(-1) == "#FFFFFF"
        assert _ome_color_to_hex(0x00FF00FF) == "#00FF00"


class TestResolutionPixelSize:
    class _Tag:
        def __init__(self, value):
            self.value = value

    class _Page:
        def __init__(self, tags):
            self.tags = tags

    def _page(self, x_res, unit=None):
        tags = {"XResolution": self._Tag(x_res)}
        if unit is not None:
            tags["ResolutionUnit"] = self._Tag(unit)
        return self._Page(tags)

    def test_inch(self):
        assert _resolution_pixel_size(self._page((25400, 1), 2)) == pytest.approx(1.0)

    def test_none_unit_without_imagej(self):
        assert _resolution_pixel_size(self._page((4, 1), 1)) is None

    def test_none_unit_with_imagej_micron(self):
        assert _resolution_pixel_size(self._page((4, 1), 1), "micron") == pytest.approx(0.25)

    def test_zero_denominator(self):
        assert _resolution_pixel_size(self._page((4, 0), 3)) is None

    def test_missing_tag(self):
        assert _resolution_pixel_size(self._Page({})) is None


class TestToCyx:
    def test_yx(self):
        assert _to_cyx(np.zeros((4, 5)), "YX").shape == (1, 4, 5)

    def test_rgb_samples(self):
        assert _to_cyx(np.zeros((4, 5, 3)), "YXS").shape == (3, 4, 5)

    def test_singleton_axes_dropped(self):
        assert _to_cyx(np.zeros((1, 2, 1, 4, 5)), "TCZYX").shape == (2, 4, 5)

    def test_unknown_stack_axis_is_channel(self):
        assert _to_cyx(np.zeros((3, 4, 5)), "QYX").shape == (3, 4, 5)

    def test_z_stack_rejected(self):
        with pytest.raises(ValueError, match="single-plane"):
            _to_cyx(np.zeros((2, 3, 4, 5)), "CZYX")

    def test_axes_mismatch(self):
        with pytest.raises(ValueError, match="do not match"):
            _to_cyx(np.zeros((4, 5)), "CYX")


class TestLoadRaster:
    def test_ome(self, ome_tiff):
        raster, colors = load_raster(ome_tiff)
        assert raster.channel_names == ("DAPI", "CY5")
        assert raster.pixel_size == pytest.approx(0.325)
        assert raster.data.shape == (2, 32, 48)
        assert raster.data[1, 10, 20] == 500
        assert colors == {}

    def test_imagej(self, imagej_tiff):
        raster, _ = load_raster(imagej_tiff)
        assert raster.channel_names == ("DAPI", "CY5", "FITC")
        assert raster.pixel_size == pytest.approx(0.25)

    def test_uncalibrated_defaults(self, plain_tiff, caplog):
        with caplog.at_level(logging.WARNING):
            raster, _ = load_raster(plain_tiff)
        assert raster.channel_names == ("Channel 1",)
        assert raster.pixel_size == 1.0
        assert "No pixel size" in caplog.text

    def test_overrides(self, ome_tiff):
        raster, _ = load_raster(ome_tiff, channel_names=["a", "b"], pixel_size=0.5)
        assert raster.channel_names == ("a", "b")
        assert raster.pixel_size == 0.5

    def test_wrong_override_count(self, ome_tiff):
        with pytest.raises(ValueError, match="channel names"):
            load_raster(ome_tiff, channel_names=["only"])

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_raster(tmp_path / "missing.tif")
