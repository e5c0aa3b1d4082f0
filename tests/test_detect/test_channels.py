"""Tests for rnaspot.detect.channels."""

import numpy as np
import pytest

from rnaspot.core.exceptions import ChannelNotFoundError
from rnaspot.core.models import Raster
from rnaspot.detect.channels import extract_channel


class TestExtractChannel:
    def test_selects_named_plane(self, two_channel_raster):
        out = extract_channel(two_channel_raster, "FITC")
        assert out.channel_names == ("FITC",)
        np.testing.assert_array_equal(out.plane, two_channel_raster.data[1])

    def test_keeps_calibration(self):
        r = Raster(np.zeros((2, 4, 4)), ("a", "b"), pixel_size=0.2, origin=(5, 6))
        out = extract_channel(r, "b")
        assert out.pixel_size == 0.2
        assert out.origin == (5, 6)

    def test_returns_copy(self, two_channel_raster):
        out = extract_channel(two_channel_raster, "CY5")
        assert not np.shares_memory(out.data, two_channel_raster.data)

    def test_missing_channel(self, two_channel_raster):
        with pytest.raises(ChannelNotFoundError, match="DAPI"):
            extract_channel(two_channel_raster, "DAPI")
