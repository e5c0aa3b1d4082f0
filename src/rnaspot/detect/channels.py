"""Channel extraction from multi-channel rasters."""

from __future__ import annotations

import numpy as np

from rnaspot.core.exceptions import ChannelNotFoundError
from rnaspot.core.models import Raster


def extract_channel(raster: Raster, channel_name: str) -> Raster:
    """Return a single-channel copy of the named channel.

    Args:
        raster: Multi-channel raster.
        channel_name: Name listed in ``raster.channel_names``.

    Returns:
        New single-channel Raster with the same calibration and origin.

    Raises:
        ChannelNotFoundError: If the channel is not present.
    """
    if channel_name not in raster.channel_names:
        raise ChannelNotFoundError(channel_name)
    index = raster.channel_names.index(channel_name)
    return raster.with_data(np.array(raster.data[index]), channel_name=channel_name)
