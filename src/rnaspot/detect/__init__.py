"""rnaspot detect — median, LoG and prominence maxima spot detection."""

from rnaspot.detect.batch import BatchResult, BatchRunner, RegionChannelResult
from rnaspot.detect.channels import extract_channel
from rnaspot.detect.config import DetectionConfig, build_channel_specs
from rnaspot.detect.denoise import circular_footprint, median_denoise
from rnaspot.detect.detector import RegionSpotDetector, SpotDetectionResult
from rnaspot.detect.log_filter import gaussian_kernel1d, laplacian_of_gaussian
from rnaspot.detect.maxima import find_candidates, find_maxima

__all__ = [
    "BatchResult",
    "BatchRunner",
    "DetectionConfig",
    "RegionChannelResult",
    "RegionSpotDetector",
    "SpotDetectionResult",
    "build_channel_specs",
    "circular_footprint",
    "extract_channel",
    "find_candidates",
    "find_maxima",
    "gaussian_kernel1d",
    "laplacian_of_gaussian",
    "median_denoise",
]
