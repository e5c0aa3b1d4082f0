"""Detection configuration: per-channel prominences and pipeline settings.

A detection plan can be stored as YAML::

    channels:
      - name: CY5
        prominence: 80
    median_radius: 1.5
    sigma_pixels: 1.0
    strict: true
    workers: 4

Requires pyyaml for file I/O.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from rnaspot.core.exceptions import ConfigurationError
from rnaspot.core.models import ChannelSpec
from rnaspot.detect.denoise import DEFAULT_MEDIAN_RADIUS, circular_footprint

DEFAULT_SIGMA_PIXELS = 1.0


def _require_yaml() -> Any:
    """Import and return the yaml module, or raise a helpful error."""
    try:
        import yaml

        return yaml
    except ImportError:
        raise ImportError(
            "pyyaml is required for detection plan files. "
            "Install it with: pip install pyyaml"
        ) from None


def build_channel_specs(
    channel_names: Sequence[str],
    prominences: Sequence[float],
    pixel_size: float,
    sigma_pixels: float = DEFAULT_SIGMA_PIXELS,
    colors: dict[str, str] | None = None,
) -> list[ChannelSpec]:
    """Pair channel names with prominences and derive each channel's sigma.

    The LoG scale is ``sigma_pixels`` pixels expressed in physical units,
    so it follows the image resolution rather than being a raw constant.

    Args:
        channel_names: Channels to process, in order.
        prominences: One prominence per channel.
        pixel_size: Physical pixel size of the image (µm).
        sigma_pixels: LoG scale in pixels (default: 1.0).
        colors: Optional channel-name -> colour mapping.

    Returns:
        One ChannelSpec per channel.

    Raises:
        ConfigurationError: On mismatched lengths, empty or duplicate names,
            or invalid numeric values.
    """
    names = list(channel_names)
    proms = list(prominences)
    if not names:
        raise ConfigurationError("At least one channel must be configured")
    if len(names) != len(proms):
        raise ConfigurationError(
            f"Got {len(names)} channel names but {len(proms)} prominence values"
        )
    for name in names:
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError(f"Invalid channel name: {name!r}")
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate channel names: {duplicates}")
    if not (isinstance(pixel_size, (int, float)) and math.isfinite(pixel_size) and pixel_size > 0):
        raise ConfigurationError(f"pixel_size must be > 0, got {pixel_size}")
    if not (isinstance(sigma_pixels, (int, float)) and math.isfinite(sigma_pixels) and sigma_pixels > 0):
        raise ConfigurationError(f"sigma_pixels must be > 0, got {sigma_pixels}")

    sigma = float(sigma_pixels) * float(pixel_size)
    colors = colors or {}
    return [
        ChannelSpec(name=name, sigma=sigma, prominence=prom, color=colors.get(name))
        for name, prom in zip(names, proms)
    ]


@dataclass(frozen=True)
class DetectionConfig:
    """Caller-supplied detection settings.

    Attributes:
        channel_names: Channels to process.
        prominences: Prominence per channel (parallel to channel_names).
        median_radius: Median filter radius in pixels.
        sigma_pixels: LoG scale in pixels.
        strict: Strict prominence acceptance.
        max_workers: Worker threads for the batch. None = CPU count.
    """

    channel_names: list[str] = field(default_factory=list)
    prominences: list[float] = field(default_factory=list)
    median_radius: float = DEFAULT_MEDIAN_RADIUS
    sigma_pixels: float = DEFAULT_SIGMA_PIXELS
    strict: bool = True
    max_workers: int | None = None

    def __post_init__(self) -> None:
        """Validate parameters that do not depend on the image."""
        if len(self.channel_names) != len(self.prominences):
            raise ConfigurationError(
                f"Got {len(self.channel_names)} channel names but "
                f"{len(self.prominences)} prominence values"
            )
        circular_footprint(self.median_radius)
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.max_workers}")

    def channel_specs(
        self, pixel_size: float, colors: dict[str, str] | None = None,
    ) -> list[ChannelSpec]:
        """Build the ChannelSpecs for an image of the given pixel size."""
        return build_channel_specs(
            self.channel_names, self.prominences, pixel_size,
            sigma_pixels=self.sigma_pixels, colors=colors,
        )

    def with_channels(
        self, channel_names: Sequence[str], prominences: Sequence[float],
    ) -> DetectionConfig:
        """Return a copy with the channel list replaced."""
        return DetectionConfig(
            channel_names=list(channel_names),
            prominences=list(prominences),
            median_radius=self.median_radius,
            sigma_pixels=self.sigma_pixels,
            strict=self.strict,
            max_workers=self.max_workers,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "channels": [
                {"name": n, "prominence": float(p)}
                for n, p in zip(self.channel_names, self.prominences)
            ],
            "median_radius": self.median_radius,
            "sigma_pixels": self.sigma_pixels,
            "strict": self.strict,
        }
        if self.max_workers is not None:
            data["workers"] = self.max_workers
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DetectionConfig:
        """Build a config from a parsed plan.

        Raises:
            ConfigurationError: If the plan is malformed.
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Detection plan must be a mapping")
        channels = data.get("channels", [])
        if not isinstance(channels, list):
            raise ConfigurationError("'channels' must be a list")

        names: list[str] = []
        proms: list[float] = []
        for i, entry in enumerate(channels):
            if not isinstance(entry, dict) or "name" not in entry:
                raise ConfigurationError(f"Channel entry {i} is missing 'name'")
            if "prominence" not in entry:
                raise ConfigurationError(
                    f"Channel {entry['name']!r} is missing 'prominence'"
                )
            try:
                prom = float(entry["prominence"])
            except (TypeError, ValueError):
                raise ConfigurationError(
                    f"Channel {entry['name']!r} has non-numeric prominence "
                    f"{entry['prominence']!r}"
                ) from None
            names.append(str(entry["name"]))
            proms.append(prom)

        unknown = set(data) - {"channels", "median_radius", "sigma_pixels", "strict", "workers"}
        if unknown:
            raise ConfigurationError(f"Unknown detection plan keys: {sorted(unknown)}")

        try:
            return cls(
                channel_names=names,
                prominences=proms,
                median_radius=float(data.get("median_radius", DEFAULT_MEDIAN_RADIUS)),
                sigma_pixels=float(data.get("sigma_pixels", DEFAULT_SIGMA_PIXELS)),
                strict=bool(data.get("strict", True)),
                max_workers=int(data["workers"]) if data.get("workers") is not None else None,
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid detection plan value: {e}") from e

    def to_yaml(self, path: Path) -> None:
        """Write the config as a YAML detection plan."""
        yaml = _require_yaml()
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, path: Path) -> DetectionConfig:
        """Load a YAML detection plan.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigurationError: If the plan is malformed.
        """
        yaml = _require_yaml()
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Detection plan not found: {path}")
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        return cls.from_dict(data or {})
