"""Exception classes for the rnaspot core module."""


class SpotDetectionError(Exception):
    """Base exception for all spot detection errors."""


class ChannelNotFoundError(SpotDetectionError):
    """Raised when a configured channel is absent from the image metadata."""

    def __init__(self, name: str | None = None) -> None:
        msg = f"Channel not found: {name}" if name else "Channel not found"
        super().__init__(msg)
        self.name = name


class ConfigurationError(SpotDetectionError):
    """Raised when detection parameters are invalid or inconsistent."""


class InvalidScaleError(ConfigurationError):
    """Raised when the LoG scale (sigma) is not strictly positive."""

    def __init__(self, sigma: float | None = None) -> None:
        super().__init__(f"Sigma must be > 0, got {sigma}")
        self.sigma = sigma


class InvalidProminenceError(ConfigurationError):
    """Raised when a maxima prominence is negative or not a finite number."""

    def __init__(self, prominence: float | None = None) -> None:
        super().__init__(f"Prominence must be a finite value >= 0, got {prominence}")
        self.prominence = prominence


class InvalidRadiusError(ConfigurationError):
    """Raised when the median filter radius is not strictly positive."""

    def __init__(self, radius: float | None = None) -> None:
        super().__init__(f"Median radius must be > 0, got {radius}")
        self.radius = radius


class EmptyRegionError(SpotDetectionError):
    """Raised when a region has zero area in the image being analyzed."""

    def __init__(self, name: str | None = None) -> None:
        msg = f"Region has zero area: {name}" if name else "Region has zero area"
        super().__init__(msg)
        self.name = name
