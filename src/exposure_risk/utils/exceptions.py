"""Custom exceptions for exposure-risk."""

from pathlib import Path


class ExposureRiskError(Exception):
    """Base exception for all exposure-risk errors."""

    pass


class ConfigurationError(ExposureRiskError):
    """Error in configuration or settings."""

    pass


class ScoreMappingError(ConfigurationError):
    """Raised when a score-to-level mapping is not monotonic or out of range.

    Attributes:
        bands: The offending band definitions as (min_score, level) pairs
    """

    def __init__(self, message: str, bands: list[tuple[int, str]] | None = None):
        super().__init__(message)
        self.bands = bands or []

    def __str__(self) -> str:
        return f"ScoreMappingError: {self.args[0]} (bands={self.bands})"


class RiskStoreError(ExposureRiskError):
    """Raised when persistent risk state cannot be read or written.

    Attributes:
        path: Location of the backing file, if any
        operation: "load" or "save"
    """

    def __init__(self, message: str, operation: str, path: Path | None = None):
        super().__init__(message)
        self.operation = operation
        self.path = path

    def __str__(self) -> str:
        location = f", path={self.path}" if self.path else ""
        return f"RiskStoreError({self.operation}{location}): {self.args[0]}"


class ChannelClosedError(ExposureRiskError):
    """Raised when subscribing to a detection channel that was already closed.

    Attributes:
        channel_id: Identifier of the closed channel
    """

    def __init__(self, channel_id: str):
        super().__init__(f"Detection channel is closed: {channel_id}")
        self.channel_id = channel_id

    def __str__(self) -> str:
        return f"ChannelClosedError: {self.args[0]}"
