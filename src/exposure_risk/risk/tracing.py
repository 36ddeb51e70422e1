"""Tracing status history used by the tracing duration check.

The history is an ordered list of on/off transitions of exposure tracing.
It supports two ways of measuring how long tracing has been active:

- CUMULATIVE: the sum of all enabled intervals, so time spent with tracing
  switched off does not count.
- SINCE_FIRST_ENABLED: wall-clock time since tracing was first switched on.
"""

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from exposure_risk.utils.timestamps import as_utc


class TracingDurationMode(str, Enum):
    """How the active tracing duration is measured."""

    CUMULATIVE = "cumulative"
    SINCE_FIRST_ENABLED = "since_first_enabled"


class TracingStatusEntry(BaseModel):
    """A single tracing on/off transition."""

    enabled: bool
    at: datetime

    @field_validator("at")
    @classmethod
    def _normalize_at(cls, value: datetime) -> datetime:
        return as_utc(value)


class TracingStatusHistory(BaseModel):
    """Chronological tracing status transitions."""

    entries: list[TracingStatusEntry] = Field(default_factory=list)

    @property
    def is_enabled(self) -> bool:
        """Whether the most recent transition switched tracing on."""
        return bool(self.entries) and self.entries[-1].enabled

    @property
    def first_enabled_at(self) -> datetime | None:
        """When tracing was switched on for the first time."""
        for entry in self.entries:
            if entry.enabled:
                return entry.at
        return None

    def with_status(self, enabled: bool, at: datetime) -> "TracingStatusHistory":
        """Return a copy of the history with a new transition appended.

        Repeating the current status is a no-op.

        Raises:
            ValueError: If ``at`` is earlier than the last recorded transition.
        """
        at = as_utc(at)
        if self.entries and at < self.entries[-1].at:
            raise ValueError(
                f"Tracing status at {at.isoformat()} precedes last entry "
                f"at {self.entries[-1].at.isoformat()}"
            )
        if self.entries and self.entries[-1].enabled == enabled:
            return self
        return TracingStatusHistory(
            entries=[*self.entries, TracingStatusEntry(enabled=enabled, at=at)]
        )

    def active_duration(
        self,
        now: datetime,
        mode: TracingDurationMode = TracingDurationMode.CUMULATIVE,
    ) -> timedelta:
        """Get how long tracing has been active as of ``now``.

        Transitions later than ``now`` are ignored.
        """
        now = as_utc(now)
        if mode == TracingDurationMode.SINCE_FIRST_ENABLED:
            first = self.first_enabled_at
            if first is None or first > now:
                return timedelta(0)
            return now - first

        total = timedelta(0)
        enabled_since: datetime | None = None
        for entry in self.entries:
            if entry.at > now:
                break
            if entry.enabled and enabled_since is None:
                enabled_since = entry.at
            elif not entry.enabled and enabled_since is not None:
                total += entry.at - enabled_since
                enabled_since = None

        if enabled_since is not None:
            total += now - enabled_since
        return total
