"""Persistent risk state and its stores.

The persistent state records the outcome of the last successful calculation
(risk level and detection time) together with the tracing status history.
It is replaced as a whole on every save.
"""

import os
import threading
from datetime import datetime
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from exposure_risk.exposure.protocol import RiskStateStore
from exposure_risk.risk.levels import RiskLevel
from exposure_risk.risk.tracing import TracingStatusHistory
from exposure_risk.utils.exceptions import RiskStoreError
from exposure_risk.utils.timestamps import as_utc

logger = structlog.get_logger()


class PersistentRiskState(BaseModel):
    """Risk state that survives restarts."""

    model_config = ConfigDict(frozen=True)

    date_last_exposure_detection: datetime | None = None
    last_risk_level: RiskLevel | None = None
    tracing_history: TracingStatusHistory = Field(default_factory=TracingStatusHistory)

    @field_validator("date_last_exposure_detection")
    @classmethod
    def _normalize_detection_date(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class InMemoryRiskStateStore:
    """Risk state store kept in process memory."""

    def __init__(self, state: PersistentRiskState | None = None) -> None:
        self._state = state or PersistentRiskState()
        self._lock = threading.Lock()
        self.save_count = 0

    def load(self) -> PersistentRiskState:
        """Read the current persistent risk state."""
        with self._lock:
            return self._state

    def save(self, state: PersistentRiskState) -> None:
        """Replace the persistent risk state."""
        with self._lock:
            self._state = state
            self.save_count += 1


class JsonFileRiskStateStore:
    """Risk state store backed by a JSON file.

    Saves write a temporary file next to the target and rename it over the
    target, so a crash never leaves a half-written state behind.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> PersistentRiskState:
        """Read the state file. A missing file yields the initial state.

        Raises:
            RiskStoreError: If the file cannot be read or is not a valid state.
        """
        with self._lock:
            try:
                raw = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                logger.info("risk_state_initialized", path=str(self.path))
                return PersistentRiskState()
            except OSError as e:
                raise RiskStoreError(str(e), operation="load", path=self.path) from e

            try:
                return PersistentRiskState.model_validate_json(raw)
            except ValidationError as e:
                raise RiskStoreError(
                    f"Invalid risk state file: {e.error_count()} error(s)",
                    operation="load",
                    path=self.path,
                ) from e

    def save(self, state: PersistentRiskState) -> None:
        """Write the state file.

        Raises:
            RiskStoreError: If the file cannot be written.
        """
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
                os.replace(tmp_path, self.path)
            except OSError as e:
                raise RiskStoreError(str(e), operation="save", path=self.path) from e

        logger.debug(
            "risk_state_saved",
            path=str(self.path),
            last_risk_level=state.last_risk_level.value if state.last_risk_level else None,
        )


def record_tracing_status(
    store: RiskStateStore,
    enabled: bool,
    at: datetime,
) -> PersistentRiskState:
    """Append a tracing on/off transition to the stored tracing history.

    Args:
        store: Store holding the tracing history.
        enabled: Whether tracing was switched on.
        at: When the switch happened.

    Returns:
        The saved state.
    """
    state = store.load()
    history = state.tracing_history.with_status(enabled, at)
    if history is state.tracing_history:
        return state

    updated = state.model_copy(update={"tracing_history": history})
    store.save(updated)
    logger.info("tracing_status_recorded", enabled=enabled, at=at.isoformat())
    return updated
