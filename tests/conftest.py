"""Pytest fixtures for exposure-risk tests."""

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
import structlog

from exposure_risk.exposure.channel import DetectionChannel
from exposure_risk.exposure.types import (
    DetectionFailureReason,
    ExposureAuthorization,
    ExposureDetectionSummary,
    ExposureState,
)
from exposure_risk.risk.calculation import RiskExposureCalculation
from exposure_risk.risk.config import RiskCalculationConfig
from exposure_risk.risk.scoring import ThresholdScoreMapping
from exposure_risk.risk.store import InMemoryRiskStateStore, PersistentRiskState
from exposure_risk.risk.tracing import TracingStatusHistory

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def restore_root_logging():
    """Restore stdlib root logger handlers replaced by setup_logging."""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield root_logger
    root_logger.handlers = handlers
    root_logger.setLevel(level)


# =============================================================================
# Fake Collaborators
# =============================================================================


class FakeClock:
    """Controllable clock returning a fixed UTC time."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeExposureStateProvider:
    """Returns a settable exposure state."""

    def __init__(self, state: ExposureState | None = None) -> None:
        self.state = state or ExposureState.good()
        self.error: Exception | None = None
        self.calls = 0

    def current_state(self) -> ExposureState:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.state


class FakePackagesStore:
    """Downloaded key packages held as a set of day strings."""

    def __init__(self, days: set[str] | None = None) -> None:
        self.days = set(days) if days is not None else {"2026-02-28"}

    def all_days(self) -> set[str]:
        return set(self.days)


class FakeDetectionTrigger:
    """Detection trigger recording every channel it was handed.

    By default it publishes nothing, so tests drive the channel themselves.
    Setting ``summary`` or ``failure`` publishes synchronously from
    start_detection. Setting ``error`` makes start_detection raise. With
    ``from_thread`` the configured signal is published from a worker thread.
    """

    def __init__(self) -> None:
        self.channels: list[DetectionChannel] = []
        self.summary: ExposureDetectionSummary | None = None
        self.failure: DetectionFailureReason | None = None
        self.error: Exception | None = None
        self.from_thread = False
        self.threads: list[threading.Thread] = []

    @property
    def calls(self) -> int:
        return len(self.channels)

    def start_detection(self, channel: DetectionChannel) -> None:
        self.channels.append(channel)
        if self.error is not None:
            raise self.error

        publish = self._publisher(channel)
        if publish is None:
            return
        if self.from_thread:
            thread = threading.Thread(target=publish)
            self.threads.append(thread)
            thread.start()
        else:
            publish()

    def _publisher(self, channel: DetectionChannel) -> Callable[[], object] | None:
        if self.summary is not None:
            summary = self.summary
            return lambda: channel.publish_summary(summary)
        if self.failure is not None:
            reason = self.failure
            return lambda: channel.publish_failure(reason, detail="reported by fake")
        return None


def ready_state(now: datetime = NOW) -> PersistentRiskState:
    """State in which every policy check passes."""
    history = TracingStatusHistory().with_status(True, now - timedelta(days=3))
    return PersistentRiskState(
        date_last_exposure_detection=now - timedelta(hours=1),
        tracing_history=history,
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at NOW."""
    return FakeClock()


@pytest.fixture
def exposure_state_provider() -> FakeExposureStateProvider:
    """Authorized and enabled exposure notification."""
    return FakeExposureStateProvider()


@pytest.fixture
def not_authorized_state() -> ExposureState:
    """Exposure notification switched off and not authorized."""
    return ExposureState(authorization=ExposureAuthorization.NOT_AUTHORIZED, enabled=False)


@pytest.fixture
def packages_store() -> FakePackagesStore:
    """One downloaded key package."""
    return FakePackagesStore()


@pytest.fixture
def risk_store() -> InMemoryRiskStateStore:
    """Store holding a state that passes every policy check."""
    return InMemoryRiskStateStore(ready_state())


@pytest.fixture
def trigger() -> FakeDetectionTrigger:
    """Silent detection trigger."""
    return FakeDetectionTrigger()


@pytest.fixture
def calculation_config() -> RiskCalculationConfig:
    """Default thresholds with a short detection timeout."""
    return RiskCalculationConfig(detection_timeout=timedelta(seconds=2))


@pytest.fixture
def calculation(
    exposure_state_provider: FakeExposureStateProvider,
    packages_store: FakePackagesStore,
    risk_store: InMemoryRiskStateStore,
    trigger: FakeDetectionTrigger,
    calculation_config: RiskCalculationConfig,
    clock: FakeClock,
) -> RiskExposureCalculation:
    """Calculation wired to the fake collaborators."""
    return RiskExposureCalculation(
        exposure_state_provider=exposure_state_provider,
        key_packages_store=packages_store,
        risk_store=risk_store,
        detection_trigger=trigger,
        config=calculation_config,
        score_mapping=ThresholdScoreMapping(),
        clock=clock,
    )
