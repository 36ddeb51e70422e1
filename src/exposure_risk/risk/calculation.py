"""Risk exposure calculation.

Used when the user, or a background schedule, asks for the current risk
level. A run goes through these steps:

1. Exposure notification must be authorized and enabled, else INACTIVE.
2. Diagnosis key packages must have been downloaded, else UNKNOWN_INITIAL.
3. Tracing must have been active for the minimum duration, else UNKNOWN_INITIAL.
4. The last exposure detection must not be stale, else UNKNOWN_OUTDATED
   (UNKNOWN_INITIAL if detection never ran).
5. If none of the above produced an undeterminable level, an exposure
   detection run is triggered.
6. The run waits, bounded by a timeout, for the detection summary or failure.

Runs are serialized: a second call queues behind the one in progress.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime

import structlog
from uuid_utils import uuid7

from exposure_risk.exposure.channel import DetectionChannel
from exposure_risk.exposure.protocol import (
    DownloadedPackagesStore,
    ExposureDetectionTrigger,
    ExposureStateProvider,
    RiskStateStore,
)
from exposure_risk.exposure.types import DetectionFailureReason
from exposure_risk.observability.metrics import (
    observe_detection_wait,
    record_calculation,
    record_detection_failure,
    set_pending_calculations,
)
from exposure_risk.observability.tracing import add_span_attributes, traced_async
from exposure_risk.risk.config import RiskCalculationConfig
from exposure_risk.risk.levels import RiskLevel
from exposure_risk.risk.listener import ExposureSummaryListener
from exposure_risk.risk.policy import PolicySnapshot, RiskPolicy
from exposure_risk.risk.result import CalculationOutcome, CalculationResult
from exposure_risk.risk.scoring import RiskScoreMapping, ThresholdScoreMapping
from exposure_risk.utils.timestamps import as_utc

logger = structlog.get_logger()

CalculationCompletion = Callable[[CalculationResult], None]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


class RiskExposureCalculation:
    """Calculates the user's risk level from policy checks and exposure detection.

    Example:
        calculation = RiskExposureCalculation(
            exposure_state_provider=platform,
            key_packages_store=packages,
            risk_store=JsonFileRiskStateStore("risk_state.json"),
            detection_trigger=platform,
        )

        calculation.start(lambda result: print(result.risk_level))

        # or, from a coroutine
        result = await calculation.calculate()
    """

    def __init__(
        self,
        exposure_state_provider: ExposureStateProvider,
        key_packages_store: DownloadedPackagesStore,
        risk_store: RiskStateStore,
        detection_trigger: ExposureDetectionTrigger,
        config: RiskCalculationConfig | None = None,
        score_mapping: RiskScoreMapping | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the calculation.

        Args:
            exposure_state_provider: Source of the permission state snapshot.
            key_packages_store: Downloaded diagnosis key packages.
            risk_store: Persistent risk state.
            detection_trigger: Starts exposure detection runs.
            config: Thresholds and timeout. Uses defaults if None.
            score_mapping: Maps detection risk scores to levels.
            clock: Returns the current time. Uses UTC wall clock if None.
        """
        self.config = config or RiskCalculationConfig()
        self._exposure_state_provider = exposure_state_provider
        self._key_packages_store = key_packages_store
        self._risk_store = risk_store
        self._detection_trigger = detection_trigger
        self._score_mapping = score_mapping or ThresholdScoreMapping()
        self._clock = clock or utc_now
        self._policy = RiskPolicy(self.config)

        # asyncio.Lock wakes waiters in FIFO order, so queued runs keep their order
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task[CalculationResult]] = set()

    @property
    def pending_runs(self) -> int:
        """Number of runs started with start() that have not completed."""
        return len(self._pending)

    def start(
        self,
        on_complete: CalculationCompletion | None = None,
    ) -> asyncio.Task[CalculationResult]:
        """Schedule a calculation run on the running event loop.

        ``on_complete`` is called exactly once with the result, also when the
        run fails unexpectedly or the returned task is cancelled.

        Returns:
            The task running the calculation.
        """
        task = asyncio.get_running_loop().create_task(self._run_and_complete(on_complete))
        self._pending.add(task)
        set_pending_calculations(len(self._pending))
        task.add_done_callback(self._forget)
        return task

    async def calculate(self) -> CalculationResult:
        """Run one calculation after any runs already queued."""
        async with self._lock:
            return await self._run()

    def _forget(self, task: asyncio.Task[CalculationResult]) -> None:
        self._pending.discard(task)
        set_pending_calculations(len(self._pending))

    async def _run_and_complete(
        self,
        on_complete: CalculationCompletion | None,
    ) -> CalculationResult:
        started = time.monotonic()
        try:
            result = await self.calculate()
        except asyncio.CancelledError:
            cancelled = CalculationResult.failure(DetectionFailureReason.CANCELLED)
            self._record_aborted(cancelled, started)
            logger.info("risk_calculation_cancelled")
            self._complete(on_complete, cancelled)
            raise
        except Exception as e:
            logger.exception("risk_calculation_crashed", error_type=type(e).__name__)
            result = CalculationResult.failure(
                DetectionFailureReason.INTERNAL_ERROR, detail=str(e)
            )
            self._record_aborted(result, started)

        self._complete(on_complete, result)
        return result

    def _record_aborted(self, result: CalculationResult, started: float) -> None:
        # Runs that never returned from _run are not counted there
        reason = result.failure_reason
        record_calculation(result.outcome.value, None, time.monotonic() - started)
        if reason is not None:
            record_detection_failure(reason.value, reason.is_synthesized)

    def _complete(
        self,
        on_complete: CalculationCompletion | None,
        result: CalculationResult,
    ) -> None:
        if on_complete is None:
            return
        try:
            on_complete(result)
        except Exception:
            logger.exception("risk_calculation_completion_failed", run_id=result.run_id)

    @traced_async("risk_calculation.run")
    async def _run(self) -> CalculationResult:
        run_id = str(uuid7())
        started = time.monotonic()

        with structlog.contextvars.bound_contextvars(calculation_run_id=run_id):
            logger.info("risk_calculation_started")
            result = await self._resolve(run_id)
            duration = time.monotonic() - started

            level = result.risk_level.value if result.risk_level else None
            record_calculation(result.outcome.value, level, duration)
            add_span_attributes(
                **{
                    "risk_calculation.run_id": run_id,
                    "risk_calculation.outcome": result.outcome,
                    "risk_calculation.risk_level": level,
                    "risk_calculation.failure_reason": result.failure_reason,
                }
            )

            if result.failure_reason is not None:
                record_detection_failure(
                    result.failure_reason.value, result.failure_reason.is_synthesized
                )
                logger.warning(
                    "risk_calculation_failed",
                    reason=result.failure_reason.value,
                    detail=result.failure_detail,
                    duration_ms=round(duration * 1000, 2),
                )
            else:
                logger.info(
                    "risk_calculation_completed",
                    outcome=result.outcome.value,
                    risk_level=level,
                    duration_ms=round(duration * 1000, 2),
                )

        return result

    async def _resolve(self, run_id: str) -> CalculationResult:
        snapshot = self._take_snapshot()
        evaluation = self._policy.evaluate(snapshot)
        candidates = evaluation.to_dict()

        logger.debug(
            "risk_policy_evaluated",
            risk_level=evaluation.risk_level.value,
            candidates=candidates,
        )

        if evaluation.ends_calculation:
            result = CalculationResult.success(
                evaluation.risk_level, run_id=run_id, early_exit=True
            )
            return replace(result, policy_candidates=candidates)

        result = await self._await_detection(run_id, evaluation.risk_level)
        if result.outcome == CalculationOutcome.SUCCESS and result.risk_level is not None:
            self._persist(result.risk_level)
        return replace(result, policy_candidates=candidates)

    def _take_snapshot(self) -> PolicySnapshot:
        state = self._risk_store.load()
        return PolicySnapshot(
            exposure_state=self._exposure_state_provider.current_state(),
            downloaded_days=frozenset(self._key_packages_store.all_days()),
            tracing_history=state.tracing_history,
            last_detection=state.date_last_exposure_detection,
            now=as_utc(self._clock()),
        )

    async def _await_detection(self, run_id: str, current_level: RiskLevel) -> CalculationResult:
        timeout = self.config.detection_timeout.total_seconds()
        channel = DetectionChannel(channel_id=run_id)
        listener = ExposureSummaryListener(channel, self._score_mapping, current_level, run_id)
        wait_started = time.monotonic()

        try:
            async with listener:
                try:
                    self._detection_trigger.start_detection(channel)
                except Exception as e:
                    logger.exception("exposure_detection_trigger_failed")
                    return CalculationResult.failure(
                        DetectionFailureReason.TRIGGER_FAILED, detail=str(e), run_id=run_id
                    )

                logger.info("exposure_detection_started", timeout_seconds=timeout)
                result = await listener.wait(timeout)
        finally:
            channel.close()
            observe_detection_wait(time.monotonic() - wait_started)

        if result.failure_reason == DetectionFailureReason.TIMED_OUT:
            logger.warning("exposure_detection_timed_out", timeout_seconds=timeout)
        return result

    def _persist(self, risk_level: RiskLevel) -> None:
        # Reload so tracing history recorded during the wait is kept
        state = self._risk_store.load()
        detected_at = as_utc(self._clock())
        self._risk_store.save(
            state.model_copy(
                update={
                    "last_risk_level": risk_level,
                    "date_last_exposure_detection": detected_at,
                }
            )
        )
        logger.info(
            "risk_state_persisted",
            last_risk_level=risk_level.value,
            date_last_exposure_detection=detected_at.isoformat(),
        )
