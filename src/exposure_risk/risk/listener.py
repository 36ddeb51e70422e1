"""Exposure summary listener.

Subscribes to the summary and failure signals of one detection channel,
resolves on whichever arrives first and folds a summary into the running
risk level. Signals may arrive on any thread; they are handed to the event
loop that armed the listener.
"""

import asyncio

import structlog

from exposure_risk.exposure.channel import DetectionChannel, Subscription
from exposure_risk.exposure.types import (
    DetectionFailure,
    DetectionFailureReason,
    ExposureDetectionSummary,
)
from exposure_risk.risk.levels import RiskLevel, merge_risk_level
from exposure_risk.risk.result import CalculationResult
from exposure_risk.risk.scoring import RiskScoreMapping

logger = structlog.get_logger()


class ExposureSummaryListener:
    """One-shot listener for the outcome of an exposure detection run.

    Usage:
        listener = ExposureSummaryListener(channel, mapping, RiskLevel.LOW)
        async with listener:
            trigger.start_detection(channel)
            result = await listener.wait(timeout=300)
        # Both subscriptions are released here
    """

    def __init__(
        self,
        channel: DetectionChannel,
        score_mapping: RiskScoreMapping,
        current_level: RiskLevel,
        run_id: str | None = None,
    ) -> None:
        self._channel = channel
        self._score_mapping = score_mapping
        self._current_level = current_level
        self._run_id = run_id
        self._loop: asyncio.AbstractEventLoop | None = None
        self._future: asyncio.Future[CalculationResult] | None = None
        self._subscriptions: list[Subscription] = []

    @property
    def armed(self) -> bool:
        """Whether the listener currently holds its subscriptions."""
        return bool(self._subscriptions)

    @property
    def resolved(self) -> bool:
        """Whether a signal has been received or the wait was abandoned."""
        return self._future is not None and self._future.done()

    def arm(self) -> None:
        """Subscribe to both signals. Must be called on the waiting event loop.

        Raises:
            RuntimeError: If the listener is already armed.
            ChannelClosedError: If the channel is already closed.
        """
        if self._subscriptions:
            raise RuntimeError("Listener is already armed")

        self._loop = asyncio.get_running_loop()
        self._future = self._loop.create_future()
        summary_subscription = self._channel.subscribe_summary(self._on_summary)
        try:
            failure_subscription = self._channel.subscribe_failure(self._on_failure)
        except BaseException:
            summary_subscription.release()
            raise
        self._subscriptions = [summary_subscription, failure_subscription]

    def release(self) -> None:
        """Release both subscriptions. Safe to call repeatedly."""
        for subscription in self._subscriptions:
            subscription.release()
        self._subscriptions = []

    async def __aenter__(self) -> "ExposureSummaryListener":
        self.arm()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    async def wait(self, timeout: float) -> CalculationResult:
        """Wait for the first signal.

        Args:
            timeout: Seconds to wait before giving up.

        Returns:
            The folded result, or a TIMED_OUT failure.
        """
        if self._future is None:
            raise RuntimeError("Listener must be armed before waiting")

        try:
            # wait_for cancels the future on timeout, so late signals are ignored
            return await asyncio.wait_for(self._future, timeout=timeout)
        except asyncio.TimeoutError:
            return CalculationResult.failure(
                DetectionFailureReason.TIMED_OUT,
                detail=f"No detection signal within {timeout:g}s",
                run_id=self._run_id,
            )

    def _on_summary(self, summary: ExposureDetectionSummary) -> None:
        self._dispatch(self._fold_summary, summary)

    def _on_failure(self, failure: DetectionFailure) -> None:
        self._dispatch(self._fold_failure, failure)

    def _dispatch(self, fold, payload) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning("detection_signal_without_loop", run_id=self._run_id)
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            fold(payload)
        else:
            loop.call_soon_threadsafe(fold, payload)

    def _fold_summary(self, summary: ExposureDetectionSummary) -> None:
        if self._future is None or self._future.done():
            logger.debug("detection_summary_ignored", run_id=self._run_id)
            return

        try:
            detected_level = self._score_mapping.level_for_score(summary.maximum_risk_score)
        except Exception as e:
            logger.exception(
                "risk_score_mapping_failed",
                run_id=self._run_id,
                maximum_risk_score=summary.maximum_risk_score,
            )
            self._future.set_result(
                CalculationResult.failure(
                    DetectionFailureReason.INTERNAL_ERROR,
                    detail=f"Risk score mapping failed: {e}",
                    run_id=self._run_id,
                )
            )
            return

        merged = merge_risk_level(self._current_level, detected_level)
        logger.info(
            "detection_summary_received",
            run_id=self._run_id,
            maximum_risk_score=summary.maximum_risk_score,
            matched_key_count=summary.matched_key_count,
            detected_level=detected_level.value,
            risk_level=merged.value,
        )
        self._future.set_result(CalculationResult.success(merged, run_id=self._run_id))

    def _fold_failure(self, failure: DetectionFailure) -> None:
        if self._future is None or self._future.done():
            logger.debug("detection_failure_ignored", run_id=self._run_id)
            return

        reason = failure.reason
        detail = failure.detail
        if reason.is_synthesized:
            # Only the calculation itself may report timeouts, trigger errors and cancellation
            logger.warning(
                "detection_failure_reason_rejected",
                run_id=self._run_id,
                reported_reason=reason.value,
            )
            reserved = f"Detection reported reserved reason {reason.value}"
            detail = f"{reserved}: {detail}" if detail else reserved
            reason = DetectionFailureReason.INTERNAL_ERROR

        logger.info(
            "detection_failure_received",
            run_id=self._run_id,
            reason=reason.value,
            detail=detail,
        )
        self._future.set_result(
            CalculationResult.failure(reason, detail=detail, run_id=self._run_id)
        )
