"""Tests for the exposure summary listener."""

import asyncio
import threading

import pytest

from exposure_risk.exposure.channel import DetectionChannel
from exposure_risk.exposure.types import DetectionFailureReason, ExposureDetectionSummary
from exposure_risk.risk.levels import RiskLevel
from exposure_risk.risk.listener import ExposureSummaryListener
from exposure_risk.risk.result import CalculationOutcome
from exposure_risk.risk.scoring import ThresholdScoreMapping
from exposure_risk.utils.exceptions import ChannelClosedError


class BrokenMapping:
    """Score mapping that always fails."""

    def level_for_score(self, score: float) -> RiskLevel:
        raise RuntimeError("mapping unavailable")


def make_listener(
    channel: DetectionChannel,
    current_level: RiskLevel = RiskLevel.LOW,
) -> ExposureSummaryListener:
    return ExposureSummaryListener(channel, ThresholdScoreMapping(), current_level, run_id="run-1")


class TestListenerArming:
    """Tests for arming and releasing."""

    @pytest.mark.asyncio
    async def test_arm_subscribes_both_signals(self) -> None:
        """Arming registers a summary and a failure handler."""
        channel = DetectionChannel()
        listener = make_listener(channel)

        listener.arm()

        assert listener.armed is True
        assert listener.resolved is False
        assert channel.subscriber_count == 2

        listener.release()
        assert listener.armed is False
        assert channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_arm_twice_raises(self) -> None:
        """A listener can only be armed once at a time."""
        listener = make_listener(DetectionChannel())
        listener.arm()

        with pytest.raises(RuntimeError, match="already armed"):
            listener.arm()

        listener.release()

    @pytest.mark.asyncio
    async def test_arm_on_closed_channel(self) -> None:
        """A closed channel cannot be listened to."""
        channel = DetectionChannel()
        channel.close()

        with pytest.raises(ChannelClosedError):
            make_listener(channel).arm()

    def test_arm_requires_running_loop(self) -> None:
        """Arming outside an event loop fails."""
        with pytest.raises(RuntimeError):
            make_listener(DetectionChannel()).arm()

    @pytest.mark.asyncio
    async def test_context_manager_releases(self) -> None:
        """Leaving the context releases both handlers, also on error."""
        channel = DetectionChannel()

        with pytest.raises(ValueError):
            async with make_listener(channel):
                assert channel.subscriber_count == 2
                raise ValueError("boom")

        assert channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_wait_requires_arm(self) -> None:
        """Waiting on an unarmed listener fails."""
        with pytest.raises(RuntimeError, match="armed"):
            await make_listener(DetectionChannel()).wait(timeout=1)


class TestListenerSignals:
    """Tests for folding signals into a result."""

    @pytest.mark.asyncio
    async def test_summary_merges_score(self) -> None:
        """A high score escalates LOW to HIGH."""
        channel = DetectionChannel()

        async with make_listener(channel) as listener:
            channel.publish_summary(ExposureDetectionSummary(maximum_risk_score=40))
            result = await listener.wait(timeout=1)

        assert result.outcome == CalculationOutcome.SUCCESS
        assert result.risk_level == RiskLevel.HIGH
        assert result.run_id == "run-1"

    @pytest.mark.asyncio
    async def test_summary_never_lowers_current_level(self) -> None:
        """A low score keeps an already higher running level."""
        channel = DetectionChannel()

        async with make_listener(channel, current_level=RiskLevel.HIGH) as listener:
            channel.publish_summary(ExposureDetectionSummary(maximum_risk_score=0))
            result = await listener.wait(timeout=1)

        assert result.risk_level == RiskLevel.HIGH

    @pytest.mark.asyncio
    async def test_failure_signal(self) -> None:
        """A failure signal resolves to a failure with its reason."""
        channel = DetectionChannel()

        async with make_listener(channel) as listener:
            channel.publish_failure(DetectionFailureReason.NO_EXPOSURE_CONFIGURATION, "missing")
            result = await listener.wait(timeout=1)

        assert result.outcome == CalculationOutcome.FAILURE
        assert result.failure_reason == DetectionFailureReason.NO_EXPOSURE_CONFIGURATION
        assert result.failure_detail == "missing"
        assert result.risk_level is None

    @pytest.mark.asyncio
    async def test_first_signal_wins(self) -> None:
        """Signals after the first one are ignored."""
        channel = DetectionChannel()

        async with make_listener(channel) as listener:
            channel.publish_failure(DetectionFailureReason.RATE_LIMITED)
            channel.publish_summary(ExposureDetectionSummary(maximum_risk_score=100))
            result = await listener.wait(timeout=1)

        assert result.failure_reason == DetectionFailureReason.RATE_LIMITED
        assert listener.resolved is True

    @pytest.mark.asyncio
    async def test_signal_from_other_thread(self) -> None:
        """Signals published on another thread are handed to the loop."""
        channel = DetectionChannel()

        async with make_listener(channel) as listener:
            thread = threading.Thread(
                target=channel.publish_summary,
                args=(ExposureDetectionSummary(maximum_risk_score=30),),
            )
            thread.start()
            result = await listener.wait(timeout=5)
            thread.join()

        assert result.risk_level == RiskLevel.HIGH

    @pytest.mark.asyncio
    async def test_signal_published_later_on_loop(self) -> None:
        """A signal scheduled after the wait started is received."""
        channel = DetectionChannel()
        loop = asyncio.get_running_loop()

        async with make_listener(channel) as listener:
            loop.call_later(
                0.01,
                channel.publish_summary,
                ExposureDetectionSummary(maximum_risk_score=1),
            )
            result = await listener.wait(timeout=5)

        assert result.risk_level == RiskLevel.LOW

    @pytest.mark.asyncio
    async def test_mapping_error_is_internal_error(self) -> None:
        """A failing score mapping resolves as INTERNAL_ERROR."""
        channel = DetectionChannel()
        listener = ExposureSummaryListener(channel, BrokenMapping(), RiskLevel.LOW)

        async with listener:
            channel.publish_summary(ExposureDetectionSummary(maximum_risk_score=3))
            result = await listener.wait(timeout=1)

        assert result.failure_reason == DetectionFailureReason.INTERNAL_ERROR
        assert "mapping unavailable" in result.failure_detail

    @pytest.mark.asyncio
    async def test_reserved_reason_becomes_internal_error(self) -> None:
        """Reasons owned by the calculation cannot be reported by detection."""
        channel = DetectionChannel()

        async with make_listener(channel) as listener:
            channel.publish_failure(DetectionFailureReason.TIMED_OUT, "gave up")
            result = await listener.wait(timeout=1)

        assert result.failure_reason == DetectionFailureReason.INTERNAL_ERROR
        assert result.failure_detail == "Detection reported reserved reason timed_out: gave up"

    @pytest.mark.asyncio
    async def test_every_reserved_reason_is_rejected(self) -> None:
        """No synthesized reason passes through the listener."""
        for reason in [r for r in DetectionFailureReason if r.is_synthesized]:
            channel = DetectionChannel()

            async with make_listener(channel) as listener:
                channel.publish_failure(reason)
                result = await listener.wait(timeout=1)

            assert result.failure_reason == DetectionFailureReason.INTERNAL_ERROR
            assert result.failure_detail == f"Detection reported reserved reason {reason.value}"


class TestListenerTimeout:
    """Tests for the bounded wait."""

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        """No signal within the timeout gives TIMED_OUT."""
        channel = DetectionChannel()

        async with make_listener(channel) as listener:
            result = await listener.wait(timeout=0.01)

        assert result.failure_reason == DetectionFailureReason.TIMED_OUT
        assert result.failure_detail == "No detection signal within 0.01s"
        assert channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_signal_after_timeout_ignored(self) -> None:
        """A signal arriving after the timeout does not change anything."""
        channel = DetectionChannel()
        listener = make_listener(channel)
        listener.arm()

        result = await listener.wait(timeout=0.01)
        channel.publish_summary(ExposureDetectionSummary(maximum_risk_score=200))
        listener.release()

        assert result.failure_reason == DetectionFailureReason.TIMED_OUT
        assert listener.resolved is True
