"""Typed signal channel between a detection run and the risk calculation.

Each calculation run creates its own DetectionChannel and hands it to the
detection trigger. The trigger publishes exactly one summary or failure on
it, from any thread. Once the run resolves the channel is closed, and
anything published afterwards is dropped.
"""

import itertools
import threading
from collections.abc import Callable

import structlog
from uuid_utils import uuid7

from exposure_risk.exposure.types import (
    DetectionFailure,
    DetectionFailureReason,
    ExposureDetectionSummary,
)
from exposure_risk.observability.metrics import set_active_subscriptions
from exposure_risk.utils.exceptions import ChannelClosedError

logger = structlog.get_logger()

SummaryHandler = Callable[[ExposureDetectionSummary], None]
FailureHandler = Callable[[DetectionFailure], None]

_SUMMARY = "summary"
_FAILURE = "failure"

_active_lock = threading.Lock()
_active_subscriptions = 0


def _adjust_active(delta: int) -> None:
    global _active_subscriptions
    with _active_lock:
        _active_subscriptions += delta
        set_active_subscriptions(_active_subscriptions)


class Subscription:
    """Handle for a single handler registered on a DetectionChannel."""

    def __init__(self, channel: "DetectionChannel", kind: str, key: int) -> None:
        self._channel = channel
        self._kind = kind
        self._key = key
        self._active = True

    @property
    def kind(self) -> str:
        """Signal kind the subscription listens for."""
        return self._kind

    @property
    def active(self) -> bool:
        """Whether the handler is still registered."""
        return self._active

    def release(self) -> None:
        """Unregister the handler. Releasing twice is a no-op."""
        if not self._active:
            return
        self._active = False
        self._channel._remove(self._kind, self._key)


class DetectionChannel:
    """One-run channel carrying a detection summary or a detection failure."""

    def __init__(self, channel_id: str | None = None) -> None:
        self.channel_id = channel_id or str(uuid7())
        self._lock = threading.Lock()
        self._keys = itertools.count()
        self._handlers: dict[str, dict[int, Callable]] = {_SUMMARY: {}, _FAILURE: {}}
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the channel no longer delivers signals."""
        return self._closed

    @property
    def subscriber_count(self) -> int:
        """Number of currently registered handlers of both kinds."""
        with self._lock:
            return sum(len(handlers) for handlers in self._handlers.values())

    def subscribe_summary(self, handler: SummaryHandler) -> Subscription:
        """Register a handler for the detection summary signal."""
        return self._add(_SUMMARY, handler)

    def subscribe_failure(self, handler: FailureHandler) -> Subscription:
        """Register a handler for the detection failure signal."""
        return self._add(_FAILURE, handler)

    def publish_summary(self, summary: ExposureDetectionSummary) -> bool:
        """Deliver a detection summary to the summary handlers.

        Returns:
            False if the channel was already closed and the signal was dropped.
        """
        return self._publish(_SUMMARY, summary)

    def publish_failure(
        self,
        failure: DetectionFailure | DetectionFailureReason,
        detail: str | None = None,
    ) -> bool:
        """Deliver a detection failure to the failure handlers.

        Returns:
            False if the channel was already closed and the signal was dropped.
        """
        if isinstance(failure, DetectionFailureReason):
            failure = DetectionFailure(reason=failure, detail=detail)
        return self._publish(_FAILURE, failure)

    def close(self) -> None:
        """Release every handler and stop delivering signals."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            released = sum(len(handlers) for handlers in self._handlers.values())
            for handlers in self._handlers.values():
                handlers.clear()
        if released:
            _adjust_active(-released)
        logger.debug("detection_channel_closed", channel_id=self.channel_id)

    def _add(self, kind: str, handler: Callable) -> Subscription:
        with self._lock:
            if self._closed:
                raise ChannelClosedError(self.channel_id)
            key = next(self._keys)
            self._handlers[kind][key] = handler
        _adjust_active(1)
        return Subscription(self, kind, key)

    def _remove(self, kind: str, key: int) -> None:
        with self._lock:
            removed = self._handlers[kind].pop(key, None)
        if removed is not None:
            _adjust_active(-1)

    def _publish(self, kind: str, payload: ExposureDetectionSummary | DetectionFailure) -> bool:
        with self._lock:
            closed = self._closed
            handlers = list(self._handlers[kind].values())

        if closed:
            logger.warning(
                "detection_signal_dropped",
                channel_id=self.channel_id,
                signal=kind,
                reason="channel_closed",
            )
            return False

        for handler in handlers:
            handler(payload)
        return True
