"""OpenTelemetry tracing instrumentation for exposure-risk.

This module provides tracing capabilities using OpenTelemetry:
- Tracer provider setup with optional console export
- Span decorators for calculation runs
- Span attribute and event helpers
"""

from __future__ import annotations

import functools
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Generator

__all__ = [
    "TracingConfig",
    "TracingManager",
    "SpanKindType",
    "traced_async",
    "add_span_attributes",
    "add_span_event",
    "record_exception",
    "get_current_span",
    "get_tracer",
]

P = ParamSpec("P")
R = TypeVar("R")

TRACER_NAME = "exposure_risk"


class SpanKindType(str, Enum):
    """Span kinds for categorizing operations."""

    INTERNAL = "internal"
    CLIENT = "client"
    CONSUMER = "consumer"


_SPAN_KINDS = {
    SpanKindType.INTERNAL: SpanKind.INTERNAL,
    SpanKindType.CLIENT: SpanKind.CLIENT,
    SpanKindType.CONSUMER: SpanKind.CONSUMER,
}


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing.

    Attributes:
        service_name: Name of the service for trace identification.
        service_version: Version of the service.
        environment: Deployment environment.
        enabled: Whether tracing is enabled.
        console_export: Print finished spans to stdout.
    """

    service_name: str = "exposure-risk"
    service_version: str = "0.1.0"
    environment: str = "development"
    enabled: bool = True
    console_export: bool = False

    @classmethod
    def from_env(cls) -> TracingConfig:
        """Create configuration from environment variables."""
        return cls(
            service_name=os.getenv("OTEL_SERVICE_NAME", "exposure-risk"),
            environment=os.getenv("ENVIRONMENT", "development"),
            enabled=os.getenv("OTEL_TRACING_ENABLED", "true").lower() == "true",
            console_export=os.getenv("OTEL_CONSOLE_EXPORT", "false").lower() == "true",
        )


class TracingManager:
    """Installs a tracer provider for the process."""

    def __init__(self, config: TracingConfig | None = None) -> None:
        self.config = config or TracingConfig()
        self._provider: TracerProvider | None = None

    @property
    def is_initialized(self) -> bool:
        """Whether a provider has been installed."""
        return self._provider is not None

    def initialize(self) -> None:
        """Create the tracer provider and register it globally."""
        if self._provider is not None or not self.config.enabled:
            return

        resource = Resource.create(
            {
                "service.name": self.config.service_name,
                "service.version": self.config.service_version,
                "deployment.environment": self.config.environment,
            }
        )
        provider = TracerProvider(resource=resource)
        if self.config.console_export:
            provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(provider)
        self._provider = provider

    def shutdown(self) -> None:
        """Flush and shut down the provider."""
        if self._provider is not None:
            self._provider.shutdown()
            self._provider = None


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Get a tracer instance."""
    return trace.get_tracer(name or TRACER_NAME)


def get_current_span() -> Span:
    """Get the currently active span."""
    return trace.get_current_span()


def _attribute_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def add_span_attributes(**attributes: Any) -> None:
    """Add attributes to the current span. None values are skipped."""
    span = get_current_span()
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, _attribute_value(value))


def add_span_event(name: str, attributes: dict[str, Any] | None = None) -> None:
    """Add an event to the current span."""
    span = get_current_span()
    event_attrs = {
        key: _attribute_value(value)
        for key, value in (attributes or {}).items()
        if value is not None
    }
    span.add_event(name, event_attrs)


def record_exception(exception: BaseException, escaped: bool = True) -> None:
    """Record an exception on the current span and mark it as failed."""
    span = get_current_span()
    span.record_exception(exception, escaped=escaped)
    span.set_status(Status(StatusCode.ERROR, str(exception)))


@contextmanager
def create_span(
    name: str,
    kind: SpanKindType = SpanKindType.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Create a new span as a context manager."""
    tracer = get_tracer()
    with tracer.start_as_current_span(
        name, kind=_SPAN_KINDS[kind], attributes=attributes
    ) as span:
        yield span


def traced_async(
    name: str | None = None,
    kind: SpanKindType = SpanKindType.INTERNAL,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator to trace an asynchronous function.

    Args:
        name: Span name. Uses function name if not provided.
        kind: Span kind.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        span_name = name or f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with create_span(span_name, kind) as span:
                try:
                    result = await func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    record_exception(e)
                    raise

        return wrapper

    return decorator
