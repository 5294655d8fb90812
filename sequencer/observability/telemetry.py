"""Optional OpenTelemetry tracing for deployment runs.

Tracing is off unless ``SEQUENCER_OTEL_ENABLED`` is set and the ``otel``
extra is installed. Every helper here is a no-op while it is off, so the
sequencer calls them unconditionally:

    with traced_operation("deploy_unit", {"unit.name": "Dibs"}):
        ...
        add_span_attribute("unit.address", address)
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from opentelemetry.sdk.trace.export import SpanExporter
    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

_initialized = False
_tracer: Tracer | None = None


def _exporter(endpoint: str | None, protocol: str) -> SpanExporter:
    """OTLP exporter for ``endpoint``, or the console exporter without one."""
    from opentelemetry.sdk.trace.export import ConsoleSpanExporter

    if not endpoint:
        logger.info("Tracing to console (no OTLP endpoint set)")
        return ConsoleSpanExporter()

    try:
        if protocol == "http":
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        else:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    except ImportError:
        logger.warning(f"OTLP {protocol} exporter not installed; tracing to console")
        return ConsoleSpanExporter()

    logger.info(f"Tracing to {endpoint} over OTLP/{protocol}")
    return OTLPSpanExporter(endpoint=endpoint)


def setup_telemetry(
    service_name: str = "contract-sequencer",
    endpoint: str | None = None,
    protocol: str = "grpc",
    enabled: bool = False,
) -> Tracer | None:
    """Install a tracer provider once per process.

    Returns:
        The tracer, or None when disabled or OpenTelemetry is missing.
    """
    global _initialized, _tracer

    if not enabled:
        return None
    if _initialized:
        return _tracer

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import SERVICE_NAME, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError:
        logger.warning(
            "Tracing requested but OpenTelemetry is not installed "
            "(pip install 'contract-sequencer[otel]')"
        )
        return None

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    provider.add_span_processor(BatchSpanProcessor(_exporter(endpoint, protocol)))
    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer("sequencer")
    _initialized = True
    return _tracer


@contextmanager
def traced_operation(
    name: str,
    attributes: dict[str, str] | None = None,
) -> Generator[Span | None, None, None]:
    """Run the body inside a span; yields None when tracing is off."""
    if _tracer is None:
        yield None
        return

    with _tracer.start_as_current_span(name, attributes=attributes or {}) as span:
        yield span


def _current_span() -> Span | None:
    if not _initialized:
        return None

    from opentelemetry import trace

    span = trace.get_current_span()
    return span if span.is_recording() else None


def add_span_attribute(key: str, value: str) -> None:
    """Set an attribute on the active span."""
    span = _current_span()
    if span is not None:
        span.set_attribute(key, value)


def record_exception(exception: Exception) -> None:
    """Attach an exception to the active span."""
    span = _current_span()
    if span is not None:
        span.record_exception(exception)


def shutdown_telemetry() -> None:
    """Flush pending spans and forget the tracer."""
    global _initialized, _tracer

    if not _initialized:
        return

    from opentelemetry import trace

    shutdown = getattr(trace.get_tracer_provider(), "shutdown", None)
    if shutdown is not None:
        shutdown()

    _initialized = False
    _tracer = None
