"""
Distributed tracing using OpenTelemetry.

Spans are always created through trace_span(); they are no-ops until
setup_tracing() installs a real TracerProvider, which the app only does
when OTEL_ENABLED=true.
"""
import os
import logging
from typing import Optional, Dict, Any
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource

logger = logging.getLogger(__name__)

_provider: Optional[TracerProvider] = None
_service_name = os.getenv("OTEL_SERVICE_NAME", "teamtasks")
_otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")


def tracing_enabled() -> bool:
    return os.getenv("OTEL_ENABLED", "false").lower() == "true"


def setup_tracing() -> None:
    """Initialize OpenTelemetry tracing for the service."""
    global _provider

    if _provider is not None:
        logger.warning("Tracing already initialized")
        return

    use_otlp = os.getenv("OTEL_EXPORTER_OTLP_ENABLED", "true").lower() == "true"
    enable_console = os.getenv("OTEL_CONSOLE_EXPORTER_ENABLED", "false").lower() == "true"

    logger.info(
        "Initializing OpenTelemetry tracing",
        extra={
            "service_name": _service_name,
            "otlp_endpoint": _otlp_endpoint,
            "use_otlp": use_otlp,
            "enable_console": enable_console,
        }
    )

    resource = Resource.create({
        "service.name": _service_name,
        "service.version": os.getenv("SERVICE_VERSION", "0.1.0"),
        "deployment.environment": os.getenv("ENVIRONMENT", "development"),
    })
    provider = TracerProvider(resource=resource)

    if use_otlp:
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
            provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=_otlp_endpoint, insecure=True)))
            logger.info("OTLP exporter configured", extra={"endpoint": _otlp_endpoint})
        except Exception:
            logger.warning("Failed to configure OTLP exporter", exc_info=True)

    if enable_console:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.info("Console exporter enabled")

    trace.set_tracer_provider(provider)
    _provider = provider
    logger.info("OpenTelemetry tracing initialized successfully")


def instrument_fastapi(app) -> None:
    """Instrument FastAPI application with OpenTelemetry."""
    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI instrumentation enabled")
    except Exception:
        logger.error("Failed to instrument FastAPI", exc_info=True)


def get_tracer() -> trace.Tracer:
    """Tracer from the global provider (no-op until setup_tracing() runs)."""
    return trace.get_tracer("teamtasks")


@contextmanager
def trace_span(
    name: str,
    attributes: Optional[Dict[str, Any]] = None,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL
):
    """
    Context manager for creating a trace span.

    Example:
        with trace_span("db.select", {"db.sql.table": "tasks"}):
            cursor.execute(...)
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(name, kind=kind) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    if isinstance(value, (str, int, float, bool)):
                        span.set_attribute(key, value)
                    else:
                        span.set_attribute(key, str(value))

        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def add_span_attribute(key: str, value: Any) -> None:
    """Add an attribute to the current active span."""
    span = trace.get_current_span()
    if span:
        if isinstance(value, (str, int, float, bool)):
            span.set_attribute(key, value)
        else:
            span.set_attribute(key, str(value))
