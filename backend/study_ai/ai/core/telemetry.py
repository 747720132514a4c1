"""
Study AI - Telemetry Module
OpenTelemetry-based observability for gateway calls and mode dispatch
"""
import logging
from typing import Optional
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.trace import Status, StatusCode

from study_ai.core.config import settings

logger = logging.getLogger(__name__)

_tracer: Optional[trace.Tracer] = None


def init_telemetry() -> trace.Tracer:
    """
    Initialize OpenTelemetry with an OTLP exporter.
    Call this once at application startup.

    When OTEL_ENABLED is off the API's default (no-op) provider is used.
    """
    global _tracer

    if _tracer is not None:
        return _tracer

    if not settings.OTEL_ENABLED:
        _tracer = trace.get_tracer("study_ai", settings.APP_VERSION)
        return _tracer

    resource = Resource.create({
        "service.name": settings.OTEL_SERVICE_NAME,
        "service.version": settings.APP_VERSION,
        "deployment.environment": settings.ENVIRONMENT,
    })

    provider = TracerProvider(resource=resource)
    endpoint = settings.OTEL_EXPORTER_OTLP_ENDPOINT

    try:
        otlp_exporter = OTLPSpanExporter(
            endpoint=endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
    except Exception as e:
        logger.warning(f"OTLP exporter unavailable at {endpoint}, exporting spans to console: {e}")
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer("study_ai", settings.APP_VERSION)

    logger.info(f"Tracing {settings.OTEL_SERVICE_NAME} to {endpoint}")
    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the global tracer instance, initializing if necessary."""
    global _tracer
    if _tracer is None:
        return init_telemetry()
    return _tracer


@contextmanager
def ai_span(
    name: str,
    component: str,
    attributes: Optional[dict] = None
):
    """
    Context manager for spans around AI work.

    Usage:
        with ai_span("gateway.complete", "AIGatewayClient") as span:
            span.set_attribute("llm.stream", False)
            response = await do_work()
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(name) as span:
        span.set_attribute("ai.component", component)
        span.set_attribute("ai.operation", name)

        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, str(value) if value is not None else "")

        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def trace_llm_call(
    model: str,
    prompt_tokens: int = 0,
    completion_tokens: int = 0,
    total_tokens: int = 0,
):
    """
    Record LLM-specific telemetry attributes on the current span.
    Call this within an active span to add token usage metrics.
    """
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute("llm.model", model)
        span.set_attribute("llm.tokens.prompt", prompt_tokens)
        span.set_attribute("llm.tokens.completion", completion_tokens)
        span.set_attribute("llm.tokens.total", total_tokens)
