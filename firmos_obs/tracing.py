"""
Distributed Tracing Setup (OpenTelemetry).

Auto-instruments FastAPI. Governance operations open their own spans via
`get_tracer(__name__)`; without a configured provider those spans are
no-ops.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from firmos_config.settings import Settings
from firmos_obs.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = get_logger(__name__)


def setup_tracing(app: FastAPI, settings: Settings) -> bool:
    """
    Setup OpenTelemetry distributed tracing.

    Exports: OTLP (Jaeger/Tempo/Collector)

    Returns:
        True when tracing was enabled
    """
    if not settings.OTEL_TRACES_ENABLED:
        return False

    resource = Resource.create(
        {
            "service.name": settings.OTEL_SERVICE_NAME,
            "service.version": "0.1.0",
            "deployment.environment": settings.ENVIRONMENT,
        }
    )

    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT))
    )
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app)

    logger.info(
        "tracing_enabled",
        service=settings.OTEL_SERVICE_NAME,
        endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
    )
    return True


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)
