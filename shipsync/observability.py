from __future__ import annotations

from fastapi import FastAPI

from .logging import ServiceLogger
from .settings import Settings

log = ServiceLogger("observability")


def _span_exporter(settings: Settings):
    if settings.otel_exporter_otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

        return OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)

    from opentelemetry.sdk.trace.export import ConsoleSpanExporter

    return ConsoleSpanExporter()


def configure_observability(app: FastAPI, settings: Settings) -> bool:
    """Trace inbound requests and the outbound platform and supplier calls.

    The OpenTelemetry packages ship in the ``otel`` extra and are only
    imported when ``OTEL_ENABLED`` is set.
    """
    if not settings.otel_enabled:
        return False

    from opentelemetry import trace
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: settings.otel_service_name}))
    provider.add_span_processor(BatchSpanProcessor(_span_exporter(settings)))
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)
    HTTPXClientInstrumentor().instrument(tracer_provider=provider)
    log.info(
        "Tracing enabled",
        service=settings.otel_service_name,
        exporter=settings.otel_exporter_otlp_endpoint or "console",
    )
    return True
