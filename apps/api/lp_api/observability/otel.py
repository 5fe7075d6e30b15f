"""OpenTelemetry tracing for workflow steps and deployments."""

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from lp_api.config import Settings, get_settings

logger = structlog.get_logger()

SERVICE_NAME = "lp-api"


def build_resource(settings: Settings) -> Resource:
    """Resource attributes attached to every span of this service."""
    return Resource.create(
        {
            "service.name": SERVICE_NAME,
            "service.namespace": "linkpage",
            "service.version": settings.app_version,
            "deployment.environment": settings.environment,
            "linkpage.deployment_target": settings.deployment_target,
            "linkpage.step_log_backend": settings.step_log_backend,
        }
    )


def create_tracer_provider(settings: Settings) -> TracerProvider:
    """Build a tracer provider, exporting over OTLP only when an endpoint is set."""
    provider = TracerProvider(resource=build_resource(settings))

    endpoint = settings.otel_exporter_otlp_endpoint
    if not endpoint:
        logger.info("No OTLP endpoint configured, spans are not exported")
        return provider

    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    logger.info("OTLP exporter configured", endpoint=endpoint)
    return provider


def setup_telemetry(settings: Settings | None = None) -> TracerProvider:
    """Install the global tracer provider and return it for shutdown."""
    settings = settings or get_settings()
    provider = create_tracer_provider(settings)
    trace.set_tracer_provider(provider)
    logger.info(
        "OpenTelemetry tracing initialized",
        deployment_target=settings.deployment_target,
    )
    return provider
