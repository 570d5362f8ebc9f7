"""OpenTelemetry instrumentation for the relay.

Sets up tracing, metrics and structured logging. Exporters are only
installed when an OTLP endpoint is configured, so local runs and tests
stay quiet.
"""

import os

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_NAMESPACE, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from plantcare.logging_config import configure_logging


def _create_resource(service_name: str, namespace: str) -> Resource:
    attrs = {
        SERVICE_NAME: service_name,
        SERVICE_NAMESPACE: namespace,
        "service.version": os.getenv("SERVICE_VERSION", "0.1.0"),
        "service.instance.id": os.getenv("POD_UID", f"{service_name}-local"),
        "deployment.environment": os.getenv("ENVIRONMENT", "dev"),
    }
    return Resource.create(attrs)


def setup_telemetry(app, service_name: str, namespace: str = "plantcare", log_level: str = "INFO"):
    """Initialize OpenTelemetry for a FastAPI application."""
    resource = _create_resource(service_name, namespace)
    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")

    trace_provider = TracerProvider(resource=resource)
    metric_readers = []
    if otlp_endpoint:
        trace_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
        metric_readers.append(
            PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=otlp_endpoint, insecure=True),
                export_interval_millis=30000,
            )
        )
    trace.set_tracer_provider(trace_provider)
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=metric_readers))

    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument()

    configure_logging(service_name, log_level)

    return trace.get_tracer(service_name), metrics.get_meter(service_name)
