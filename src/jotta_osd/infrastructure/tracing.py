"""OpenTelemetry tracing for jotta-osd.

Spans are opened by ``ObjectStorage`` around every public operation. This
module only decides where they go:

- ``otlp_endpoint`` set: batched export to an OTLP collector over gRPC.
- ``log_format == "console"``: spans are also printed as they end, next
  to the human-readable log lines.
- otherwise spans are recorded but not exported.
"""

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)

from jotta_osd import __version__
from jotta_osd.domain.services.chunk_addressing import CHUNK_SIZE
from jotta_osd.infrastructure.config import Config, get_config

TRACER_NAME = "jotta_osd"


def build_resource(config: Config) -> Resource:
    """Describe this process and the storage layout it writes."""
    return Resource.create(
        {
            SERVICE_NAME: "jotta-osd",
            SERVICE_VERSION: __version__,
            "deployment.environment": config.observability.environment,
            "jotta_osd.storage.root": config.storage.root,
            "jotta_osd.storage.chunk_size": CHUNK_SIZE,
        }
    )


def build_span_exporters(config: Config) -> list[SpanExporter]:
    """Exporters selected by the observability settings, OTLP first."""
    exporters: list[SpanExporter] = []
    if config.observability.otlp_endpoint:
        exporters.append(
            OTLPSpanExporter(endpoint=config.observability.otlp_endpoint, insecure=True)
        )
    if config.observability.log_format == "console":
        exporters.append(ConsoleSpanExporter())
    return exporters


def build_tracer_provider(config: Config) -> TracerProvider:
    """Create a tracer provider without installing it globally."""
    provider = TracerProvider(resource=build_resource(config))
    for exporter in build_span_exporters(config):
        if isinstance(exporter, ConsoleSpanExporter):
            provider.add_span_processor(SimpleSpanProcessor(exporter))
        else:
            provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def setup_tracing(config: Config | None = None) -> trace.Tracer:
    """Install the jotta-osd tracer provider and return its tracer."""
    config = config or get_config()
    trace.set_tracer_provider(build_tracer_provider(config))
    return get_tracer()


def get_tracer(name: str = TRACER_NAME) -> trace.Tracer:
    """Get a tracer instance."""
    return trace.get_tracer(name, __version__)
