"""Infrastructure layer - cross-cutting concerns.

The container is imported from ``jotta_osd.infrastructure.container``
directly since it depends on the application layer.
"""

from jotta_osd.infrastructure.config import Config, ObservabilityConfig, StorageConfig, get_config
from jotta_osd.infrastructure.logging import setup_logging, get_logger
from jotta_osd.infrastructure.metrics import ObjectStoreMetrics, get_metrics
from jotta_osd.infrastructure.tracing import setup_tracing, get_tracer

__all__ = [
    "Config",
    "StorageConfig",
    "ObservabilityConfig",
    "get_config",
    "setup_logging",
    "get_logger",
    "ObjectStoreMetrics",
    "get_metrics",
    "setup_tracing",
    "get_tracer",
]
