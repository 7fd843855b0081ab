"""Dependency injection container for jotta-osd."""

from dataclasses import dataclass

import structlog
from opentelemetry import trace

from jotta_osd.adapters.outbound.in_memory_filesystem import InMemoryFilesystem
from jotta_osd.application.object_service import ObjectStorage
from jotta_osd.infrastructure.config import Config, get_config
from jotta_osd.infrastructure.logging import setup_logging
from jotta_osd.infrastructure.metrics import ObjectStoreMetrics, get_metrics
from jotta_osd.infrastructure.tracing import setup_tracing
from jotta_osd.ports.outbound.remote_filesystem import RemoteFilesystem


@dataclass
class Container:
    """Dependency injection container for object storage components."""

    config: Config
    logger: structlog.stdlib.BoundLogger
    tracer: trace.Tracer
    metrics: ObjectStoreMetrics
    fs: RemoteFilesystem
    storage: ObjectStorage

    _instance: "Container | None" = None

    @classmethod
    def create(cls, fs: RemoteFilesystem | None = None) -> "Container":
        """Create and initialize the container with all dependencies.

        Args:
            fs: Remote filesystem client. Defaults to an in-memory
                filesystem; the first call decides it for the process.
        """
        if cls._instance is not None:
            return cls._instance

        config = get_config()
        logger = setup_logging(config.observability)
        tracer = setup_tracing(config)
        metrics = get_metrics()
        fs = fs if fs is not None else InMemoryFilesystem()

        storage = ObjectStorage(
            fs,
            root=config.storage.root,
            upload_connections=config.storage.upload_connections,
            read_connections=config.storage.read_connections,
            metrics=metrics,
            tracer=tracer,
            logger=logger,
        )

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
            fs=fs,
            storage=storage,
        )

        logger.info(
            "jotta_osd_container_initialized",
            environment=config.observability.environment,
            root=config.storage.root,
            upload_connections=config.storage.upload_connections,
            read_connections=config.storage.read_connections,
            filesystem=type(fs).__name__,
        )

        return cls._instance

    @classmethod
    def get(cls) -> "Container":
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()
