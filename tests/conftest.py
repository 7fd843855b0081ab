"""Pytest configuration and shared fixtures for jotta-osd tests."""

import random

import pytest
from prometheus_client import CollectorRegistry

from jotta_osd.adapters.outbound import InMemoryFilesystem
from jotta_osd.application import ObjectStorage
from jotta_osd.domain.services.paths import RemoteLayout
from jotta_osd.domain.value_objects import BucketName, ObjectName
from jotta_osd.infrastructure.config import Config
from jotta_osd.infrastructure.container import Container
from jotta_osd.infrastructure.metrics import ObjectStoreMetrics


@pytest.fixture(autouse=True)
def reset_container():
    """Reset the DI container before each test."""
    Container.reset()
    yield
    Container.reset()


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration."""
    return Config()


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> ObjectStoreMetrics:
    """Metrics bound to a private registry."""
    return ObjectStoreMetrics(registry=registry)


@pytest.fixture
def fs() -> InMemoryFilesystem:
    return InMemoryFilesystem()


@pytest.fixture
def layout() -> RemoteLayout:
    return RemoteLayout("jotta-osd")


@pytest.fixture
def bucket() -> BucketName:
    return BucketName("test-bucket")


@pytest.fixture
def name() -> ObjectName:
    return ObjectName("photos/cat.jpeg")


@pytest.fixture
def storage(fs: InMemoryFilesystem, metrics: ObjectStoreMetrics) -> ObjectStorage:
    """Object storage over an in-memory filesystem."""
    return ObjectStorage(fs, root="jotta-osd", metrics=metrics)


@pytest.fixture
def random_data():
    """Factory for reproducible pseudo-random payloads."""

    def make(size: int, seed: int = 0) -> bytes:
        return random.Random(seed).randbytes(size)

    return make


# Pytest markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
