"""Prometheus metrics for jotta-osd."""

from prometheus_client import Counter, Histogram, CollectorRegistry, REGISTRY


class ObjectStoreMetrics:
    """Metrics collector for the object store."""

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        # Object Operations
        self.objects_created = Counter(
            "jotta_osd_objects_created_total",
            "Total objects created",
            ["bucket"],
            registry=registry,
        )
        self.objects_deleted = Counter(
            "jotta_osd_objects_deleted_total",
            "Total objects deleted",
            ["bucket"],
            registry=registry,
        )
        self.bytes_written = Counter(
            "jotta_osd_bytes_written_total",
            "Total new bytes written into objects",
            ["bucket"],
            registry=registry,
        )
        self.bytes_read = Counter(
            "jotta_osd_bytes_read_total",
            "Total bytes streamed out of objects",
            ["bucket"],
            registry=registry,
        )

        # Chunk Transfers
        self.chunks_uploaded = Counter(
            "jotta_osd_chunks_uploaded_total",
            "Total chunk revisions uploaded",
            ["bucket"],
            registry=registry,
        )
        self.chunk_bytes_uploaded = Counter(
            "jotta_osd_chunk_bytes_uploaded_total",
            "Total chunk bytes uploaded, including re-uploaded heads and tails",
            ["bucket"],
            registry=registry,
        )

        # API Latency
        self.upload_range_latency = Histogram(
            "jotta_osd_upload_range_latency_seconds",
            "upload_range latency",
            ["bucket"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 60.0],
            registry=registry,
        )
        self.stream_range_latency = Histogram(
            "jotta_osd_stream_range_latency_seconds",
            "stream_range latency, until the last block is yielded",
            ["bucket"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 60.0],
            registry=registry,
        )

        # Error Metrics
        self.request_errors = Counter(
            "jotta_osd_request_errors_total",
            "Total request errors",
            ["operation", "error_type"],
            registry=registry,
        )


_metrics: ObjectStoreMetrics | None = None


def get_metrics() -> ObjectStoreMetrics:
    """Get the singleton metrics instance."""
    global _metrics
    if _metrics is None:
        _metrics = ObjectStoreMetrics()
    return _metrics
