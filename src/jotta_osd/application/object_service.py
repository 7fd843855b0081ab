"""Object storage - unified entry point for buckets and objects.

This module provides the ObjectStorage class that wires the chunk
addressing, read-modify-write, upload, read and metadata services over a
RemoteFilesystem, and exposes the bucket/object operations upper layers
call.

Usage:
    from jotta_osd.adapters.outbound import InMemoryFilesystem
    from jotta_osd.application import ObjectStorage

    storage = ObjectStorage(InMemoryFilesystem(), root="jotta-osd")

    bucket = BucketName("photos")
    name = ObjectName("cat.jpeg")

    await storage.create_bucket(bucket)
    await storage.create(bucket, name, MetaPatch(content_type="image/jpeg"))
    meta = await storage.upload_range(bucket, name, 0, data)
    data = await storage.read(bucket, name)
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import AsyncIterator, Iterator, Optional

import structlog
from opentelemetry import trace

from jotta_osd.domain.entities.bucket import Bucket
from jotta_osd.domain.entities.object import MetaPatch, ObjectMeta, utc_now
from jotta_osd.domain.services.byte_source import ByteSourceLike, as_byte_source
from jotta_osd.domain.services.metadata_store import ObjectMetadataStore
from jotta_osd.domain.services.object_reader import ObjectReader
from jotta_osd.domain.services.object_writer import ObjectWriter
from jotta_osd.domain.services.paths import RemoteLayout
from jotta_osd.domain.value_objects.byte_range import (
    ByteRange,
    ClosedByteRange,
)
from jotta_osd.domain.value_objects.names import BucketName, InvalidNameError, ObjectName
from jotta_osd.infrastructure.logging import get_logger
from jotta_osd.infrastructure.metrics import ObjectStoreMetrics, get_metrics
from jotta_osd.ports.inbound import (
    BucketError,
    BucketNotFoundError,
    ObjectNotFoundError,
    RangeNotSatisfiableError,
)
from jotta_osd.ports.outbound.remote_filesystem import (
    AlreadyExistsError,
    ConflictHandler,
    NoSuchFileOrFolderError,
    RemoteFilesystem,
)


def bound_range(byte_range: Optional[ByteRange], size: int) -> ClosedByteRange:
    """Clip a requested range to an object of ``size`` bytes.

    ``None`` selects the whole object.

    Raises:
        RangeNotSatisfiableError: If the range starts past the end.
    """
    if byte_range is None:
        return ClosedByteRange(0, size)
    if byte_range.start > size:
        raise RangeNotSatisfiableError(
            f"range {byte_range.to_http_range()} starts past the end of a {size} byte object"
        )
    stop = size if byte_range.end is None else min(byte_range.end + 1, size)
    return ClosedByteRange.from_half_open(byte_range.start, max(stop, byte_range.start))


class ObjectStorage:
    """Bucket and object operations over a remote filesystem.

    Every public coroutine runs in its own span, counts failures in
    ``request_errors`` and re-raises them unchanged.

    Concurrency:
        ``upload_connections`` and ``read_connections`` are defaults for
        the per-call ``concurrency`` argument. Separate calls are not
        rate-limited against each other.
    """

    def __init__(
        self,
        fs: RemoteFilesystem,
        root: str = "jotta-osd",
        upload_connections: int = 8,
        read_connections: int = 8,
        metrics: ObjectStoreMetrics | None = None,
        tracer: trace.Tracer | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the object storage.

        Args:
            fs: Remote filesystem holding buckets and objects.
            root: Remote folder that contains every bucket.
            upload_connections: Default chunk uploads in flight per write.
            read_connections: Default chunk reads in flight per read.
            metrics: Metrics collector. Defaults to the process singleton.
            tracer: OpenTelemetry tracer.
            logger: Structured logger.
        """
        self._fs = fs
        self._layout = RemoteLayout(root)
        self._upload_connections = upload_connections
        self._read_connections = read_connections

        self._metadata = ObjectMetadataStore(fs, self._layout)
        self._writer = ObjectWriter(fs, self._layout, self._metadata)
        self._reader = ObjectReader(fs, self._layout)

        self._metrics = metrics or get_metrics()
        self._tracer = tracer or trace.get_tracer("jotta_osd")
        self._logger = logger or get_logger(__name__)

    @property
    def layout(self) -> RemoteLayout:
        return self._layout

    @contextmanager
    def _operation(self, operation: str, **context: str) -> Iterator[trace.Span]:
        with self._tracer.start_as_current_span(operation) as span:
            for key, value in context.items():
                span.set_attribute(f"jotta_osd.{key}", value)
            try:
                yield span
            except Exception as e:
                self._metrics.request_errors.labels(
                    operation=operation, error_type=type(e).__name__
                ).inc()
                self._logger.warning(
                    f"{operation}_failed", error=str(e), error_type=type(e).__name__, **context
                )
                raise

    # =========================================================================
    # Buckets
    # =========================================================================

    async def create_bucket(self, name: BucketName) -> Bucket:
        """Create a new bucket.

        Raises:
            BucketError: If the bucket already exists.
        """
        with self._operation("create_bucket", bucket=str(name)):
            try:
                await self._fs.create_folder(self._layout.bucket_path(name))
            except AlreadyExistsError as e:
                raise BucketError(f"bucket {name} already exists") from e

            self._logger.info("bucket_created", bucket=str(name))
            return Bucket(name=name)

    async def get_bucket(self, name: BucketName) -> Bucket:
        """Get details about a bucket by name.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
        """
        with self._operation("get_bucket", bucket=str(name)):
            try:
                await self._fs.list_folder(self._layout.bucket_path(name))
            except NoSuchFileOrFolderError as e:
                raise BucketNotFoundError(f"bucket {name} does not exist") from e
            return Bucket(name=name)

    async def list_buckets(self) -> list[Bucket]:
        """List all buckets. An absent root means there are none."""
        with self._operation("list_buckets"):
            try:
                entries = await self._fs.list_folder(self._layout.root)
            except NoSuchFileOrFolderError:
                return []

            buckets = []
            for entry in entries:
                if not entry.is_folder:
                    continue
                try:
                    buckets.append(Bucket(name=BucketName(entry.name)))
                except InvalidNameError:
                    self._logger.warning("foreign_folder_skipped", folder=entry.name)
            return buckets

    async def delete_bucket(self, name: BucketName) -> None:
        """Delete a bucket and every object in it.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
        """
        with self._operation("delete_bucket", bucket=str(name)):
            try:
                await self._fs.delete_folder(self._layout.bucket_path(name))
            except NoSuchFileOrFolderError as e:
                raise BucketNotFoundError(f"bucket {name} does not exist") from e
            self._logger.info("bucket_deleted", bucket=str(name))

    # =========================================================================
    # Objects
    # =========================================================================

    async def list(self, bucket: BucketName) -> list[ObjectName]:
        """List all objects in a bucket.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
        """
        with self._operation("list_objects", bucket=str(bucket)):
            try:
                entries = await self._fs.list_folder(self._layout.bucket_path(bucket))
            except NoSuchFileOrFolderError as e:
                raise BucketNotFoundError(f"bucket {bucket} does not exist") from e

            names = []
            for entry in entries:
                if not entry.is_folder:
                    continue
                try:
                    names.append(ObjectName.from_hex(entry.name))
                except InvalidNameError:
                    self._logger.warning(
                        "foreign_folder_skipped", bucket=str(bucket), folder=entry.name
                    )
            return names

    async def create(
        self,
        bucket: BucketName,
        name: ObjectName,
        patch: MetaPatch | None = None,
    ) -> ObjectMeta:
        """Create an object. This does not upload any data, only metadata.

        Raises:
            ObjectAlreadyExistsError: If the object already exists.
        """
        with self._operation("create_object", bucket=str(bucket), object=str(name)):
            now = utc_now()
            meta = ObjectMeta(size=0, created=now, updated=now).apply(patch or MetaPatch())

            await self._metadata.set(bucket, name, meta, ConflictHandler.REJECT_CONFLICTS)

            self._metrics.objects_created.labels(bucket=str(bucket)).inc()
            self._logger.info("object_created", bucket=str(bucket), object=str(name))
            return meta

    async def upload_range(
        self,
        bucket: BucketName,
        name: ObjectName,
        offset: int,
        source: ByteSourceLike,
        concurrency: int | None = None,
    ) -> ObjectMeta:
        """Upload a range of bytes. The remote object is overwritten but not truncated.

        Args:
            bucket: Bucket name.
            name: Object name; the object must have been created.
            offset: Where the first byte of ``source`` lands.
            source: Bytes, a binary file, an async reader or an async
                iterable of blocks.
            concurrency: Chunk uploads in flight. Defaults to
                ``upload_connections``.

        Returns:
            The committed metadata.

        Raises:
            ObjectNotFoundError: If the object was never created. Checked
                before any chunk is uploaded.
            RangeNotSatisfiableError: If ``offset`` lies in a chunk past
                the one holding the last byte.
        """
        with self._operation("upload_range", bucket=str(bucket), object=str(name)) as span:
            started = time.monotonic()

            result = await self._writer.upload_range(
                bucket,
                name,
                offset,
                as_byte_source(source),
                self._upload_connections if concurrency is None else concurrency,
            )

            elapsed = time.monotonic() - started
            span.set_attribute("jotta_osd.bytes_written", result.bytes_written)
            span.set_attribute("jotta_osd.chunks_uploaded", result.chunks_uploaded)

            labels = {"bucket": str(bucket)}
            self._metrics.bytes_written.labels(**labels).inc(result.bytes_written)
            self._metrics.chunks_uploaded.labels(**labels).inc(result.chunks_uploaded)
            self._metrics.chunk_bytes_uploaded.labels(**labels).inc(result.bytes_uploaded)
            self._metrics.upload_range_latency.labels(**labels).observe(elapsed)

            self._logger.debug(
                "range_uploaded",
                bucket=str(bucket),
                object=str(name),
                offset=offset,
                bytes_written=result.bytes_written,
                bytes_uploaded=result.bytes_uploaded,
                megabits_per_second=round(result.bytes_uploaded * 8 / 1e6 / max(elapsed, 1e-9), 2),
            )
            return result.meta

    async def stream_range(
        self,
        bucket: BucketName,
        name: ObjectName,
        byte_range: ByteRange,
        concurrency: int | None = None,
    ) -> AsyncIterator[bytes]:
        """Open a stream to an object.

        **The integrity of the data is not checked by this function.**

        The stream eventually fails with ``RangeNotSatisfiableError`` if
        ``byte_range`` reaches past the last chunk; bound it by the
        object's size (see ``read``).
        """
        labels = {"bucket": str(bucket)}
        span = self._tracer.start_span("stream_range")
        span.set_attribute("jotta_osd.bucket", str(bucket))
        span.set_attribute("jotta_osd.object", str(name))
        span.set_attribute("jotta_osd.range", byte_range.to_http_range())
        started = time.monotonic()

        try:
            async for block in self._reader.stream_range(
                bucket, name, byte_range, self._read_connections if concurrency is None else concurrency
            ):
                self._metrics.bytes_read.labels(**labels).inc(len(block))
                yield block
        except Exception as e:
            self._metrics.request_errors.labels(
                operation="stream_range", error_type=type(e).__name__
            ).inc()
            self._logger.warning(
                "stream_range_failed",
                bucket=str(bucket),
                object=str(name),
                error=str(e),
                error_type=type(e).__name__,
            )
            span.record_exception(e)
            raise
        finally:
            self._metrics.stream_range_latency.labels(**labels).observe(time.monotonic() - started)
            span.end()

    async def read(
        self,
        bucket: BucketName,
        name: ObjectName,
        byte_range: ByteRange | None = None,
        concurrency: int | None = None,
    ) -> bytes:
        """Read an object, or part of it, into memory.

        The range is clipped to the object's size from its metadata.

        Raises:
            RangeNotSatisfiableError: If the range starts past the end.
        """
        meta = await self.get_metadata(bucket, name)
        bounded = bound_range(byte_range, meta.size)

        blocks = []
        async for block in self.stream_range(bucket, name, bounded, concurrency):
            blocks.append(block)
        return b"".join(blocks)

    async def get_metadata(self, bucket: BucketName, name: ObjectName) -> ObjectMeta:
        """Get metadata associated with an object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            MetadataDecodeError: If its metadata is corrupt.
        """
        with self._operation("get_metadata", bucket=str(bucket), object=str(name)):
            return await self._metadata.get(bucket, name)

    async def patch_metadata(
        self,
        bucket: BucketName,
        name: ObjectName,
        patch: MetaPatch,
    ) -> ObjectMeta:
        """Patch metadata. If the patch is empty, nothing is written."""
        with self._operation("patch_metadata", bucket=str(bucket), object=str(name)):
            return await self._metadata.patch(bucket, name, patch)

    async def delete(self, bucket: BucketName, name: ObjectName) -> None:
        """Delete an object along with all of its chunks.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """
        with self._operation("delete_object", bucket=str(bucket), object=str(name)):
            try:
                await self._fs.delete_folder(self._layout.object_path(bucket, name))
            except NoSuchFileOrFolderError as e:
                raise ObjectNotFoundError(f"object {bucket}/{name} does not exist") from e

            self._metrics.objects_deleted.labels(bucket=str(bucket)).inc()
            self._logger.info("object_deleted", bucket=str(bucket), object=str(name))
