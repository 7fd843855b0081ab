"""Random-access writes to chunked objects.

A write walks the object chunk by chunk from the start offset. Chunks are
built sequentially (they drain a single byte source) and uploaded
concurrently. The metadata record is only rewritten once every chunk
upload has succeeded, so a failed write never advertises bytes that
may not exist remotely.

Failure semantics:
    Chunks uploaded before a failure are not rolled back. They may
    already be live remotely while ``size`` still reflects the previous
    state. Re-running the same write from the same offset overwrites the
    same chunks and repairs this.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import AsyncIterator

from jotta_osd.domain.entities.chunk import Chunk
from jotta_osd.domain.entities.object import ObjectMeta, utc_now
from jotta_osd.domain.services.byte_source import ByteSource
from jotta_osd.domain.services.chunk_addressing import chunk_index_and_offset, chunk_start
from jotta_osd.domain.services.chunk_builder import ChunkBuilder
from jotta_osd.domain.services.chunk_uploader import ChunkUploader
from jotta_osd.domain.services.concurrency import map_unordered
from jotta_osd.domain.services.metadata_store import ObjectMetadataStore
from jotta_osd.domain.services.paths import RemoteLayout
from jotta_osd.domain.value_objects.names import BucketName, ObjectName
from jotta_osd.ports.inbound import RangeNotSatisfiableError
from jotta_osd.ports.outbound.remote_filesystem import ConflictHandler, RemoteFilesystem

logger = logging.getLogger(__name__)


def check_write_offset(offset: int, size: int) -> None:
    """Reject writes that would skip over whole chunks.

    Every chunk but the last holds exactly ``CHUNK_SIZE`` bytes. A write
    may start anywhere up to the end of the object, or past it as long as
    it stays inside the chunk holding the last byte; that gap is
    zero-filled.

    Raises:
        RangeNotSatisfiableError: If ``offset`` lies in a chunk after the
            one holding the last byte.
    """
    if offset <= size:
        return

    index, _ = chunk_index_and_offset(offset)
    if size == 0 or index != chunk_index_and_offset(size - 1)[0]:
        raise RangeNotSatisfiableError(
            f"write at {offset} would leave missing chunks after the end of a {size} byte object"
        )


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a successful write."""

    meta: ObjectMeta
    bytes_written: int
    bytes_uploaded: int
    chunks_uploaded: int


class ObjectWriter:
    """Writes byte streams into chunked objects."""

    def __init__(
        self,
        fs: RemoteFilesystem,
        layout: RemoteLayout,
        metadata: ObjectMetadataStore,
    ) -> None:
        self._fs = fs
        self._layout = layout
        self._metadata = metadata

    async def upload_range(
        self,
        bucket: BucketName,
        name: ObjectName,
        offset: int,
        source: ByteSource,
        max_concurrent_uploads: int,
    ) -> WriteResult:
        """Write bytes at ``offset``. The object is overwritten but not truncated.

        Args:
            bucket: Bucket name.
            name: Object name.
            offset: Logical offset of the first byte from ``source``.
            source: New bytes, consumed until exhausted.
            max_concurrent_uploads: Maximum chunk uploads in flight.

        Returns:
            The committed metadata and transfer counters.

        Raises:
            ObjectNotFoundError: If the object was never created. Checked
                before any chunk is uploaded.
            RangeNotSatisfiableError: If the write would leave a gap of
                missing chunks past the end of the object.
        """
        started = time.monotonic()
        current = await self._metadata.get(bucket, name)
        check_write_offset(offset, current.size)

        builder = ChunkBuilder(self._fs, self._layout, bucket, name)
        uploader = ChunkUploader(self._fs, self._layout, bucket, name)

        async def upload(chunk: Chunk) -> tuple[int, int]:
            uploaded = await uploader.upload(chunk)
            return uploaded, chunk.written

        bytes_written = 0
        bytes_uploaded = 0
        chunks_uploaded = 0

        chunks = self._chunks(builder, offset, source)
        async for uploaded, written in map_unordered(upload, chunks, max_concurrent_uploads):
            bytes_uploaded += uploaded
            bytes_written += written
            chunks_uploaded += 1

        elapsed = time.monotonic() - started
        logger.debug(
            f"Uploaded {bytes_uploaded} bytes ({bytes_written} new) to {bucket}/{name} "
            f"in {chunks_uploaded} chunks, {elapsed:.2f}s"
        )

        meta = await self._metadata.get(bucket, name)
        meta.size = max(meta.size, offset + bytes_written)
        meta.updated = utc_now()
        await self._metadata.set(bucket, name, meta, ConflictHandler.CREATE_NEW_REVISION)

        return WriteResult(
            meta=meta,
            bytes_written=bytes_written,
            bytes_uploaded=bytes_uploaded,
            chunks_uploaded=chunks_uploaded,
        )

    async def _chunks(
        self,
        builder: ChunkBuilder,
        offset: int,
        source: ByteSource,
    ) -> AsyncIterator[Chunk]:
        """Unfold ``source`` into complete chunks, starting at ``offset``.

        Not restartable: it drains ``source``.
        """
        pos = offset
        while True:
            index, within = chunk_index_and_offset(pos)
            chunk = await builder.build(index, within, source)
            if chunk is None:
                return
            yield chunk
            pos = chunk_start(index + 1)
