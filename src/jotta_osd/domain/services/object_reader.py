"""Ordered, concurrent reads of chunked objects.

**The integrity of the data is not checked.** Chunks are checksummed when
uploaded, but bytes read back are passed through as-is.
"""

from __future__ import annotations

from typing import AsyncIterator

from jotta_osd.domain.services.chunk_addressing import (
    chunk_index_and_offset,
    split_range_into_chunks,
)
from jotta_osd.domain.services.concurrency import map_ordered
from jotta_osd.domain.services.paths import RemoteLayout
from jotta_osd.domain.value_objects.byte_range import ByteRange, ClosedByteRange
from jotta_osd.domain.value_objects.names import BucketName, ObjectName
from jotta_osd.ports.inbound import RangeNotSatisfiableError
from jotta_osd.ports.outbound.remote_filesystem import (
    NoSuchFileOrFolderError,
    RemoteFilesystem,
    RemoteRangeNotSatisfiableError,
)


class ObjectReader:
    """Streams byte ranges of chunked objects."""

    def __init__(self, fs: RemoteFilesystem, layout: RemoteLayout) -> None:
        self._fs = fs
        self._layout = layout

    async def stream_range(
        self,
        bucket: BucketName,
        name: ObjectName,
        byte_range: ByteRange,
        max_concurrent_reads: int,
    ) -> AsyncIterator[bytes]:
        """Stream a byte range of an object.

        Chunks are fetched concurrently but yielded strictly in order.

        Args:
            bucket: Bucket name.
            name: Object name.
            byte_range: Logical range to read. Callers should bound it by
                the object's size; an open range eventually runs past the
                last chunk and fails.
            max_concurrent_reads: Maximum chunk reads in flight.

        Yields:
            One block per chunk touched by the range.

        Raises:
            RangeNotSatisfiableError: If the range reaches a chunk that
                does not exist, or a chunk other than the last one of a
                bounded range is shorter than requested.
        """
        final = None
        if byte_range.end is not None and not byte_range.is_empty:
            final, _ = chunk_index_and_offset(byte_range.end)

        async def read_chunk(item: tuple[int, ClosedByteRange]) -> bytes:
            index, chunk_range = item
            path = self._layout.chunk_path(bucket, name, index)
            try:
                data = await self._fs.read_range(path, chunk_range)
            except (NoSuchFileOrFolderError, RemoteRangeNotSatisfiableError) as e:
                raise RangeNotSatisfiableError(
                    f"chunk {index} of {bucket}/{name} cannot satisfy {chunk_range.to_http_range()}"
                ) from e

            # A short chunk anywhere but at the end would shift later bytes.
            if len(data) < len(chunk_range) and index != final:
                raise RangeNotSatisfiableError(
                    f"chunk {index} of {bucket}/{name} holds {len(data)} of the "
                    f"{len(chunk_range)} bytes in {chunk_range.to_http_range()}"
                )
            return data

        plan = split_range_into_chunks(byte_range)
        async for block in map_ordered(read_chunk, plan, max_concurrent_reads):
            yield block
