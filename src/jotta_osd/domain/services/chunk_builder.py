"""Read-modify-write assembly of complete chunk buffers.

The remote store can only replace a whole file, so writing part of a
chunk means downloading whatever the write does not cover (the head
before the write cursor and the tail after the new bytes), splicing the
new bytes in between, and uploading the result as a new revision.
"""

from __future__ import annotations

import logging
from typing import Optional

from jotta_osd.domain.entities.chunk import Chunk
from jotta_osd.domain.services.byte_source import ByteSource, read_up_to
from jotta_osd.domain.services.chunk_addressing import CHUNK_SIZE
from jotta_osd.domain.services.paths import RemoteLayout
from jotta_osd.domain.value_objects.byte_range import ClosedByteRange, OpenByteRange
from jotta_osd.domain.value_objects.names import BucketName, ObjectName
from jotta_osd.ports.inbound import ChunkDisappearedError
from jotta_osd.ports.outbound.remote_filesystem import (
    NoSuchFileOrFolderError,
    RemoteFilesystem,
    RemoteRangeNotSatisfiableError,
)

logger = logging.getLogger(__name__)


class ChunkBuilder:
    """Builds complete chunks for one object from a stream of new bytes."""

    def __init__(
        self,
        fs: RemoteFilesystem,
        layout: RemoteLayout,
        bucket: BucketName,
        name: ObjectName,
    ) -> None:
        self._fs = fs
        self._layout = layout
        self._bucket = bucket
        self._name = name

    async def build(
        self,
        index: int,
        offset_in_chunk: int,
        source: ByteSource,
    ) -> Optional[Chunk]:
        """Build the next complete chunk.

        Args:
            index: Chunk number.
            offset_in_chunk: Write cursor within the chunk; 0 for a write
                starting on a chunk boundary.
            source: New bytes. At most ``CHUNK_SIZE - offset_in_chunk``
                bytes are consumed.

        Returns:
            The chunk to upload, or ``None`` if the source had nothing
            left, which ends the write.

        Raises:
            ChunkDisappearedError: If the chunk holding the head bytes
                does not exist.
        """
        if not 0 <= offset_in_chunk < CHUNK_SIZE:
            raise ValueError(f"offset_in_chunk out of bounds: {offset_in_chunk}")

        new_bytes = await read_up_to(source, CHUNK_SIZE - offset_in_chunk)
        if not new_bytes:
            return None

        path = self._layout.chunk_path(self._bucket, self._name, index)
        buf = bytearray()

        if offset_in_chunk > 0:
            buf += await self._read_head(path, index, offset_in_chunk)

        buf += new_bytes

        if len(buf) < CHUNK_SIZE:
            # Writing into the middle of the object must not truncate the
            # bytes that follow in this chunk.
            buf += await self._read_tail(path, len(buf))

        return Chunk(index=index, data=bytes(buf), written=len(new_bytes))

    async def _read_head(self, path: str, index: int, length: int) -> bytes:
        try:
            head = await self._fs.read_range(path, ClosedByteRange(0, length))
        except NoSuchFileOrFolderError as e:
            raise ChunkDisappearedError(
                f"chunk {index} of {self._bucket}/{self._name} disappeared mid-write"
            ) from e
        except RemoteRangeNotSatisfiableError:
            head = b""

        if len(head) < length:
            # The write starts past the old end of the chunk.
            logger.debug(f"Zero-filling {length - len(head)} bytes before write in chunk {index}")
            head += bytes(length - len(head))
        return head

    async def _read_tail(self, path: str, start: int) -> bytes:
        try:
            return await self._fs.read_range(path, OpenByteRange(start))
        except (NoSuchFileOrFolderError, RemoteRangeNotSatisfiableError):
            return b""
