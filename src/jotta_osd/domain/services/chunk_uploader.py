"""Checksummed whole-chunk uploads."""

from __future__ import annotations

import hashlib
import logging
from typing import Optional

from jotta_osd.domain.entities.chunk import Chunk
from jotta_osd.domain.services.paths import RemoteLayout
from jotta_osd.domain.value_objects.byte_range import ClosedByteRange
from jotta_osd.domain.value_objects.names import BucketName, ObjectName
from jotta_osd.ports.inbound import IncompleteUploadError
from jotta_osd.ports.outbound.remote_filesystem import (
    AllocationRequest,
    ConflictHandler,
    RemoteFilesystem,
    UploadComplete,
)

logger = logging.getLogger(__name__)


async def upload_file(
    fs: RemoteFilesystem,
    path: str,
    data: bytes,
    conflict_handler: ConflictHandler,
    md5: Optional[str] = None,
) -> int:
    """Replace a remote file with ``data`` as one new revision.

    Args:
        fs: Remote filesystem.
        path: Remote file path.
        data: Complete file contents.
        conflict_handler: Policy when the file already exists.
        md5: Precomputed hex MD5 of ``data``, if the caller has one.

    Returns:
        Number of bytes uploaded.

    Raises:
        IncompleteUploadError: If the remote side holds only part of ``data``.
    """
    size = len(data)
    if md5 is None:
        md5 = hashlib.md5(data).hexdigest()

    allocation = await fs.allocate(
        AllocationRequest(path=path, size=size, md5=md5, conflict_handler=conflict_handler)
    )
    result = await fs.upload_range(allocation.upload_url, data, ClosedByteRange(0, size))

    if not isinstance(result, UploadComplete):
        logger.warning(f"Upload of {path} did not complete: {result}")
        raise IncompleteUploadError(f"incomplete upload of {path}: {result}")

    return size


class ChunkUploader:
    """Uploads complete chunks of one object."""

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

    async def upload(self, chunk: Chunk) -> int:
        """Upload a chunk, replacing any previous revision.

        Returns:
            Number of bytes uploaded (the full chunk length).
        """
        path = self._layout.chunk_path(self._bucket, self._name, chunk.index)
        logger.debug(f"Uploading chunk {chunk.index} ({chunk.size} bytes) to {path}")
        return await upload_file(
            self._fs,
            path,
            chunk.data,
            ConflictHandler.CREATE_NEW_REVISION,
            md5=chunk.calculate_checksum(),
        )
