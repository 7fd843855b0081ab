"""Persistence of object metadata records.

The record is a small MessagePack map stored as the ``meta`` file of the
object's folder. It is uploaded in one shot through the same
allocate-and-upload primitive as chunks.
"""

from __future__ import annotations

import logging

import msgpack

from jotta_osd.domain.entities.object import MetaPatch, ObjectMeta, utc_now
from jotta_osd.domain.services.chunk_uploader import upload_file
from jotta_osd.domain.services.paths import RemoteLayout
from jotta_osd.domain.value_objects.byte_range import OpenByteRange
from jotta_osd.domain.value_objects.names import BucketName, ObjectName
from jotta_osd.ports.inbound import (
    MetadataDecodeError,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
)
from jotta_osd.ports.outbound.remote_filesystem import (
    AlreadyExistsError,
    ConflictHandler,
    NoSuchFileOrFolderError,
    RemoteFilesystem,
)

logger = logging.getLogger(__name__)


def encode_meta(meta: ObjectMeta) -> bytes:
    """Serialize metadata to its compact binary form."""
    return msgpack.packb(meta.to_dict(), use_bin_type=True)


def decode_meta(data: bytes) -> ObjectMeta:
    """Parse a stored metadata record.

    Raises:
        MetadataDecodeError: If ``data`` is not a valid record.
    """
    try:
        raw = msgpack.unpackb(data, raw=False)
    except (msgpack.UnpackException, ValueError, TypeError) as e:
        raise MetadataDecodeError(f"metadata is not valid MessagePack: {e}") from e

    if not isinstance(raw, dict):
        raise MetadataDecodeError(f"metadata must be a map, got {type(raw).__name__}")

    try:
        return ObjectMeta.from_dict(raw)
    except ValueError as e:
        raise MetadataDecodeError(str(e)) from e


class ObjectMetadataStore:
    """Reads and writes metadata records."""

    def __init__(self, fs: RemoteFilesystem, layout: RemoteLayout) -> None:
        self._fs = fs
        self._layout = layout

    async def get(self, bucket: BucketName, name: ObjectName) -> ObjectMeta:
        """Get metadata associated with an object.

        Raises:
            ObjectNotFoundError: If no record exists.
            MetadataDecodeError: If the record cannot be parsed.
        """
        path = self._layout.meta_path(bucket, name)
        try:
            data = await self._fs.read_range(path, OpenByteRange.full())
        except NoSuchFileOrFolderError as e:
            raise ObjectNotFoundError(f"object {bucket}/{name} does not exist") from e

        try:
            return decode_meta(data)
        except MetadataDecodeError as e:
            logger.error(f"Parse metadata of {bucket}/{name} failed: {e}")
            raise

    async def set(
        self,
        bucket: BucketName,
        name: ObjectName,
        meta: ObjectMeta,
        conflict_handler: ConflictHandler,
    ) -> None:
        """Persist a metadata record.

        Args:
            bucket: Bucket name.
            name: Object name.
            meta: Record to store.
            conflict_handler: ``REJECT_CONFLICTS`` when creating an
                object, ``CREATE_NEW_REVISION`` when updating one.

        Raises:
            ObjectAlreadyExistsError: If conflicts are rejected and a
                record exists.
            IncompleteUploadError: If the record did not fully upload.
        """
        path = self._layout.meta_path(bucket, name)
        try:
            await upload_file(self._fs, path, encode_meta(meta), conflict_handler)
        except AlreadyExistsError as e:
            raise ObjectAlreadyExistsError(f"object {bucket}/{name} already exists") from e

    async def patch(self, bucket: BucketName, name: ObjectName, patch: MetaPatch) -> ObjectMeta:
        """Patch metadata. An empty patch writes nothing.

        Returns:
            The resulting metadata.
        """
        meta = await self.get(bucket, name)
        if patch.is_empty:
            return meta

        meta = meta.apply(patch)
        meta.updated = utc_now()
        await self.set(bucket, name, meta, ConflictHandler.CREATE_NEW_REVISION)
        return meta
