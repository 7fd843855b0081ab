"""Inbound ports - API contracts for the object store.

Inbound ports define the interfaces that upper layers (such as an HTTP
facade) use to interact with buckets and chunked objects, and the closed
set of errors they can expect back.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, AsyncIterator, Optional, Protocol

from jotta_osd.domain.entities.bucket import Bucket
from jotta_osd.domain.entities.object import MetaPatch, ObjectMeta
from jotta_osd.domain.value_objects.byte_range import ByteRange
from jotta_osd.domain.value_objects.names import BucketName, ObjectName

if TYPE_CHECKING:
    from jotta_osd.domain.services.byte_source import ByteSourceLike


# =============================================================================
# Errors
# =============================================================================


class ObjectStoreError(Exception):
    """Base class for object store failures."""

    pass


class ObjectNotFoundError(ObjectStoreError):
    """The object (its metadata record) does not exist."""

    pass


class ObjectAlreadyExistsError(ObjectStoreError):
    """An object with the same name already exists."""

    pass


class MetadataDecodeError(ObjectStoreError):
    """The metadata record exists but cannot be parsed."""

    pass


class IncompleteUploadError(ObjectStoreError):
    """The remote side reported a partial upload of a chunk or record."""

    pass


class ChunkDisappearedError(ObjectStoreError):
    """A chunk expected to exist mid-write was not found remotely."""

    pass


class RangeNotSatisfiableError(ObjectStoreError):
    """A read reached a chunk that does not exist."""

    pass


class ObjectTooLargeError(ObjectStoreError):
    """An offset lies beyond the largest addressable chunk."""

    pass


class BucketError(ObjectStoreError):
    """Raised when bucket operation fails."""

    pass


class BucketNotFoundError(BucketError):
    """The bucket does not exist."""

    pass


# =============================================================================
# Object Service Port
# =============================================================================


class ObjectServicePort(Protocol):
    """Protocol for chunked object operations.

    Objects are arbitrarily large, randomly writable byte sequences backed
    by fixed-size remote chunk files and a metadata record.

    Concurrency:
        Each call fans out to at most ``concurrency`` remote transfers.
        The bound is per call, not global.

    Integrity:
        Chunks are checksummed when uploaded. Data read back is NOT
        verified.

    Example:
        meta = await service.create(bucket, name, MetaPatch())
        meta = await service.upload_range(bucket, name, 0, data, concurrency=4)
        async for block in service.stream_range(bucket, name, rng, concurrency=4):
            ...
    """

    @abstractmethod
    async def create(
        self, bucket: BucketName, name: ObjectName, patch: MetaPatch
    ) -> ObjectMeta:
        """Create an empty object.

        Raises:
            ObjectAlreadyExistsError: If the object exists.
        """
        ...

    @abstractmethod
    async def upload_range(
        self,
        bucket: BucketName,
        name: ObjectName,
        offset: int,
        source: ByteSourceLike,
        concurrency: Optional[int] = None,
    ) -> ObjectMeta:
        """Write bytes at ``offset``, overwriting but never truncating.

        Returns:
            The committed metadata.
        """
        ...

    @abstractmethod
    def stream_range(
        self,
        bucket: BucketName,
        name: ObjectName,
        byte_range: ByteRange,
        concurrency: Optional[int] = None,
    ) -> AsyncIterator[bytes]:
        """Stream a byte range of an object in order."""
        ...

    @abstractmethod
    async def get_metadata(self, bucket: BucketName, name: ObjectName) -> ObjectMeta:
        """Get object metadata.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            MetadataDecodeError: If the record is corrupt.
        """
        ...

    @abstractmethod
    async def patch_metadata(
        self, bucket: BucketName, name: ObjectName, patch: MetaPatch
    ) -> ObjectMeta:
        """Patch writable metadata fields."""
        ...

    @abstractmethod
    async def delete(self, bucket: BucketName, name: ObjectName) -> None:
        """Delete an object and all of its chunks."""
        ...

    @abstractmethod
    async def list(self, bucket: BucketName) -> list[ObjectName]:
        """List objects in a bucket."""
        ...


# =============================================================================
# Bucket Service Port
# =============================================================================


class BucketServicePort(Protocol):
    """Protocol for bucket management operations.

    Example:
        bucket = await service.create_bucket(BucketName("my-bucket"))
        buckets = await service.list_buckets()
    """

    @abstractmethod
    async def create_bucket(self, name: BucketName) -> Bucket:
        """Create a new bucket.

        Raises:
            BucketError: If bucket already exists.
        """
        ...

    @abstractmethod
    async def get_bucket(self, name: BucketName) -> Bucket:
        """Get bucket by name.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
        """
        ...

    @abstractmethod
    async def list_buckets(self) -> list[Bucket]:
        """List all buckets."""
        ...

    @abstractmethod
    async def delete_bucket(self, name: BucketName) -> None:
        """Delete a bucket and every object in it.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
        """
        ...


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Errors
    "ObjectStoreError",
    "ObjectNotFoundError",
    "ObjectAlreadyExistsError",
    "MetadataDecodeError",
    "IncompleteUploadError",
    "ChunkDisappearedError",
    "RangeNotSatisfiableError",
    "ObjectTooLargeError",
    "BucketError",
    "BucketNotFoundError",
    # Object Service
    "ObjectServicePort",
    # Bucket Service
    "BucketServicePort",
]
