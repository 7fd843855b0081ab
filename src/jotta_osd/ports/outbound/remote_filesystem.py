"""Remote filesystem port.

This outbound port defines the contract for the cloud filesystem that
objects are stored on. The remote side knows nothing about objects or
chunks; it stores whole files that are replaced by allocating a new
revision (with a precomputed MD5 checksum) and uploading its bytes.

The remote filesystem is responsible for:
- Allocating upload sessions for whole-file revisions
- Accepting uploaded bytes for an allocation
- Serving byte ranges of the latest revision of a file
- Listing, creating and deleting folders

Authentication, token refresh, retries and timeouts all live behind
this port.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union

from jotta_osd.domain.value_objects.byte_range import ByteRange, ClosedByteRange


class ConflictHandler(Enum):
    """What to do when allocating a path that already holds a file."""

    REJECT_CONFLICTS = "reject_conflicts"
    CREATE_NEW_REVISION = "create_new_revision"


@dataclass(frozen=True)
class AllocationRequest:
    """Request to allocate a new file revision.

    Attributes:
        path: Remote file path.
        size: Exact number of bytes the revision will hold.
        md5: Hex MD5 checksum of the full revision contents.
        conflict_handler: Behaviour when ``path`` already exists.
    """

    path: str
    size: int
    md5: str
    conflict_handler: ConflictHandler


@dataclass(frozen=True)
class Allocation:
    """An upload session for one file revision."""

    upload_url: str
    resume_offset: int = 0


@dataclass(frozen=True)
class UploadComplete:
    """The remote side holds every byte of the revision."""

    md5: str
    size: int


@dataclass(frozen=True)
class UploadIncomplete:
    """The remote side holds only part of the revision."""

    range: ClosedByteRange


UploadResult = Union[UploadComplete, UploadIncomplete]


@dataclass(frozen=True)
class FolderEntry:
    """A child of a remote folder."""

    name: str
    is_folder: bool


class RemoteFilesystemError(Exception):
    """Raised when the remote filesystem reports a failure."""

    pass


class NoSuchFileOrFolderError(RemoteFilesystemError):
    """The file or folder does not exist."""

    pass


class AlreadyExistsError(RemoteFilesystemError):
    """The file or folder already exists and conflicts were rejected."""

    pass


class RemoteRangeNotSatisfiableError(RemoteFilesystemError):
    """The requested range starts at or beyond the end of the file."""

    pass


class CorruptUploadError(RemoteFilesystemError):
    """Uploaded bytes do not match the allocated checksum."""

    pass


class RemoteFilesystem(Protocol):
    """Protocol for the remote cloud filesystem.

    Paths are ``/``-separated and relative to the account's storage root.

    Concurrency:
        Implementations must allow concurrent calls from one event loop.
        The underlying connection pool is shared by all operations.
    """

    @abstractmethod
    async def allocate(self, request: AllocationRequest) -> Allocation:
        """Allocate an upload session for a new file revision.

        Args:
            request: Path, size, checksum and conflict policy.

        Returns:
            The upload URL and the offset to resume from.

        Raises:
            AlreadyExistsError: If the path exists and conflicts are rejected.
        """
        ...

    @abstractmethod
    async def upload_range(
        self,
        upload_url: str,
        data: bytes,
        byte_range: ClosedByteRange,
    ) -> UploadResult:
        """Upload bytes into an allocated revision.

        Args:
            upload_url: URL returned by ``allocate``.
            data: Bytes for ``byte_range``.
            byte_range: Where ``data`` goes within the revision.

        Returns:
            ``UploadComplete`` once every allocated byte is present,
            ``UploadIncomplete`` otherwise.

        Raises:
            CorruptUploadError: If the completed bytes fail the checksum.
        """
        ...

    @abstractmethod
    async def read_range(self, path: str, byte_range: ByteRange) -> bytes:
        """Read a byte range of the latest revision of a file.

        A closed range reaching past the end of the file is clipped.

        Raises:
            NoSuchFileOrFolderError: If the file does not exist.
            RemoteRangeNotSatisfiableError: If the range starts at or past
                the end of the file.
        """
        ...

    @abstractmethod
    async def list_folder(self, path: str) -> list[FolderEntry]:
        """List the direct children of a folder.

        Raises:
            NoSuchFileOrFolderError: If the folder does not exist.
        """
        ...

    @abstractmethod
    async def create_folder(self, path: str) -> None:
        """Create a folder and any missing parents.

        Raises:
            AlreadyExistsError: If the folder already exists.
        """
        ...

    @abstractmethod
    async def delete_folder(self, path: str) -> None:
        """Delete a folder and everything below it.

        Raises:
            NoSuchFileOrFolderError: If the folder does not exist.
        """
        ...
