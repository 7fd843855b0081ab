"""Outbound ports - interfaces for external dependencies.

Outbound ports define contracts for external systems that the object
store depends on, namely the remote cloud filesystem.
"""

from jotta_osd.ports.outbound.remote_filesystem import (
    AlreadyExistsError,
    Allocation,
    AllocationRequest,
    ConflictHandler,
    CorruptUploadError,
    FolderEntry,
    NoSuchFileOrFolderError,
    RemoteFilesystem,
    RemoteFilesystemError,
    RemoteRangeNotSatisfiableError,
    UploadComplete,
    UploadIncomplete,
    UploadResult,
)

__all__ = [
    "RemoteFilesystem",
    "Allocation",
    "AllocationRequest",
    "ConflictHandler",
    "FolderEntry",
    "UploadComplete",
    "UploadIncomplete",
    "UploadResult",
    "RemoteFilesystemError",
    "NoSuchFileOrFolderError",
    "AlreadyExistsError",
    "RemoteRangeNotSatisfiableError",
    "CorruptUploadError",
]
