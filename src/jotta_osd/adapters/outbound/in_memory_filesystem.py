"""In-memory RemoteFilesystem adapter.

Mimics the remote cloud filesystem closely enough to run the object store
without network access:

- Files keep every revision; reads serve the latest one.
- A revision only becomes visible once all allocated bytes have arrived
  and match the allocated MD5 checksum.
- Uploads must arrive in order; a short upload reports ``UploadIncomplete``.
- Parent folders are created implicitly when a file is committed.

Usage:
    fs = InMemoryFilesystem()
    storage = ObjectStorage(fs, root="jotta-osd")
"""

from __future__ import annotations

import asyncio
import hashlib
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Optional

from jotta_osd.domain.value_objects.byte_range import ByteRange, ClosedByteRange
from jotta_osd.ports.outbound.remote_filesystem import (
    AlreadyExistsError,
    Allocation,
    AllocationRequest,
    ConflictHandler,
    CorruptUploadError,
    FolderEntry,
    NoSuchFileOrFolderError,
    RemoteFilesystemError,
    RemoteRangeNotSatisfiableError,
    UploadComplete,
    UploadIncomplete,
    UploadResult,
)


@dataclass
class _UploadSession:
    path: str
    size: int
    md5: str
    buffer: bytearray = field(default_factory=bytearray)


def _parents(path: str) -> list[str]:
    parts = path.split("/")
    return ["/".join(parts[:i]) for i in range(1, len(parts))]


class InMemoryFilesystem:
    """RemoteFilesystem kept in process memory.

    Args:
        latency: Optional function of the remote path returning a delay in
            seconds applied before each read and upload. Useful to force
            out-of-order completions in tests.
    """

    def __init__(self, latency: Optional[Callable[[str], float]] = None) -> None:
        self._files: dict[str, list[bytes]] = {}
        self._folders: set[str] = set()
        self._sessions: dict[str, _UploadSession] = {}
        self._latency = latency
        self.calls: Counter[str] = Counter()

    async def _delay(self, path: str) -> None:
        if self._latency is not None:
            await asyncio.sleep(self._latency(path))

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    async def allocate(self, request: AllocationRequest) -> Allocation:
        self.calls["allocate"] += 1

        if request.path in self._folders:
            raise AlreadyExistsError(f"{request.path} is a folder")
        if (
            request.path in self._files
            and request.conflict_handler is ConflictHandler.REJECT_CONFLICTS
        ):
            raise AlreadyExistsError(f"{request.path} already exists")

        upload_url = f"memory://upload/{uuid.uuid4().hex}"
        self._sessions[upload_url] = _UploadSession(
            path=request.path,
            size=request.size,
            md5=request.md5,
        )
        return Allocation(upload_url=upload_url, resume_offset=0)

    async def upload_range(
        self,
        upload_url: str,
        data: bytes,
        byte_range: ClosedByteRange,
    ) -> UploadResult:
        self.calls["upload_range"] += 1

        session = self._sessions.get(upload_url)
        if session is None:
            raise RemoteFilesystemError(f"unknown upload url {upload_url}")
        if len(data) != len(byte_range):
            raise RemoteFilesystemError(
                f"body is {len(data)} bytes but range {byte_range.to_http_range()} "
                f"is {len(byte_range)} bytes"
            )
        if byte_range.start != len(session.buffer):
            raise RemoteFilesystemError(
                f"upload must resume at {len(session.buffer)}, got {byte_range.start}"
            )
        if byte_range.stop > session.size:
            raise RemoteFilesystemError(
                f"range {byte_range.to_http_range()} exceeds allocated {session.size} bytes"
            )

        await self._delay(session.path)
        session.buffer += data

        if len(session.buffer) < session.size:
            return UploadIncomplete(ClosedByteRange(0, len(session.buffer)))

        del self._sessions[upload_url]
        contents = bytes(session.buffer)
        if hashlib.md5(contents).hexdigest() != session.md5:
            raise CorruptUploadError(f"checksum mismatch for {session.path}")

        self._commit(session.path, contents)
        return UploadComplete(md5=session.md5, size=session.size)

    def _commit(self, path: str, contents: bytes) -> None:
        self._folders.update(_parents(path))
        self._files.setdefault(path, []).append(contents)

    async def read_range(self, path: str, byte_range: ByteRange) -> bytes:
        self.calls["read_range"] += 1

        revisions = self._files.get(path)
        if not revisions:
            raise NoSuchFileOrFolderError(path)

        await self._delay(path)
        data = revisions[-1]

        if byte_range.is_empty:
            return b""
        if byte_range.start >= len(data) and not (byte_range.start == 0 and not data):
            raise RemoteRangeNotSatisfiableError(
                f"{byte_range.to_http()} is outside {path} ({len(data)} bytes)"
            )

        stop = None if byte_range.end is None else byte_range.end + 1
        return data[byte_range.start:stop]

    # -------------------------------------------------------------------------
    # Folders
    # -------------------------------------------------------------------------

    async def list_folder(self, path: str) -> list[FolderEntry]:
        self.calls["list_folder"] += 1

        if path not in self._folders:
            raise NoSuchFileOrFolderError(path)

        prefix = f"{path}/"
        children: dict[str, bool] = {}
        for folder in self._folders:
            if folder.startswith(prefix) and "/" not in folder[len(prefix):]:
                children[folder[len(prefix):]] = True
        for file_path in self._files:
            if file_path.startswith(prefix) and "/" not in file_path[len(prefix):]:
                children.setdefault(file_path[len(prefix):], False)

        return [FolderEntry(name=n, is_folder=f) for n, f in sorted(children.items())]

    async def create_folder(self, path: str) -> None:
        self.calls["create_folder"] += 1

        if path in self._folders or path in self._files:
            raise AlreadyExistsError(path)
        self._folders.update(_parents(path))
        self._folders.add(path)

    async def delete_folder(self, path: str) -> None:
        self.calls["delete_folder"] += 1

        if path not in self._folders:
            raise NoSuchFileOrFolderError(path)

        prefix = f"{path}/"
        self._folders = {f for f in self._folders if f != path and not f.startswith(prefix)}
        self._files = {p: r for p, r in self._files.items() if not p.startswith(prefix)}
