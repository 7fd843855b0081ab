"""Chunk entity for object storage."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass


@dataclass(frozen=True)
class Chunk:
    """A complete chunk buffer, ready to replace the remote chunk file.

    Attributes:
        index: Chunk number within the object.
        data: Full chunk contents, head and tail included.
        written: Number of bytes in ``data`` that came from the caller's
            byte source; the rest was carried over from the remote chunk.
    """

    index: int
    data: bytes
    written: int

    @property
    def size(self) -> int:
        return len(self.data)

    def calculate_checksum(self) -> str:
        """Calculate the MD5 checksum the remote store expects.

        Returns:
            Hex string of checksum.
        """
        return hashlib.md5(self.data).hexdigest()
