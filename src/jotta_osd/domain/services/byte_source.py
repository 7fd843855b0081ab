"""Pull-based byte sources for object writes.

Writes consume their input incrementally, one chunk at a time, without
knowing its total length up front. Anything exposing
``async read(n) -> bytes`` (returning ``b""`` at end of stream) is a byte
source; ``as_byte_source`` adapts the other common shapes.
"""

from __future__ import annotations

import inspect
from typing import IO, AsyncIterable, Protocol, Union, runtime_checkable


@runtime_checkable
class ByteSource(Protocol):
    """An asynchronous, forward-only stream of bytes."""

    async def read(self, n: int = -1) -> bytes:
        """Read at most ``n`` bytes. ``b""`` means the stream is exhausted."""
        ...


ByteSourceLike = Union[ByteSource, bytes, bytearray, memoryview, IO[bytes], AsyncIterable[bytes]]


class BytesSource:
    """Byte source over an in-memory buffer."""

    def __init__(self, data: Union[bytes, bytearray, memoryview]) -> None:
        self._view = memoryview(data).cast("B")
        self._pos = 0

    async def read(self, n: int = -1) -> bytes:
        if n < 0:
            n = len(self._view) - self._pos
        chunk = self._view[self._pos:self._pos + n]
        self._pos += len(chunk)
        return chunk.tobytes()


class FileSource:
    """Byte source over a synchronous binary file object.

    Reads block the event loop; intended for local files and buffers.
    """

    def __init__(self, fileobj: IO[bytes]) -> None:
        self._file = fileobj

    async def read(self, n: int = -1) -> bytes:
        return self._file.read(n) or b""


class AsyncIterableSource:
    """Byte source over an async iterable of arbitrarily sized blocks."""

    def __init__(self, blocks: AsyncIterable[bytes]) -> None:
        self._iter = blocks.__aiter__()
        self._pending = b""
        self._exhausted = False

    async def read(self, n: int = -1) -> bytes:
        if n < 0:
            parts = [self._pending]
            async for block in self._iter:
                parts.append(block)
            self._pending = b""
            self._exhausted = True
            return b"".join(parts)

        while not self._pending and not self._exhausted:
            try:
                self._pending = bytes(await self._iter.__anext__())
            except StopAsyncIteration:
                self._exhausted = True

        chunk, self._pending = self._pending[:n], self._pending[n:]
        return chunk


def as_byte_source(source: ByteSourceLike) -> ByteSource:
    """Adapt bytes, file objects and async iterables to ``ByteSource``.

    Raises:
        TypeError: If ``source`` has no supported shape.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return BytesSource(source)

    read = getattr(source, "read", None)
    if read is not None:
        if inspect.iscoroutinefunction(read):
            return source  # type: ignore[return-value]
        return FileSource(source)  # type: ignore[arg-type]

    if hasattr(source, "__aiter__"):
        return AsyncIterableSource(source)  # type: ignore[arg-type]

    raise TypeError(f"unsupported byte source: {type(source).__name__}")


async def read_up_to(source: ByteSource, n: int) -> bytes:
    """Read until ``n`` bytes are collected or the source is exhausted.

    A single ``read`` may legally return fewer bytes than asked for, so
    this keeps pulling.
    """
    parts: list[bytes] = []
    remaining = n
    while remaining > 0:
        block = await source.read(remaining)
        if not block:
            break
        parts.append(block)
        remaining -= len(block)
    return b"".join(parts)
