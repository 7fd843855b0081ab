"""Mapping between logical object offsets and chunk-local positions.

Objects are split into chunks of exactly ``CHUNK_SIZE`` bytes (the last
one may be shorter). The remote store requires an MD5 checksum at
allocation time, so every partial write to a chunk means re-uploading the
whole chunk; larger chunks make random writes more expensive.

References:
    - Remote layout: ``<root>/<bucket>/<hex(name)>/<chunk_index>``
"""

from __future__ import annotations

from typing import Iterator

from jotta_osd.domain.value_objects.byte_range import (
    ByteRange,
    ClosedByteRange,
    InvalidRangeError,
)
from jotta_osd.ports.inbound import ObjectTooLargeError

CHUNK_SIZE = 1 << 20
"""Chunk size in bytes. System-wide; changing it breaks existing objects."""

MAX_CHUNK_INDEX = (1 << 32) - 1
"""Chunk numbers are 32-bit, capping objects at 4 PiB."""


def chunk_index_and_offset(offset: int) -> tuple[int, int]:
    """Locate a logical byte.

    Args:
        offset: Byte offset within the object.

    Returns:
        ``(chunk_index, offset_in_chunk)``.

    Raises:
        InvalidRangeError: If ``offset`` is negative.
        ObjectTooLargeError: If the chunk index exceeds ``MAX_CHUNK_INDEX``.

    Example:
        >>> chunk_index_and_offset(69_420_000)
        (66, 213984)
    """
    if offset < 0:
        raise InvalidRangeError(f"offset must be non-negative, got {offset}")

    index, within = divmod(offset, CHUNK_SIZE)
    if index > MAX_CHUNK_INDEX:
        raise ObjectTooLargeError(
            f"offset {offset} maps to chunk {index}, beyond the maximum of {MAX_CHUNK_INDEX}"
        )
    return index, within


def chunk_start(index: int) -> int:
    """First logical byte of chunk ``index``."""
    return index * CHUNK_SIZE


def split_range_into_chunks(byte_range: ByteRange) -> Iterator[tuple[int, ClosedByteRange]]:
    """Split a logical range into chunk-local sub-ranges.

    Sub-ranges come in ascending chunk order, each within
    ``[0, CHUNK_SIZE)``, and together cover ``byte_range`` exactly. The
    iterator is infinite for an ``OpenByteRange``; callers must bound it.

    Example:
        >>> list(split_range_into_chunks(ClosedByteRange.from_half_open(40, 2_500_000)))[-1]
        (2, ClosedByteRange(start=0, length=402848))
    """
    pos = byte_range.start
    stop = None if byte_range.end is None else byte_range.end + 1

    while stop is None or pos < stop:
        index, within = chunk_index_and_offset(pos)
        length = CHUNK_SIZE - within
        if stop is not None:
            length = min(length, stop - pos)

        yield index, ClosedByteRange(within, length)

        pos += length
