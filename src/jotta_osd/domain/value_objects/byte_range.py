"""Byte ranges used for both object-level requests and chunk-local reads.

Two shapes exist:

- ``OpenByteRange``: everything from ``start`` onward.
- ``ClosedByteRange``: ``length`` bytes from ``start``; ``end`` is the last
  byte, inclusive, matching HTTP ``Range`` semantics.

A zero-length closed range is valid and describes a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


class InvalidRangeError(ValueError):
    """Raised when a byte range is backwards or negative."""

    pass


@dataclass(frozen=True, slots=True)
class OpenByteRange:
    """A half-open byte range with no end.

    Example:
        >>> OpenByteRange(100).to_http_range()
        '100-'
    """

    start: int = 0

    def __post_init__(self) -> None:
        if self.start < 0:
            raise InvalidRangeError(f"start must be non-negative, got {self.start}")

    @classmethod
    def full(cls) -> OpenByteRange:
        """Range covering a whole file."""
        return cls(0)

    @property
    def end(self) -> Optional[int]:
        return None

    @property
    def is_empty(self) -> bool:
        return False

    def to_http_range(self) -> str:
        """Format a single segment of an HTTP ``Range`` header."""
        return f"{self.start}-"

    def to_http(self) -> str:
        """Format a complete HTTP ``Range`` header value."""
        return f"bytes={self.to_http_range()}"


@dataclass(frozen=True, slots=True)
class ClosedByteRange:
    """A byte range of known length.

    Attributes:
        start: First byte of the range.
        length: Number of bytes covered. May be zero.

    Example:
        >>> r = ClosedByteRange.from_bounds(3, 8)
        >>> (r.start, r.end, len(r))
        (3, 8, 6)
    """

    start: int
    length: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise InvalidRangeError(f"start must be non-negative, got {self.start}")
        if self.length < 0:
            raise InvalidRangeError(f"length must be non-negative, got {self.length}")

    @classmethod
    def from_bounds(cls, first: int, last: int) -> ClosedByteRange:
        """Build a range from its first and last byte, both inclusive.

        Raises:
            InvalidRangeError: If ``first > last``.
        """
        if first > last:
            raise InvalidRangeError(f"range is backwards: {first} > {last}")
        return cls(first, last - first + 1)

    @classmethod
    def from_half_open(cls, start: int, stop: int) -> ClosedByteRange:
        """Build the range ``[start, stop)``.

        ``start == stop`` gives an empty range.
        """
        if start > stop:
            raise InvalidRangeError(f"range is backwards: {start} > {stop}")
        return cls(start, stop - start)

    @property
    def end(self) -> int:
        """Last byte of the range (inclusive).

        Equals ``start - 1`` for an empty range.
        """
        return self.start + self.length - 1

    @property
    def stop(self) -> int:
        """One past the last byte."""
        return self.start + self.length

    def __len__(self) -> int:
        return self.length

    @property
    def is_empty(self) -> bool:
        return self.length == 0

    def to_http_range(self) -> str:
        return f"{self.start}-{self.end}"

    def to_http(self) -> str:
        return f"bytes={self.to_http_range()}"


ByteRange = Union[OpenByteRange, ClosedByteRange]
