"""Validated bucket and object names.

Bucket names are used verbatim as remote folder names. Object names can
contain any printable text, so they are hex-encoded before they touch the
remote filesystem.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9\-]{1,61}[a-z0-9]$")

MAX_OBJECT_NAME_LENGTH = 1024


class InvalidNameError(ValueError):
    """Raised when a bucket or object name fails validation."""

    pass


@dataclass(frozen=True, slots=True, order=True)
class BucketName:
    """A bucket name.

    Between 3 and 63 characters long, lowercase alphanumerics and dashes
    only, not starting or ending with a dash.

    Example:
        >>> BucketName("my-bucket").value
        'my-bucket'
    """

    value: str

    def __post_init__(self) -> None:
        if not _BUCKET_RE.match(self.value):
            raise InvalidNameError(
                "bucket names must be between 3 and 63 characters long, "
                "only contain lowercase alphanumerics and dashes, and must "
                f"not begin or end with a dash (got {self.value!r})"
            )

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True, order=True)
class ObjectName:
    """A human-readable object name.

    Example:
        >>> ObjectName("cat.jpeg").to_hex()
        '6361742e6a706567'
    """

    value: str

    def __post_init__(self) -> None:
        if not 1 <= len(self.value) <= MAX_OBJECT_NAME_LENGTH:
            raise InvalidNameError(
                f"object names must be between 1 and {MAX_OBJECT_NAME_LENGTH} "
                f"characters long (got {len(self.value)})"
            )
        for c in self.value:
            if ord(c) < 0x20 or ord(c) == 0x7F:
                raise InvalidNameError(f"invalid character in object name: {c!r}")
        try:
            self.value.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidNameError(f"object name is not valid unicode: {self.value!r}") from e

    def __str__(self) -> str:
        return self.value

    def to_hex(self) -> str:
        """Remote folder name for this object."""
        return self.value.encode("utf-8").hex()

    @classmethod
    def from_hex(cls, hex_name: str) -> ObjectName:
        """Decode a remote folder name back into an object name.

        Raises:
            InvalidNameError: If ``hex_name`` is not hex-encoded UTF-8.
        """
        try:
            text = bytes.fromhex(hex_name).decode("utf-8")
        except ValueError as e:
            # UnicodeDecodeError is a ValueError too
            raise InvalidNameError(f"invalid hex object name {hex_name!r}: {e}") from e
        return cls(text)
