"""Value objects for the object storage layer."""

from jotta_osd.domain.value_objects.byte_range import (
    ByteRange,
    ClosedByteRange,
    InvalidRangeError,
    OpenByteRange,
)
from jotta_osd.domain.value_objects.names import (
    BucketName,
    InvalidNameError,
    ObjectName,
)

__all__ = [
    "ByteRange",
    "ClosedByteRange",
    "OpenByteRange",
    "InvalidRangeError",
    "BucketName",
    "ObjectName",
    "InvalidNameError",
]
