"""Domain entities."""

from jotta_osd.domain.entities.bucket import Bucket
from jotta_osd.domain.entities.chunk import Chunk
from jotta_osd.domain.entities.object import (
    DEFAULT_CACHE_CONTROL,
    DEFAULT_CONTENT_TYPE,
    MetaPatch,
    ObjectMeta,
)

__all__ = [
    "Bucket",
    "Chunk",
    "ObjectMeta",
    "MetaPatch",
    "DEFAULT_CONTENT_TYPE",
    "DEFAULT_CACHE_CONTROL",
]
