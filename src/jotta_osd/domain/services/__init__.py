"""Domain services: chunk addressing, chunk assembly and object transfers."""

from jotta_osd.domain.services.chunk_addressing import (
    CHUNK_SIZE,
    MAX_CHUNK_INDEX,
    chunk_index_and_offset,
    chunk_start,
    split_range_into_chunks,
)
from jotta_osd.domain.services.chunk_builder import ChunkBuilder
from jotta_osd.domain.services.chunk_uploader import ChunkUploader
from jotta_osd.domain.services.metadata_store import ObjectMetadataStore
from jotta_osd.domain.services.object_reader import ObjectReader
from jotta_osd.domain.services.object_writer import ObjectWriter, WriteResult
from jotta_osd.domain.services.paths import RemoteLayout

__all__ = [
    "CHUNK_SIZE",
    "MAX_CHUNK_INDEX",
    "chunk_index_and_offset",
    "chunk_start",
    "split_range_into_chunks",
    "ChunkBuilder",
    "ChunkUploader",
    "ObjectMetadataStore",
    "ObjectReader",
    "ObjectWriter",
    "WriteResult",
    "RemoteLayout",
]
