"""Outbound adapters - implementations of outbound ports."""

from jotta_osd.adapters.outbound.in_memory_filesystem import InMemoryFilesystem

__all__ = [
    "InMemoryFilesystem",
]
