"""Application layer for jotta-osd.

Exports:
    - ObjectStorage: Bucket and object operations over a remote filesystem
    - bound_range: Clip a requested byte range to an object's size
"""

from jotta_osd.application.object_service import ObjectStorage, bound_range

__all__ = [
    "ObjectStorage",
    "bound_range",
]
