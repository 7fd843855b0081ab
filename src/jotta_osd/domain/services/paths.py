"""Remote paths of buckets, objects and their files.

The layout is persisted state and must not change:

    <root>/<bucket>/<hex(object name)>/meta
    <root>/<bucket>/<hex(object name)>/<chunk index>
"""

from __future__ import annotations

from dataclasses import dataclass

from jotta_osd.domain.value_objects.names import BucketName, ObjectName

META_FILE_NAME = "meta"


@dataclass(frozen=True)
class RemoteLayout:
    """Computes remote paths below a storage root."""

    root: str

    def bucket_path(self, bucket: BucketName) -> str:
        return f"{self.root}/{bucket}"

    def object_path(self, bucket: BucketName, name: ObjectName) -> str:
        return f"{self.root}/{bucket}/{name.to_hex()}"

    def meta_path(self, bucket: BucketName, name: ObjectName) -> str:
        return f"{self.object_path(bucket, name)}/{META_FILE_NAME}"

    def chunk_path(self, bucket: BucketName, name: ObjectName, index: int) -> str:
        return f"{self.object_path(bucket, name)}/{index}"
