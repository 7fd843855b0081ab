"""Bucket entity for object storage."""

from __future__ import annotations

from dataclasses import dataclass

from jotta_osd.domain.value_objects.names import BucketName


@dataclass(frozen=True)
class Bucket:
    """A bucket (namespace) for objects.

    A bucket is a remote folder directly under the configured root. Each
    of its sub-folders is one object.
    """

    name: BucketName
