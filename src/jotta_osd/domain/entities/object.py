"""Object metadata entities.

Every object is stored remotely as a folder holding a ``meta`` record and
one or more numbered chunk files. ``ObjectMeta`` is the content of that
record and the only authoritative source for the object's size.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_CACHE_CONTROL = "public, max-age=3600"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ObjectMeta:
    """Metadata associated with each object."""

    size: int = 0
    created: datetime = field(default_factory=utc_now)
    updated: datetime = field(default_factory=utc_now)
    content_type: str = DEFAULT_CONTENT_TYPE
    cache_control: str = DEFAULT_CACHE_CONTROL

    def apply(self, patch: MetaPatch) -> ObjectMeta:
        """Return a copy with the patched fields replaced.

        ``updated`` is not touched; callers decide whether a write happened.
        """
        changes: dict[str, Any] = {}
        if patch.content_type is not None:
            changes["content_type"] = patch.content_type
        if patch.cache_control is not None:
            changes["cache_control"] = patch.cache_control
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, timestamps as RFC 3339 strings."""
        return {
            "size": self.size,
            "created": self.created.isoformat(),
            "updated": self.updated.isoformat(),
            "content_type": self.content_type,
            "cache_control": self.cache_control,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ObjectMeta:
        """Parse the output of ``to_dict``.

        Raises:
            ValueError: If a field is missing or has the wrong type.
        """
        try:
            size = data["size"]
            created = datetime.fromisoformat(data["created"])
            updated = datetime.fromisoformat(data["updated"])
            content_type = data["content_type"]
            cache_control = data["cache_control"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed object metadata: {e!r}") from e

        if not isinstance(size, int) or isinstance(size, bool) or size < 0:
            raise ValueError(f"invalid object size: {size!r}")
        if not isinstance(content_type, str) or not isinstance(cache_control, str):
            raise ValueError("content_type and cache_control must be strings")

        return cls(
            size=size,
            created=created,
            updated=updated,
            content_type=content_type,
            cache_control=cache_control,
        )


@dataclass(frozen=True)
class MetaPatch:
    """A metadata patch.

    ``None`` leaves a field unchanged. When parsed from a mapping, an
    explicit ``null`` resets the field to its default, so clients can
    clear a value they set earlier.
    """

    content_type: Optional[str] = None
    cache_control: Optional[str] = None

    _DEFAULTS = {
        "content_type": DEFAULT_CONTENT_TYPE,
        "cache_control": DEFAULT_CACHE_CONTROL,
    }

    @property
    def is_empty(self) -> bool:
        return self.content_type is None and self.cache_control is None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MetaPatch:
        """Parse a patch document.

        Raises:
            ValueError: On unknown or read-only keys, or non-string values.
        """
        unknown = set(data) - set(cls._DEFAULTS)
        if unknown:
            # size and timestamps are read-only
            raise ValueError(f"unknown or read-only metadata fields: {sorted(unknown)}")

        values: dict[str, str] = {}
        for key, value in data.items():
            if value is None:
                value = cls._DEFAULTS[key]
            elif not isinstance(value, str):
                raise ValueError(f"{key} must be a string, got {type(value).__name__}")
            values[key] = value
        return cls(**values)
