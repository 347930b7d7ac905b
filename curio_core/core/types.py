"""Domain types for the Curio kernel.

Every entity is a plain dataclass with JSON-serializable fields. Entities
never hold references to each other; relations are id fields.

Python attributes are snake_case. ``to_record()`` produces the camelCase
wire record used by changelog payloads and snapshot export, and
``from_record()`` reads one back.
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, fields
from typing import Any, Literal

from ..utils.clone import deep_copy

EntityType = Literal["work", "holding"]

DEFAULT_OWNER_KEY = "owner.default"
DEFAULT_LOCATION_KEY = "location.default"


def to_wire_name(name: str) -> str:
    """Convert a snake_case attribute name to its camelCase wire name.

    Examples:
        >>> to_wire_name("display_title")
        'displayTitle'
    """
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class RecordMixin:
    """Conversion between dataclass entities and camelCase wire records."""

    def to_record(self) -> dict[str, Any]:
        """Return a deep-copied camelCase record.

        Optional fields (default None) are omitted while unset.
        """
        record = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None and f.default is None:
                continue
            record[to_wire_name(f.name)] = deep_copy(value)
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]):
        """Build an entity from a camelCase record.

        Raises:
            KeyError: If a required field is missing from the record
        """
        kwargs = {}
        for f in fields(cls):
            wire = to_wire_name(f.name)
            if wire in record:
                kwargs[f.name] = deep_copy(record[wire])
            elif f.default is MISSING:
                raise KeyError(wire)
        return cls(**kwargs)


@dataclass
class Work(RecordMixin):
    """A conceptual item (a game title, a hardware model)."""

    id: str
    display_title: str
    media_type_key: str
    created_at: int
    updated_at: int


@dataclass
class Holding(RecordMixin):
    """A concrete instance of, or access right to, a Work."""

    id: str
    work_id: str
    owner_key: str
    location_key: str
    created_at: int
    updated_at: int


@dataclass
class FieldValue(RecordMixin):
    """An extension-defined attribute attached to a Work or Holding."""

    id: str
    entity_type: EntityType
    entity_id: str
    field_key: str
    value_json: Any
    updated_at: int


@dataclass
class DimensionValue(RecordMixin):
    """A classification key (owner, location, ...). ``key`` is its identity."""

    key: str
    label: str
    dimension_type: str
    created_at: int
    updated_at: int
    meta_json: Any = None


@dataclass
class Asset(RecordMixin):
    """Metadata for a stored file. The kernel never holds the bytes."""

    id: str
    asset_type: str
    mime_type: str
    byte_size: int
    created_at: int
    content_hash: str | None = None


@dataclass
class AssetLink(RecordMixin):
    """Role-tagged association of an Asset with a Work or Holding."""

    id: str
    asset_id: str
    entity_type: EntityType
    entity_id: str
    role: str
    created_at: int


@dataclass
class Library(RecordMixin):
    """A saved smart-list/filter definition."""

    id: str
    label: str
    definition_json: Any
    created_at: int
    updated_at: int


@dataclass
class ChangeLogEntry(RecordMixin):
    """Record of one accepted mutation.

    ``device_id`` and ``seq`` are reserved for multi-device ordering and
    are never populated by the kernel.
    """

    id: str
    timestamp: int
    op_type: str
    payload_json: Any
    device_id: str | None = None
    seq: int | None = None
