"""Snapshot export/import and change log replay.

SNAPSHOT FORMAT (version 1):

    {
        "format": "curio.snapshot",
        "version": 1,
        "exportedAt": 1700000000000,
        "entities": {
            "works": [...], "holdings": [...], "fieldValues": [...],
            "dimensionValues": [...], "assets": [...], "assetLinks": [...],
            "libraries": [...]
        },
        "changeLog": [...]
    }

Every list holds camelCase records in store order. Import validates every
record with the same schemas and reference rules as live mutations, then
restores the change log verbatim. Import is a restoration, not a mutation:
it appends no change log entries.

REPLAY:
Change log payloads carry full entity snapshots, so the entity state at
the end of a log can be rebuilt from the log alone.
"""

from __future__ import annotations

import logging
from dataclasses import MISSING, fields
from typing import TYPE_CHECKING, Any

from ..exceptions import DuplicateIdError, NamespaceViolationError, NotFoundError, ValidationError
from .changelog import OP_TYPES, ChangeLog
from .types import (
    Asset,
    AssetLink,
    ChangeLogEntry,
    DimensionValue,
    FieldValue,
    Holding,
    Library,
    Work,
    to_wire_name,
)
from .validation import (
    ASSET_LINK_SCHEMA,
    ASSET_SCHEMA,
    CHANGE_LOG_ENTRY_SCHEMA,
    DIMENSION_VALUE_SCHEMA,
    FIELD_VALUE_SCHEMA,
    HOLDING_SCHEMA,
    LIBRARY_SCHEMA,
    WORK_SCHEMA,
    EntitySchema,
    validate_input,
)

if TYPE_CHECKING:
    from . import Collection

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT = "curio.snapshot"
SNAPSHOT_VERSION = 1

# Import order: referenced kinds before the kinds referencing them
IMPORT_ORDER: tuple[tuple[str, type, EntitySchema], ...] = (
    ("dimensionValues", DimensionValue, DIMENSION_VALUE_SCHEMA),
    ("works", Work, WORK_SCHEMA),
    ("holdings", Holding, HOLDING_SCHEMA),
    ("assets", Asset, ASSET_SCHEMA),
    ("assetLinks", AssetLink, ASSET_LINK_SCHEMA),
    ("fieldValues", FieldValue, FIELD_VALUE_SCHEMA),
    ("libraries", Library, LIBRARY_SCHEMA),
)

# op type -> (snapshot collection, payload entity key, payload id key, key attribute, verb)
REPLAY_RULES: dict[str, tuple[str, str, str, str, str]] = {
    "work.create": ("works", "work", "workId", "id", "put"),
    "work.update": ("works", "work", "workId", "id", "put"),
    "work.remove": ("works", "work", "workId", "id", "delete"),
    "holding.create": ("holdings", "holding", "holdingId", "id", "put"),
    "holding.update": ("holdings", "holding", "holdingId", "id", "put"),
    "holding.remove": ("holdings", "holding", "holdingId", "id", "delete"),
    "field.set": ("fieldValues", "fieldValue", "fieldValueId", "id", "put"),
    "field.remove": ("fieldValues", "fieldValue", "fieldValueId", "id", "delete"),
    "dimension.create": ("dimensionValues", "dimensionValue", "dimensionKey", "key", "put"),
    "dimension.update": ("dimensionValues", "dimensionValue", "dimensionKey", "key", "put"),
    "dimension.remove": ("dimensionValues", "dimensionValue", "dimensionKey", "key", "delete"),
    "asset.create": ("assets", "asset", "assetId", "id", "put"),
    "asset.remove": ("assets", "asset", "assetId", "id", "delete"),
    "asset.link": ("assetLinks", "assetLink", "assetLinkId", "id", "put"),
    "asset.unlink": ("assetLinks", "assetLink", "assetLinkId", "id", "delete"),
    "library.create": ("libraries", "library", "libraryId", "id", "put"),
    "library.update": ("libraries", "library", "libraryId", "id", "put"),
    "library.remove": ("libraries", "library", "libraryId", "id", "delete"),
}


# ============================================================================
# EXPORT
# ============================================================================

def export_snapshot(collection: "Collection") -> dict[str, Any]:
    """Export a Collection's entities and change log as plain records.

    Args:
        collection: Collection to export

    Returns:
        Snapshot dict (JSON-serializable, shares nothing with the Collection)
    """
    tables = collection._store.tables()
    snapshot = {
        "format": SNAPSHOT_FORMAT,
        "version": SNAPSHOT_VERSION,
        "exportedAt": collection._now(),
        "entities": {name: [entity.to_record() for entity in table] for name, table in tables.items()},
        "changeLog": collection._change_log.to_records(),
    }
    logger.debug(
        "Exported snapshot with %d change log entries", len(snapshot["changeLog"])
    )
    return snapshot


# ============================================================================
# IMPORT
# ============================================================================

def import_snapshot(snapshot: dict[str, Any], collection: "Collection") -> "Collection":
    """Load a snapshot into an empty Collection.

    Args:
        snapshot: Output of ``export_snapshot`` (or equivalent records)
        collection: Empty Collection to fill

    Returns:
        The filled Collection

    Raises:
        ValidationError: If the format is unsupported or a record is invalid
        NamespaceViolationError: If a record carries a malformed key
        DuplicateIdError: If two records share an id
        NotFoundError: If a record references a missing entity
    """
    if not isinstance(snapshot, dict) or snapshot.get("format") != SNAPSHOT_FORMAT:
        raise ValidationError(
            f"Snapshot invalid for format: expected {SNAPSHOT_FORMAT!r}", field="format"
        )
    if snapshot.get("version") != SNAPSHOT_VERSION:
        raise ValidationError(
            f"Snapshot invalid for version: unsupported version {snapshot.get('version')!r}",
            field="version",
        )
    if len(collection._change_log) or any(len(t) for t in collection._store.tables().values()):
        raise ValueError("Snapshots can only be imported into an empty Collection")

    entities = _expect(snapshot.get("entities") or {}, dict, "entities", "an object")
    tables = collection._store.tables()

    for name, entity_cls, schema in IMPORT_ORDER:
        records = _expect(entities.get(name) or [], list, f"entities.{name}", "a list")
        for index, record in enumerate(records):
            path = f"entities.{name}[{index}]"
            values = _validate_record(schema, entity_cls, record, path, collection)
            entity = entity_cls(**values)
            _check_references(entity, path, collection)

            table = tables[name]
            key = table._key_of(entity)
            if key in table:
                raise DuplicateIdError(schema.entity, key)
            table.put(entity)

    entries = []
    change_log = _expect(snapshot.get("changeLog") or [], list, "changeLog", "a list")
    for index, record in enumerate(change_log):
        path = f"changeLog[{index}]"
        values = _validate_record(CHANGE_LOG_ENTRY_SCHEMA, ChangeLogEntry, record, path, collection)
        if values["op_type"] not in OP_TYPES:
            raise ValidationError(
                f"{path} invalid for opType: unknown op type {values['op_type']!r}",
                field=f"{path}.opType",
            )
        entries.append(ChangeLogEntry(**values))
    collection._change_log = ChangeLog(entries)

    logger.info(
        "Imported snapshot: %s",
        ", ".join(f"{len(table)} {name}" for name, table in tables.items()),
    )
    return collection


def _expect(value: Any, kind: type, path: str, description: str) -> Any:
    if not isinstance(value, kind):
        raise ValidationError(f"{path} invalid: must be {description}", field=path)
    return value


def _validate_record(
    schema: EntitySchema,
    entity_cls: type,
    record: Any,
    path: str,
    collection: "Collection",
) -> dict[str, Any]:
    """Validate one camelCase record; every field without a default is required."""
    if not isinstance(record, dict):
        raise ValidationError(f"{path} invalid: must be an object", field=path)

    by_wire = {rule.wire: rule.name for rule in schema.rules}
    data = {}
    for wire, value in record.items():
        if wire not in by_wire:
            raise ValidationError(f"{path} invalid for {wire}: unexpected field", field=f"{path}.{wire}")
        data[by_wire[wire]] = value

    try:
        values = validate_input(schema, data, namespaces=collection.namespaces)
    except NamespaceViolationError as e:
        raise NamespaceViolationError(f"{path}: {e.message}", key=e.key, field=f"{path}.{e.field}") from e
    except ValidationError as e:
        raise ValidationError(f"{path}: {e.message}", field=f"{path}.{e.field}") from e

    for f in fields(entity_cls):
        if f.default is not MISSING:
            continue
        missing = f.name not in data if schema.rule(f.name).nullable else values.get(f.name) is None
        if missing:
            wire = to_wire_name(f.name)
            raise ValidationError(f"{path} invalid for {wire}: is required", field=f"{path}.{wire}")
    return {f.name: values.get(f.name) for f in fields(entity_cls)}


def _check_references(entity: Any, path: str, collection: "Collection") -> None:
    store = collection._store
    if isinstance(entity, Holding) and entity.work_id not in store.works:
        raise NotFoundError("Work", entity.work_id, field=f"{path}.workId")
    if isinstance(entity, AssetLink) and entity.asset_id not in store.assets:
        raise NotFoundError("Asset", entity.asset_id, field=f"{path}.assetId")
    if isinstance(entity, (AssetLink, FieldValue)):
        table = store.target_table(entity.entity_type)
        if entity.entity_id not in table:
            raise NotFoundError(table.kind, entity.entity_id, field=f"{path}.entityId")


# ============================================================================
# REPLAY
# ============================================================================

def replay_change_log(entries: list[ChangeLogEntry | dict]) -> dict[str, list[dict[str, Any]]]:
    """Rebuild entity records from a change log.

    Args:
        entries: ChangeLogEntry objects or their records, in log order

    Returns:
        Snapshot-style ``entities`` mapping (collection name -> records)

    Raises:
        ValidationError: If an entry has an unknown op type or a payload
            without the expected keys
    """
    state: dict[str, dict[str, dict[str, Any]]] = {name: {} for name, _, _ in IMPORT_ORDER}

    for index, entry in enumerate(entries):
        path = f"changeLog[{index}]"
        record = entry.to_record() if isinstance(entry, ChangeLogEntry) else entry
        _expect(record, dict, path, "an object")
        op_type = record.get("opType")
        if op_type not in REPLAY_RULES:
            raise ValidationError(
                f"changeLog[{index}] invalid for opType: unknown op type {op_type!r}",
                field=f"changeLog[{index}].opType",
            )
        name, payload_key, id_key, key_attr, verb = REPLAY_RULES[op_type]
        payload = _expect(record.get("payloadJson") or {}, dict, f"{path}.payloadJson", "an object")

        if verb == "put":
            entity_record = payload.get(payload_key)
            if not isinstance(entity_record, dict) or key_attr not in entity_record:
                raise ValidationError(
                    f"changeLog[{index}] invalid for payloadJson: missing {payload_key}",
                    field=f"changeLog[{index}].payloadJson",
                )
            state[name][entity_record[key_attr]] = entity_record
        else:
            key = payload.get(id_key)
            if key is None:
                raise ValidationError(
                    f"changeLog[{index}] invalid for payloadJson: missing {id_key}",
                    field=f"changeLog[{index}].payloadJson",
                )
            state[name].pop(key, None)

    return {name: list(records.values()) for name, records in state.items()}


def restore_from_change_log(
    entries: list[ChangeLogEntry | dict],
    collection: "Collection",
) -> "Collection":
    """Fill an empty Collection with the replayed state and the log itself."""
    records = [entry.to_record() if isinstance(entry, ChangeLogEntry) else entry for entry in entries]
    snapshot = {
        "format": SNAPSHOT_FORMAT,
        "version": SNAPSHOT_VERSION,
        "entities": replay_change_log(records),
        "changeLog": records,
    }
    return import_snapshot(snapshot, collection)
