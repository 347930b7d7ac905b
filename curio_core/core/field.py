"""FieldValue operations.

Field values carry extension-defined attributes (``ext.<extId>.<name>``)
for a Work or Holding. One logical value per (entityType, entityId,
fieldKey) is the intended usage: ``set`` upserts on that triple, while
``add`` always creates a new value with its own id. Both record
``field.set``.
"""

from __future__ import annotations

from typing import Any

from .entity import EntityOperations
from .types import EntityType, FieldValue
from .validation import FIELD_VALUE_SCHEMA


class FieldValueOperations(EntityOperations[FieldValue]):
    """Attach, change, remove and read extension field values."""

    kind = "FieldValue"
    op_prefix = "field"
    payload_key = "fieldValue"
    id_payload_key = "fieldValueId"
    table_name = "field_values"
    schema = FIELD_VALUE_SCHEMA
    op_types = {"create": "field.set", "update": "field.set"}

    def add(
        self,
        entity_type: EntityType,
        entity_id: str,
        field_key: str,
        value_json: Any,
        *,
        id: str | None = None,
        updated_at: int | None = None,
    ) -> FieldValue:
        """Attach a new field value and record ``field.set``.

        Args:
            entity_type: 'work' or 'holding'
            entity_id: Id of the target Work/Holding
            field_key: Namespaced key, e.g. 'ext.games.releaseYear'
            value_json: Any JSON-serializable value (None is JSON null)
            id: Explicit id; generated if omitted
            updated_at: Explicit time; defaults to now

        Raises:
            ValidationError: If a field is invalid
            NamespaceViolationError: If field_key is not ext.<extId>.<name>
            NotFoundError: If the target entity doesn't exist
            DuplicateIdError: If the id already exists
        """
        values = self._validate({
            "id": id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "field_key": field_key,
            "value_json": value_json,
            "updated_at": updated_at,
        })
        self._resolve_target(values["entity_type"], values["entity_id"])

        timestamp = self._collection._now()
        field_value = FieldValue(
            id=self._resolve_id(values["id"]),
            entity_type=values["entity_type"],
            entity_id=values["entity_id"],
            field_key=values["field_key"],
            value_json=values["value_json"],
            updated_at=values["updated_at"] if values["updated_at"] is not None else timestamp,
        )
        return self._create(field_value, timestamp)

    def set(
        self,
        entity_type: EntityType,
        entity_id: str,
        field_key: str,
        value_json: Any,
        *,
        updated_at: int | None = None,
    ) -> FieldValue:
        """Upsert the value for (entity_type, entity_id, field_key).

        Updates the first matching value in place (keeping its id) or adds
        a new one. Either way one ``field.set`` entry is recorded.
        """
        values = self._validate({
            "entity_type": entity_type,
            "entity_id": entity_id,
            "field_key": field_key,
            "value_json": value_json,
            "updated_at": updated_at,
        })
        self._resolve_target(values["entity_type"], values["entity_id"])

        existing = self._find_stored(values["entity_type"], values["entity_id"], values["field_key"])
        if existing is None:
            return self.add(
                values["entity_type"],
                values["entity_id"],
                values["field_key"],
                values["value_json"],
                updated_at=values["updated_at"],
            )

        changes = {"value_json": values["value_json"]}
        if values["updated_at"] is not None:
            changes["updated_at"] = values["updated_at"]
        return self._update(existing, changes)

    def find(self, entity_type: EntityType, entity_id: str, field_key: str) -> FieldValue | None:
        """Get a copy of the value for a (target, field key) pair, if any."""
        existing = self._find_stored(entity_type, entity_id, field_key)
        return self.get(existing.id) if existing is not None else None

    def list(
        self,
        entity_type: EntityType | None = None,
        entity_id: str | None = None,
    ) -> list[FieldValue]:
        """List copies of field values, optionally for one target entity."""
        return [
            value for value in super().list()
            if (entity_type is None or value.entity_type == entity_type)
            and (entity_id is None or value.entity_id == entity_id)
        ]

    def _find_stored(self, entity_type: str, entity_id: str, field_key: str) -> FieldValue | None:
        matches = self._table.where(
            lambda v: v.entity_type == entity_type
            and v.entity_id == entity_id
            and v.field_key == field_key
        )
        return matches[0] if matches else None
