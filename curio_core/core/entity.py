"""Shared mutation pipeline for every entity kind.

IMPORT CONVENTION:
- Collection exposes one operations object per kind (collection.work, ...)
- NO direct construction needed when using the Collection API

MUTATION PIPELINE (every create/update/remove):
1. Validate input against the kind's schema (fail fast)
2. Resolve foreign keys against the store
3. Read the clock once; resolve the entity id (caller's or generated)
4. Reserve the change log entry id
5. Write the store and append the change log entry
6. Return a copy of the entity

All checks happen before step 5, so a failure leaves the store and the
change log untouched.

ISOLATION:
Entities enter the store as copies and leave it as copies. Payloads are
built from records, which are themselves deep copies.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, replace
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..exceptions import DuplicateIdError, NotFoundError, ValidationError
from ..utils.clone import deep_copy
from .validation import EntitySchema, validate_input

if TYPE_CHECKING:
    from . import Collection
    from .store import EntityTable

logger = logging.getLogger(__name__)

E = TypeVar("E")


class EntityOperations(Generic[E]):
    """Base operations (get/list/remove plus create/update helpers).

    Subclasses set the class attributes below and implement ``add`` (and
    ``update`` where the kind is mutable in place).

    Attributes:
        kind: Human-readable name used in errors ('Work')
        op_prefix: Change log namespace ('work' -> 'work.create')
        payload_key: Payload key holding the entity record ('work')
        id_payload_key: Payload key holding the entity id ('workId')
        table_name: EntityStore attribute holding this kind
        schema: Validation schema
        op_types: Verb overrides, e.g. {"create": "asset.link"}
    """

    kind: str
    op_prefix: str
    payload_key: str
    id_payload_key: str
    table_name: str
    schema: EntitySchema
    op_types: dict[str, str] = {}

    def __init__(self, collection: "Collection"):
        """Initialize operations with a Collection.

        Args:
            collection: Owning Collection (store, change log and providers)
        """
        self._collection = collection

    @property
    def _table(self) -> "EntityTable[E]":
        return getattr(self._collection._store, self.table_name)

    # ==========================================================================
    # READS
    # ==========================================================================

    def get(self, entity_id: str) -> E | None:
        """Get a copy of an entity, or None if it does not exist."""
        entity = self._table.get(entity_id)
        return deep_copy(entity) if entity is not None else None

    def list(self) -> list[E]:
        """List copies of all entities in insertion order."""
        return [deep_copy(entity) for entity in self._table]

    def exists(self, entity_id: str) -> bool:
        return entity_id in self._table

    # ==========================================================================
    # WRITES
    # ==========================================================================

    def remove(self, entity_id: str) -> E:
        """Remove an entity and record ``<kind>.remove``.

        Returns:
            Copy of the removed entity (its last stored state)

        Raises:
            NotFoundError: If entity_id doesn't exist
            ValidationError: If other entities still reference it
        """
        existing = self._require(entity_id)
        self._check_unreferenced(existing)

        timestamp = self._collection._now()
        entry_id = self._collection._next_id()
        record = existing.to_record()

        self._table.delete(entity_id)
        self._collection._record(
            self._op_type("remove"),
            {self.id_payload_key: entity_id, self.payload_key: record},
            entry_id=entry_id,
            timestamp=timestamp,
        )
        return deep_copy(existing)

    def _validate(
        self,
        data: dict[str, Any],
        *,
        partial: bool = False,
        existing: E | None = None,
    ) -> dict[str, Any]:
        try:
            return validate_input(
                self.schema,
                data,
                namespaces=self._collection.namespaces,
                partial=partial,
                context=asdict(existing) if existing is not None else None,
            )
        except ValidationError as e:
            logger.info("Rejected %s input: %s", self.kind, e.message, extra={"field": e.field})
            raise

    def _require(self, entity_id: str) -> E:
        """Return the stored entity (not a copy) or raise NotFoundError."""
        entity = self._table.get(entity_id)
        if entity is None:
            logger.info("%s %s not found", self.kind, entity_id)
            raise NotFoundError(self.kind, entity_id)
        return entity

    def _resolve_target(self, entity_type: str, entity_id: str) -> None:
        """Check that a (entityType, entityId) reference resolves."""
        table = self._collection._store.target_table(entity_type)
        if entity_id not in table:
            logger.info("%s references missing %s %s", self.kind, table.kind, entity_id)
            raise NotFoundError(table.kind, entity_id, field="entityId")

    def _resolve_id(self, given_id: str | None) -> str:
        """Return the caller's id or a generated one, rejecting collisions."""
        entity_id = given_id if given_id is not None else self._collection._next_id()
        if entity_id in self._table:
            logger.info("Duplicate %s id %s", self.kind, entity_id)
            raise DuplicateIdError(self.kind, entity_id)
        return entity_id

    def _check_unreferenced(self, entity: E) -> None:
        """Raise ValidationError if other entities reference ``entity``."""
        references = self._references(entity)
        if references:
            key = self._table._key_of(entity)
            raise ValidationError(
                f"{self.kind} with id {key} is still referenced by {', '.join(references)}.",
                field="id",
                details={"references": references},
            )

    def _references(self, entity: E) -> list[str]:
        """Describe entities referencing ``entity`` (e.g. '2 Holding(s)')."""
        return []

    def _create(self, entity: E, timestamp: int | float) -> E:
        """Store a validated new entity and record ``<kind>.create``."""
        entry_id = self._collection._next_id()
        stored = deep_copy(entity)
        self._table.put(stored)
        self._collection._record(
            self._op_type("create"),
            {self.payload_key: stored.to_record()},
            entry_id=entry_id,
            timestamp=timestamp,
        )
        return deep_copy(stored)

    def _update(self, existing: E, changes: dict[str, Any]) -> E:
        """Replace ``existing`` with validated ``changes`` and record the update.

        ``updated_at`` defaults to the current time, never earlier than
        ``created_at``.
        """
        timestamp = self._collection._now()
        if changes.get("updated_at") is None and hasattr(existing, "updated_at"):
            created_at = getattr(existing, "created_at", None)
            changes["updated_at"] = timestamp if created_at is None else max(timestamp, created_at)

        entry_id = self._collection._next_id()
        before = existing.to_record()
        updated = replace(deep_copy(existing), **changes)
        self._table.put(updated)

        key = self._table._key_of(updated)
        self._collection._record(
            self._op_type("update"),
            {self.id_payload_key: key, self.payload_key: updated.to_record(), "previous": before},
            entry_id=entry_id,
            timestamp=timestamp,
        )
        return deep_copy(updated)

    def _op_type(self, verb: str) -> str:
        return self.op_types.get(verb, f"{self.op_prefix}.{verb}")

    @staticmethod
    def _changes(**kwargs: Any) -> dict[str, Any]:
        """Keep only the keyword arguments the caller actually supplied."""
        return {key: value for key, value in kwargs.items() if value is not None}
