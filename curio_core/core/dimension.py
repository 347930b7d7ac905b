"""DimensionValue operations.

Dimension values are classification keys such as ``owner.default`` or
``location.games.shelf``. The key is the identity: there is no generated
id, and a second value with the same key is a DuplicateIdError.
"""

from __future__ import annotations

from typing import Any

from .entity import EntityOperations
from .types import DimensionValue
from .validation import DIMENSION_VALUE_SCHEMA


class DimensionValueOperations(EntityOperations[DimensionValue]):
    """Create, update, remove and read dimension values."""

    kind = "DimensionValue"
    op_prefix = "dimension"
    payload_key = "dimensionValue"
    id_payload_key = "dimensionKey"
    table_name = "dimension_values"
    schema = DIMENSION_VALUE_SCHEMA

    def add(
        self,
        key: str,
        label: str,
        dimension_type: str,
        *,
        meta_json: Any = None,
        created_at: int | None = None,
        updated_at: int | None = None,
    ) -> DimensionValue:
        """Create a dimension value and record ``dimension.create``.

        Args:
            key: '<dimensionType>.<name>' or '<dimensionType>.<extId>.<name>'
            label: Display label
            dimension_type: Classification axis, e.g. 'owner', 'location'
            meta_json: Optional JSON metadata

        Raises:
            ValidationError: If a field is invalid
            NamespaceViolationError: If key is not inside dimension_type
            DuplicateIdError: If the key already exists
        """
        values = self._validate({
            "key": key,
            "label": label,
            "dimension_type": dimension_type,
            "meta_json": meta_json,
            "created_at": created_at,
            "updated_at": updated_at,
        })

        timestamp = self._collection._now()
        dimension_key = self._resolve_id(values["key"])
        created = values["created_at"] if values["created_at"] is not None else timestamp

        dimension = DimensionValue(
            key=dimension_key,
            label=values["label"],
            dimension_type=values["dimension_type"],
            meta_json=values["meta_json"],
            created_at=created,
            updated_at=values["updated_at"] if values["updated_at"] is not None else created,
        )
        return self._create(dimension, timestamp)

    def update(
        self,
        key: str,
        *,
        label: str | None = None,
        meta_json: Any = None,
        updated_at: int | None = None,
    ) -> DimensionValue:
        """Relabel a dimension value or replace its metadata.

        Raises:
            NotFoundError: If key doesn't exist
            ValidationError: If a supplied field is invalid
        """
        existing = self._require(key)
        changes = self._validate(
            self._changes(label=label, meta_json=meta_json, updated_at=updated_at),
            partial=True,
            existing=existing,
        )
        return self._update(existing, changes)

    def list(self, dimension_type: str | None = None) -> list[DimensionValue]:
        """List copies of dimension values, optionally of one type."""
        return [
            value for value in super().list()
            if dimension_type is None or value.dimension_type == dimension_type
        ]
