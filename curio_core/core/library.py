"""Library operations.

A Library is a saved smart list. Its definition may mention field keys and
dimension keys by convention; the kernel stores it as opaque JSON.
"""

from __future__ import annotations

from typing import Any

from .entity import EntityOperations
from .types import Library
from .validation import LIBRARY_SCHEMA


class LibraryOperations(EntityOperations[Library]):
    """Create, update, remove and read Libraries."""

    kind = "Library"
    op_prefix = "library"
    payload_key = "library"
    id_payload_key = "libraryId"
    table_name = "libraries"
    schema = LIBRARY_SCHEMA

    def add(
        self,
        label: str,
        definition_json: Any,
        *,
        id: str | None = None,
        created_at: int | None = None,
        updated_at: int | None = None,
    ) -> Library:
        """Create a Library and record ``library.create``.

        Raises:
            ValidationError: If label is empty or the definition is not JSON
            DuplicateIdError: If the id already exists
        """
        values = self._validate({
            "id": id,
            "label": label,
            "definition_json": definition_json,
            "created_at": created_at,
            "updated_at": updated_at,
        })

        timestamp = self._collection._now()
        library_id = self._resolve_id(values["id"])
        created = values["created_at"] if values["created_at"] is not None else timestamp

        library = Library(
            id=library_id,
            label=values["label"],
            definition_json=values["definition_json"],
            created_at=created,
            updated_at=values["updated_at"] if values["updated_at"] is not None else created,
        )
        return self._create(library, timestamp)

    def update(
        self,
        library_id: str,
        *,
        label: str | None = None,
        definition_json: Any = None,
        updated_at: int | None = None,
    ) -> Library:
        """Rename a Library or replace its definition.

        Raises:
            NotFoundError: If library_id doesn't exist
            ValidationError: If a supplied field is invalid
        """
        existing = self._require(library_id)
        changes = self._validate(
            self._changes(label=label, definition_json=definition_json, updated_at=updated_at),
            partial=True,
            existing=existing,
        )
        return self._update(existing, changes)
