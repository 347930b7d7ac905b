"""Append-only change log.

OP TYPES:
A closed, dot-namespaced vocabulary ``<entity>.<verb>``. A new entity kind
must add its verbs here before the Collection can record them.

ORDERING:
Insertion order is the canonical order. Entries are never sorted by
timestamp, since timestamps may collide or come from imported data.

ISOLATION:
Payloads are deep-copied on append and every read returns copies, so no
caller can alter a recorded entry after the fact.
"""

from __future__ import annotations

from typing import Any, Iterator

from ..utils.clone import deep_copy
from .types import ChangeLogEntry

OP_TYPES = frozenset({
    "work.create",
    "work.update",
    "work.remove",
    "holding.create",
    "holding.update",
    "holding.remove",
    "field.set",
    "field.remove",
    "dimension.create",
    "dimension.update",
    "dimension.remove",
    "asset.create",
    "asset.remove",
    "asset.link",
    "asset.unlink",
    "library.create",
    "library.update",
    "library.remove",
})


class ChangeLog:
    """Ordered history of accepted mutations.

    Only the Collection appends; everything else reads through
    ``read_all()``, which hands out copies.
    """

    def __init__(self, entries: list[ChangeLogEntry] | None = None):
        self._entries: list[ChangeLogEntry] = [deep_copy(entry) for entry in entries or []]

    def append(
        self,
        op_type: str,
        payload: Any,
        *,
        entry_id: str,
        timestamp: int | float,
    ) -> ChangeLogEntry:
        """Record one accepted mutation.

        Args:
            op_type: Member of OP_TYPES
            payload: JSON-serializable payload (copied)
            entry_id: Id from the Collection's id factory
            timestamp: Time of the mutation from the Collection's clock

        Returns:
            A copy of the stored entry

        Raises:
            ValueError: If op_type is not in the vocabulary
        """
        if op_type not in OP_TYPES:
            raise ValueError(f"Unknown change log op type: {op_type!r}")

        entry = ChangeLogEntry(
            id=entry_id,
            timestamp=timestamp,
            op_type=op_type,
            payload_json=deep_copy(payload),
        )
        self._entries.append(entry)
        return deep_copy(entry)

    def read_all(self) -> list[ChangeLogEntry]:
        """Return copies of all entries in insertion order."""
        return deep_copy(self._entries)

    def to_records(self) -> list[dict[str, Any]]:
        return [entry.to_record() for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ChangeLogEntry]:
        return iter(self.read_all())
