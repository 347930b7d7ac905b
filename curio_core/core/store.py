"""In-memory entity store.

One keyed table per entity kind, in insertion order. The store holds the
canonical entity objects; it never copies. Copying on the way in and out
is the Collection's job, and the Collection is the only code that holds a
reference to the store.
"""

from __future__ import annotations

from typing import Callable, Generic, Iterator, TypeVar

from .types import Asset, AssetLink, DimensionValue, FieldValue, Holding, Library, Work

E = TypeVar("E")


class EntityTable(Generic[E]):
    """Keyed container for one entity kind."""

    def __init__(self, kind: str, key_of: Callable[[E], str]):
        self.kind = kind
        self._key_of = key_of
        self._rows: dict[str, E] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[E]:
        return iter(list(self._rows.values()))

    def get(self, key: str) -> E | None:
        return self._rows.get(key)

    def put(self, entity: E) -> None:
        """Insert or replace. Replacing keeps the original position."""
        self._rows[self._key_of(entity)] = entity

    def delete(self, key: str) -> E:
        return self._rows.pop(key)

    def where(self, predicate: Callable[[E], bool]) -> list[E]:
        return [row for row in self._rows.values() if predicate(row)]

    def clear(self) -> None:
        self._rows.clear()


def _by_id(entity) -> str:
    return entity.id


class EntityStore:
    """Canonical state of all entity collections."""

    def __init__(self):
        self.works: EntityTable[Work] = EntityTable("Work", _by_id)
        self.holdings: EntityTable[Holding] = EntityTable("Holding", _by_id)
        self.field_values: EntityTable[FieldValue] = EntityTable("FieldValue", _by_id)
        self.dimension_values: EntityTable[DimensionValue] = EntityTable(
            "DimensionValue", lambda dimension: dimension.key
        )
        self.assets: EntityTable[Asset] = EntityTable("Asset", _by_id)
        self.asset_links: EntityTable[AssetLink] = EntityTable("AssetLink", _by_id)
        self.libraries: EntityTable[Library] = EntityTable("Library", _by_id)

    def tables(self) -> dict[str, EntityTable]:
        """Tables keyed by their snapshot collection name."""
        return {
            "works": self.works,
            "holdings": self.holdings,
            "fieldValues": self.field_values,
            "dimensionValues": self.dimension_values,
            "assets": self.assets,
            "assetLinks": self.asset_links,
            "libraries": self.libraries,
        }

    def target_table(self, entity_type: str) -> EntityTable:
        """Table for a FieldValue/AssetLink ``entity_type`` ('work' | 'holding')."""
        if entity_type == "work":
            return self.works
        if entity_type == "holding":
            return self.holdings
        raise ValueError(f"Unknown entity type: {entity_type!r}")
