"""Mutation engine for the Curio kernel.

The Collection is the ONLY write path to entity state. It owns the entity
store and the change log and never hands out references to either.

ARCHITECTURE:
- Each entity kind gets an encapsulated operations class
  (collection.work, collection.holding, ...), lazily created
- Flat methods (add_work, remove_work, ...) delegate to those classes
- Every accepted mutation appends exactly one change log entry and then
  notifies subscribers with a copy of that entry

ID AND CLOCK POLICY:
Ids and timestamps come from the injected providers (``now``,
``id_factory``), falling back to the process-wide defaults in
``curio_core.host``. For each create, the entity id is drawn before the
change log entry id, and the clock is read once per mutation:

    >>> ids = iter(["work-1", "log-1"])
    >>> collection = Collection(now=lambda: 1_700_000_000_000, id_factory=lambda: next(ids))
    >>> collection.add_work("Chrono Trigger", "media.game").id
    'work-1'
    >>> collection.get_change_log()[0].id
    'log-1'

CONCURRENCY:
Single-threaded. Every operation runs to completion synchronously; hosts
that dispatch from several threads must serialize calls themselves.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from .. import host
from ..config import Settings, get_settings
from ..utils.clone import deep_copy
from .changelog import ChangeLog
from .namespace import NamespaceRegistry
from .store import EntityStore
from .types import (
    Asset,
    AssetLink,
    ChangeLogEntry,
    DimensionValue,
    EntityType,
    FieldValue,
    Holding,
    Library,
    Work,
)

if TYPE_CHECKING:
    from .asset import AssetLinkOperations, AssetOperations
    from .dimension import DimensionValueOperations
    from .field import FieldValueOperations
    from .holding import HoldingOperations
    from .library import LibraryOperations
    from .work import WorkOperations

logger = logging.getLogger(__name__)

Listener = Callable[[ChangeLogEntry], None]


class Collection:
    """
    In-memory collection with validated, logged mutations.

    Attributes:
        namespaces: Registry used to check namespaced keys
    """

    def __init__(
        self,
        *,
        now: host.Clock | None = None,
        id_factory: host.IdFactory | None = None,
        namespaces: NamespaceRegistry | None = None,
    ):
        """Initialize an empty Collection.

        Args:
            now: Clock returning epoch milliseconds (default: host clock)
            id_factory: Id generator (default: host id factory)
            namespaces: Namespace registry (default: non-strict, empty)
        """
        self._clock = now or host.get_default_clock()
        self._id_factory = id_factory or host.get_default_id_factory()
        self.namespaces = namespaces or NamespaceRegistry()
        self._store = EntityStore()
        self._change_log = ChangeLog()
        self._listeners: list[Listener] = []
        self._work_ops = None
        self._holding_ops = None
        self._field_ops = None
        self._dimension_ops = None
        self._asset_ops = None
        self._asset_link_ops = None
        self._library_ops = None

    # ==========================================================================
    # OPERATIONS (lazy)
    # ==========================================================================

    @property
    def work(self) -> "WorkOperations":
        """Work operations."""
        if self._work_ops is None:
            from .work import WorkOperations
            self._work_ops = WorkOperations(self)
        return self._work_ops

    @property
    def holding(self) -> "HoldingOperations":
        """Holding operations."""
        if self._holding_ops is None:
            from .holding import HoldingOperations
            self._holding_ops = HoldingOperations(self)
        return self._holding_ops

    @property
    def field(self) -> "FieldValueOperations":
        """FieldValue operations."""
        if self._field_ops is None:
            from .field import FieldValueOperations
            self._field_ops = FieldValueOperations(self)
        return self._field_ops

    @property
    def dimension(self) -> "DimensionValueOperations":
        """DimensionValue operations."""
        if self._dimension_ops is None:
            from .dimension import DimensionValueOperations
            self._dimension_ops = DimensionValueOperations(self)
        return self._dimension_ops

    @property
    def asset(self) -> "AssetOperations":
        """Asset operations."""
        if self._asset_ops is None:
            from .asset import AssetOperations
            self._asset_ops = AssetOperations(self)
        return self._asset_ops

    @property
    def asset_link(self) -> "AssetLinkOperations":
        """AssetLink operations."""
        if self._asset_link_ops is None:
            from .asset import AssetLinkOperations
            self._asset_link_ops = AssetLinkOperations(self)
        return self._asset_link_ops

    @property
    def library(self) -> "LibraryOperations":
        """Library operations."""
        if self._library_ops is None:
            from .library import LibraryOperations
            self._library_ops = LibraryOperations(self)
        return self._library_ops

    # ==========================================================================
    # WORKS
    # ==========================================================================

    def add_work(self, display_title: str, media_type_key: str, **kwargs: Any) -> Work:
        return self.work.add(display_title, media_type_key, **kwargs)

    def update_work(self, work_id: str, **changes: Any) -> Work:
        return self.work.update(work_id, **changes)

    def remove_work(self, work_id: str) -> Work:
        return self.work.remove(work_id)

    def get_work(self, work_id: str) -> Work | None:
        return self.work.get(work_id)

    def list_works(self) -> list[Work]:
        return self.work.list()

    # ==========================================================================
    # HOLDINGS
    # ==========================================================================

    def add_holding(self, work_id: str, **kwargs: Any) -> Holding:
        return self.holding.add(work_id, **kwargs)

    def update_holding(self, holding_id: str, **changes: Any) -> Holding:
        return self.holding.update(holding_id, **changes)

    def remove_holding(self, holding_id: str) -> Holding:
        return self.holding.remove(holding_id)

    def get_holding(self, holding_id: str) -> Holding | None:
        return self.holding.get(holding_id)

    def list_holdings(self) -> list[Holding]:
        return self.holding.list()

    # ==========================================================================
    # FIELD VALUES
    # ==========================================================================

    def add_field_value(
        self, entity_type: EntityType, entity_id: str, field_key: str, value_json: Any, **kwargs: Any
    ) -> FieldValue:
        return self.field.add(entity_type, entity_id, field_key, value_json, **kwargs)

    def set_field_value(
        self, entity_type: EntityType, entity_id: str, field_key: str, value_json: Any, **kwargs: Any
    ) -> FieldValue:
        return self.field.set(entity_type, entity_id, field_key, value_json, **kwargs)

    def remove_field_value(self, field_value_id: str) -> FieldValue:
        return self.field.remove(field_value_id)

    def get_field_value(self, field_value_id: str) -> FieldValue | None:
        return self.field.get(field_value_id)

    def list_field_values(
        self, entity_type: EntityType | None = None, entity_id: str | None = None
    ) -> list[FieldValue]:
        return self.field.list(entity_type, entity_id)

    # ==========================================================================
    # DIMENSION VALUES
    # ==========================================================================

    def add_dimension_value(self, key: str, label: str, dimension_type: str, **kwargs: Any) -> DimensionValue:
        return self.dimension.add(key, label, dimension_type, **kwargs)

    def update_dimension_value(self, key: str, **changes: Any) -> DimensionValue:
        return self.dimension.update(key, **changes)

    def remove_dimension_value(self, key: str) -> DimensionValue:
        return self.dimension.remove(key)

    def get_dimension_value(self, key: str) -> DimensionValue | None:
        return self.dimension.get(key)

    def list_dimension_values(self, dimension_type: str | None = None) -> list[DimensionValue]:
        return self.dimension.list(dimension_type)

    # ==========================================================================
    # ASSETS AND LINKS
    # ==========================================================================

    def add_asset(self, asset_type: str, mime_type: str, byte_size: int, **kwargs: Any) -> Asset:
        return self.asset.add(asset_type, mime_type, byte_size, **kwargs)

    def remove_asset(self, asset_id: str) -> Asset:
        return self.asset.remove(asset_id)

    def get_asset(self, asset_id: str) -> Asset | None:
        return self.asset.get(asset_id)

    def list_assets(self) -> list[Asset]:
        return self.asset.list()

    def add_asset_link(
        self, asset_id: str, entity_type: EntityType, entity_id: str, role: str, **kwargs: Any
    ) -> AssetLink:
        return self.asset_link.add(asset_id, entity_type, entity_id, role, **kwargs)

    def remove_asset_link(self, link_id: str) -> AssetLink:
        return self.asset_link.remove(link_id)

    def get_asset_link(self, link_id: str) -> AssetLink | None:
        return self.asset_link.get(link_id)

    def list_asset_links(
        self, entity_type: EntityType | None = None, entity_id: str | None = None
    ) -> list[AssetLink]:
        return self.asset_link.list(entity_type, entity_id)

    # ==========================================================================
    # LIBRARIES
    # ==========================================================================

    def add_library(self, label: str, definition_json: Any, **kwargs: Any) -> Library:
        return self.library.add(label, definition_json, **kwargs)

    def update_library(self, library_id: str, **changes: Any) -> Library:
        return self.library.update(library_id, **changes)

    def remove_library(self, library_id: str) -> Library:
        return self.library.remove(library_id)

    def get_library(self, library_id: str) -> Library | None:
        return self.library.get(library_id)

    def list_libraries(self) -> list[Library]:
        return self.library.list()

    # ==========================================================================
    # CHANGE LOG, EVENTS, SNAPSHOTS
    # ==========================================================================

    def get_change_log(self) -> list[ChangeLogEntry]:
        """Return copies of every change log entry in insertion order."""
        return self._change_log.read_all()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a copy of each new change log entry.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def export_snapshot(self) -> dict[str, Any]:
        """Export entities and change log as plain JSON records."""
        from .snapshot import export_snapshot
        return export_snapshot(self)

    @classmethod
    def from_snapshot(cls, snapshot: dict[str, Any], **options: Any) -> "Collection":
        """Restore a Collection from ``export_snapshot()`` output."""
        from .snapshot import import_snapshot
        return import_snapshot(snapshot, cls(**options))

    @classmethod
    def from_change_log(cls, entries: list[ChangeLogEntry | dict], **options: Any) -> "Collection":
        """Rebuild a Collection by replaying a change log."""
        from .snapshot import restore_from_change_log
        return restore_from_change_log(entries, cls(**options))

    # ==========================================================================
    # INTERNALS (used by the operations classes)
    # ==========================================================================

    def _now(self) -> int:
        return self._clock()

    def _next_id(self) -> str:
        return self._id_factory()

    def _record(self, op_type: str, payload: Any, *, entry_id: str, timestamp: int) -> ChangeLogEntry:
        """Append a change log entry and notify subscribers."""
        entry = self._change_log.append(op_type, payload, entry_id=entry_id, timestamp=timestamp)
        logger.debug("Recorded %s (%s)", op_type, entry.id, extra={"op_type": op_type})

        for listener in list(self._listeners):
            try:
                listener(deep_copy(entry))
            except Exception:
                # Mutation is already committed; remaining listeners still run
                logger.exception("Change listener failed for %s (%s)", op_type, entry.id)

        return entry


def create_collection(settings: Settings | None = None, **options: Any) -> Collection:
    """
    Create a Collection configured from settings.

    Args:
        settings: Settings to read (process settings if None)
        **options: Collection keyword arguments (now, id_factory, namespaces)

    Returns:
        Empty Collection. Unless ``namespaces`` is given, its registry is
        strict when ``settings.strict_namespaces`` is set.

    Examples:
        >>> collection = create_collection()
        >>> collection.add_work("EarthBound", "media.game")
    """
    settings = settings or get_settings()
    if "namespaces" not in options:
        options["namespaces"] = NamespaceRegistry(strict=settings.strict_namespaces)
    return Collection(**options)


__all__ = ["Collection", "Listener", "create_collection"]
