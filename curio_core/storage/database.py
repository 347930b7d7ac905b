"""SQLite persistence for Curio collections."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from ..core import Collection
from ..core.snapshot import SNAPSHOT_FORMAT, SNAPSHOT_VERSION
from ..host import get_db_path
from ..schemas import get_sql_schema

logger = logging.getLogger(__name__)


class CollectionDatabase:
    """SQLite database holding one Collection snapshot.

    CONNECTION LIFECYCLE:
    - CollectionDatabase MUST be used as context manager (enforced at runtime)
    - __enter__: Marks the database as active, creates connection, returns self
    - __exit__: Commits on success, rollbacks on exception, always closes
    - Operations call _get_connection() which raises RuntimeError if not in context

    STORAGE MODEL:
    ``save`` replaces the stored state with the Collection's snapshot;
    ``load`` rebuilds a Collection through ``Collection.from_snapshot``, so
    stored records pass the same validation as an imported snapshot.
    """

    def __init__(self, db_path: str | Path = "curio.db"):
        """Initialize collection database.

        Args:
            db_path: Path to SQLite database file

        Note:
            Must be used as context manager. Operations will raise
            RuntimeError if called outside of 'with' statement.
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._in_context = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get connection, enforcing context manager usage.

        Raises:
            RuntimeError: If not being used as context manager
        """
        if not self._in_context:
            raise RuntimeError(
                "CollectionDatabase must be used as context manager. "
                "Use: with get_collection_db() as db: ..."
            )
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def close(self):
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> CollectionDatabase:
        self._in_context = True
        self._get_connection()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Commit on success, roll back on exception, always close."""
        self._in_context = False
        try:
            if self._conn is not None:
                if exc_type is None:
                    self._conn.commit()
                else:
                    logger.warning("Rolling back %s after %s", self.db_path, exc_type.__name__)
                    self._conn.rollback()
        finally:
            self.close()

    # ==========================================================================
    # INITIALIZATION
    # ==========================================================================

    def init_schema(self):
        """Initialize database schema from the bundled curio.sql."""
        conn = self._get_connection()
        conn.executescript(get_sql_schema())
        logger.info("Initialized collection database at %s", self.db_path)

    def get_schema_version(self) -> str | None:
        """Get current schema version, or None if the schema is missing."""
        try:
            cursor = self._get_connection().execute(
                "SELECT value FROM _schema_metadata WHERE key = 'version'"
            )
        except sqlite3.OperationalError:
            return None
        row = cursor.fetchone()
        return row[0] if row else None

    # ==========================================================================
    # COLLECTION OPERATIONS
    # ==========================================================================

    def save(self, collection: Collection) -> None:
        """Replace the stored state with ``collection``'s current state.

        Args:
            collection: Collection to persist
        """
        snapshot = collection.export_snapshot()
        conn = self._get_connection()
        conn.execute("DELETE FROM entity_record")
        conn.execute("DELETE FROM change_log")

        for kind, records in snapshot["entities"].items():
            key_name = "key" if kind == "dimensionValues" else "id"
            conn.executemany(
                "INSERT INTO entity_record (kind, key, position, record) VALUES (?, ?, ?, ?)",
                [
                    (kind, record[key_name], position, json.dumps(record))
                    for position, record in enumerate(records)
                ],
            )

        conn.executemany(
            """INSERT INTO change_log (position, id, timestamp, op_type, payload, device_id, seq)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            [
                (
                    position,
                    entry["id"],
                    entry["timestamp"],
                    entry["opType"],
                    json.dumps(entry.get("payloadJson")),
                    entry.get("deviceId"),
                    entry.get("seq"),
                )
                for position, entry in enumerate(snapshot["changeLog"])
            ],
        )
        logger.info(
            "Saved collection to %s (%d change log entries)",
            self.db_path,
            len(snapshot["changeLog"]),
        )

    def load(self, **options: Any) -> Collection:
        """Load the stored state into a new Collection.

        Args:
            **options: Collection keyword arguments (now, id_factory, namespaces)

        Returns:
            Collection holding the stored entities and change log

        Raises:
            ValidationError: If a stored record fails validation
        """
        conn = self._get_connection()
        entities: dict[str, list[dict[str, Any]]] = {}
        for row in conn.execute("SELECT kind, record FROM entity_record ORDER BY kind, position"):
            entities.setdefault(row["kind"], []).append(json.loads(row["record"]))

        change_log = []
        for row in conn.execute("SELECT * FROM change_log ORDER BY position"):
            entry = {
                "id": row["id"],
                "timestamp": _number(row["timestamp"]),
                "opType": row["op_type"],
                "payloadJson": json.loads(row["payload"]) if row["payload"] is not None else None,
            }
            if row["device_id"] is not None:
                entry["deviceId"] = row["device_id"]
            if row["seq"] is not None:
                entry["seq"] = row["seq"]
            change_log.append(entry)

        snapshot = {
            "format": SNAPSHOT_FORMAT,
            "version": SNAPSHOT_VERSION,
            "entities": entities,
            "changeLog": change_log,
        }
        collection = Collection.from_snapshot(snapshot, **options)
        logger.info("Loaded collection from %s", self.db_path)
        return collection

    def count_change_log(self) -> int:
        """Count stored change log entries."""
        return self._get_connection().execute("SELECT COUNT(*) FROM change_log").fetchone()[0]


def _number(value: float) -> int | float:
    """Timestamps are stored as REAL; give whole values back as int."""
    return int(value) if float(value).is_integer() else value


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def get_collection_db(db_path: str | Path | None = None, init: bool = False) -> CollectionDatabase:
    """Get a collection database.

    Args:
        db_path: Path to SQLite database file (resolved from environment if None)
        init: If True, initialize schema if not exists

    Returns:
        CollectionDatabase instance (use as context manager)
    """
    db = CollectionDatabase(db_path if db_path is not None else get_db_path())

    if init:
        with db:
            if db.get_schema_version() is None:
                db.init_schema()

    return db
