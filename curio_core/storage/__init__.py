"""Curio storage - SQLite persistence for collections.

ARCHITECTURE:
- The database owns its connection and is used as a context manager
- It stores a Collection snapshot (entity records plus change log)
- Loading goes through snapshot import, so stored data is re-validated
"""

from .database import CollectionDatabase, get_collection_db

__all__ = [
    "CollectionDatabase",
    "get_collection_db",
]
