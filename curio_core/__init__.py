"""
Curio Core

Local-first kernel for a personal collection manager: works, holdings,
extension fields, dimensions, assets and libraries, mutated only through a
validated, change-logged Collection.
"""

__version__ = "0.1.0"

# Core exports
from curio_core.core import Collection, create_collection

# Type exports
from curio_core.core.types import (
    Asset,
    AssetLink,
    ChangeLogEntry,
    DimensionValue,
    FieldValue,
    Holding,
    Library,
    Work,
)

# Namespace exports
from curio_core.core.namespace import ExtensionManifest, NamespaceRegistry, PluginManifest

# Snapshot exports
from curio_core.core.snapshot import replay_change_log

# Storage exports
from curio_core.storage import CollectionDatabase, get_collection_db

# Exception exports
from curio_core import exceptions

__all__ = [
    # Core
    "Collection",
    "create_collection",
    # Types
    "Asset",
    "AssetLink",
    "ChangeLogEntry",
    "DimensionValue",
    "FieldValue",
    "Holding",
    "Library",
    "Work",
    # Namespaces
    "ExtensionManifest",
    "NamespaceRegistry",
    "PluginManifest",
    # Snapshots
    "replay_change_log",
    # Storage
    "CollectionDatabase",
    "get_collection_db",
    # Exceptions module (access as curio_core.exceptions.ValidationError, etc.)
    "exceptions",
]
