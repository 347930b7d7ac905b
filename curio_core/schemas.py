"""Schema access utilities for Curio.

Invariants:
- Try importlib.resources first (installed package)
- Fall back to file reading (source checkout)
- Raise FileNotFoundError if the schema is in neither location

USAGE:
    >>> from curio_core.schemas import get_sql_schema
    >>> sql = get_sql_schema()
"""

from __future__ import annotations

from importlib.resources import files as resource_files
from pathlib import Path

# ============================================================================
# CONSTANTS
# ============================================================================

SQL_SCHEMA_NAME = "curio"


# ============================================================================
# SQL SCHEMA ACCESS
# ============================================================================

def get_sql_schema(name: str = SQL_SCHEMA_NAME) -> str:
    """Get SQL schema content.

    Args:
        name: Schema file name without extension

    Returns:
        SQL schema content as string

    Raises:
        FileNotFoundError: If schema file not found in bundled or file locations

    Examples:
        >>> "CREATE TABLE" in get_sql_schema()
        True
    """
    filename = f"{name}.sql"

    try:
        schema_file = resource_files("curio_core") / "schemas" / "sql" / filename
        if schema_file.is_file():
            return schema_file.read_text(encoding="utf-8")
    except (FileNotFoundError, ModuleNotFoundError):
        # Fall through to file reading
        pass

    file_locations = [
        Path(__file__).parent / "schemas" / "sql" / filename,
        Path(__file__).parent.parent / "schemas" / "sql" / filename,
    ]

    for file_path in file_locations:
        if file_path.exists():
            return file_path.read_text(encoding="utf-8")

    raise FileNotFoundError(
        f"SQL schema file not found: {filename}. "
        f"Searched locations: {[str(p) for p in file_locations]}"
    )
