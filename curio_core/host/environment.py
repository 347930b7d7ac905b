"""Environment variable access and path resolution.

Path Resolution Order:
1. Explicit database path (CURIO_DB)
2. Shared data directory (CURIO_DATA_DIR/curio.db)
3. Current directory (./curio.db)
"""

import os
from pathlib import Path

DB_FILENAME = "curio.db"


def get_env(key: str, default: str | None = None) -> str | None:
    """Get environment variable.

    Args:
        key: Environment variable name
        default: Default value if not found

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def get_db_path() -> Path:
    """Resolve the collection database path.

    Returns:
        Path to database file

    Examples:
        >>> os.environ['CURIO_DB'] = '/custom/curio.db'
        >>> get_db_path()
        Path('/custom/curio.db')

        >>> del os.environ['CURIO_DB']
        >>> os.environ['CURIO_DATA_DIR'] = '/data'
        >>> get_db_path()
        Path('/data/curio.db')
    """
    db_path = get_env("CURIO_DB")
    if db_path:
        return Path(db_path)

    data_dir = get_env("CURIO_DATA_DIR")
    if data_dir:
        return Path(data_dir) / DB_FILENAME

    return Path(f"./{DB_FILENAME}")
