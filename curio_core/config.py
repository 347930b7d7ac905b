"""Configuration management for curio-core.

Configuration is loaded from a TOML file and environment variables.

Configuration Resolution Order:
1. Environment variables (highest priority)
2. TOML config file
3. Built-in defaults

Example config.toml:

    [runtime]
    log_level = "debug"
    log_format = "json"

    [namespaces]
    strict = true

    [paths]
    data_dir = "~/.local/share/curio"
"""

import os
import sys
import warnings
from pathlib import Path
from typing import Any, Optional

# Python 3.11+ has tomllib in stdlib, otherwise use tomli
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULTS: dict[str, Any] = {
    "log_level": "info",
    "log_format": "text",
    "strict_namespaces": False,
    "data_dir": None,
}

LOG_FORMATS = ("text", "json")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def load_toml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        config_path: Path to config.toml file

    Returns:
        Dictionary with configuration sections

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is invalid TOML
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {config_path}: {e}") from e


def get_config_path(config_override: Optional[Path] = None) -> Path:
    """Get configuration file path.

    Args:
        config_override: Optional explicit config path

    Returns:
        CURIO_CONFIG if set, else ``~/.config/curio/config.toml``
    """
    if config_override:
        return config_override

    env_path = os.environ.get("CURIO_CONFIG")
    if env_path:
        return Path(env_path)

    return Path.home() / ".config/curio/config.toml"


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {name}: {value!r}")


class Settings:
    """Kernel settings with TOML configuration support.

    Attributes:
        log_level: Logging level name (debug, info, warning, error)
        log_format: 'text' for humans, 'json' for log aggregators
        strict_namespaces: If True, extension-namespaced keys must name a
            registered extension
        data_dir: Directory holding curio.db, or None for path resolution
            via ``host.environment.get_db_path()``
    """

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize settings.

        Args:
            config_path: Optional explicit path to config.toml
        """
        self._config: dict[str, Any] = {}

        if config_path is None:
            config_path = get_config_path()

        if config_path.exists():
            try:
                self._config = load_toml_config(config_path)
            except ValueError as e:
                # Continue with defaults
                warnings.warn(f"Failed to load config from {config_path}: {e}")

        self._apply_config()

    def _apply_config(self):
        """Apply defaults, then TOML values, then environment overrides."""
        for key, value in DEFAULTS.items():
            setattr(self, key, value)

        runtime_config = self._config.get("runtime", {})
        for key in ("log_level", "log_format"):
            if key in runtime_config:
                setattr(self, key, runtime_config[key])

        namespaces_config = self._config.get("namespaces", {})
        if "strict" in namespaces_config:
            self.strict_namespaces = _parse_bool("namespaces.strict", namespaces_config["strict"])

        paths_config = self._config.get("paths", {})
        if paths_config.get("data_dir"):
            self.data_dir = Path(paths_config["data_dir"]).expanduser()

        # Env vars take precedence over TOML values
        if "CURIO_LOG_LEVEL" in os.environ:
            self.log_level = os.environ["CURIO_LOG_LEVEL"]
        if "CURIO_LOG_FORMAT" in os.environ:
            self.log_format = os.environ["CURIO_LOG_FORMAT"]
        if "CURIO_STRICT_NAMESPACES" in os.environ:
            self.strict_namespaces = _parse_bool(
                "CURIO_STRICT_NAMESPACES", os.environ["CURIO_STRICT_NAMESPACES"]
            )
        if os.environ.get("CURIO_DATA_DIR"):
            self.data_dir = Path(os.environ["CURIO_DATA_DIR"])

        self.log_level = str(self.log_level).lower()
        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Unknown log format: {self.log_format}. Available: {list(LOG_FORMATS)}"
            )

    def get_db_path(self) -> Path:
        """Return the database path implied by these settings."""
        from .host.environment import DB_FILENAME, get_db_path

        if os.environ.get("CURIO_DB") or self.data_dir is None:
            return get_db_path()
        return Path(self.data_dir) / DB_FILENAME

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return getattr(self, key, default)


_default_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _default_settings
    if _default_settings is None:
        _default_settings = Settings()
    return _default_settings
