"""Tests for curio_core.config and create_collection."""

from pathlib import Path

import pytest

from curio_core import config
from curio_core.config import Settings, get_config_path, get_settings, load_toml_config
from curio_core.core import create_collection
from curio_core.core.namespace import NamespaceRegistry
from curio_core.exceptions import NamespaceViolationError


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[runtime]\n'
        'log_level = "DEBUG"\n'
        'log_format = "json"\n'
        '\n'
        '[namespaces]\n'
        'strict = true\n'
        '\n'
        '[paths]\n'
        f'data_dir = "{(tmp_path / "data").as_posix()}"\n'
    )
    return path


class TestSettings:
    """Tests for Settings resolution (env > TOML > defaults)."""

    def test_defaults(self, tmp_path):
        settings = Settings(tmp_path / "absent.toml")

        assert settings.log_level == "info"
        assert settings.log_format == "text"
        assert settings.strict_namespaces is False
        assert settings.data_dir is None

    def test_toml_values(self, config_file, tmp_path):
        settings = Settings(config_file)

        assert settings.log_level == "debug"
        assert settings.log_format == "json"
        assert settings.strict_namespaces is True
        assert settings.data_dir == tmp_path / "data"
        assert settings.get_db_path() == tmp_path / "data" / "curio.db"

    def test_environment_overrides_toml(self, config_file, monkeypatch, tmp_path):
        monkeypatch.setenv("CURIO_LOG_LEVEL", "warning")
        monkeypatch.setenv("CURIO_STRICT_NAMESPACES", "off")
        monkeypatch.setenv("CURIO_DATA_DIR", str(tmp_path / "env"))

        settings = Settings(config_file)

        assert settings.log_level == "warning"
        assert settings.log_format == "json"
        assert settings.strict_namespaces is False
        assert settings.data_dir == tmp_path / "env"

    def test_curio_db_wins(self, config_file, monkeypatch, tmp_path):
        monkeypatch.setenv("CURIO_DB", str(tmp_path / "explicit.db"))

        assert Settings(config_file).get_db_path() == tmp_path / "explicit.db"

    def test_invalid_toml_warns_and_uses_defaults(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[runtime\nlog_level = ")

        with pytest.warns(UserWarning, match="Failed to load config"):
            settings = Settings(path)

        assert settings.log_level == "info"

    def test_invalid_log_format(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CURIO_LOG_FORMAT", "xml")

        with pytest.raises(ValueError, match="Unknown log format"):
            Settings(tmp_path / "absent.toml")

    def test_invalid_boolean(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CURIO_STRICT_NAMESPACES", "maybe")

        with pytest.raises(ValueError, match="CURIO_STRICT_NAMESPACES"):
            Settings(tmp_path / "absent.toml")

    def test_get(self, tmp_path):
        settings = Settings(tmp_path / "absent.toml")

        assert settings.get("log_level") == "info"
        assert settings.get("missing", 42) == 42


class TestConfigHelpers:
    """Tests for config file discovery and loading."""

    def test_config_path_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CURIO_CONFIG", str(tmp_path / "custom.toml"))

        assert get_config_path() == tmp_path / "custom.toml"

    def test_config_path_default(self, monkeypatch):
        monkeypatch.delenv("CURIO_CONFIG")

        assert get_config_path() == Path.home() / ".config/curio/config.toml"

    def test_explicit_path_wins(self, tmp_path):
        assert get_config_path(tmp_path / "x.toml") == tmp_path / "x.toml"

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_toml_config(tmp_path / "absent.toml")

    def test_settings_cached(self):
        assert get_settings() is get_settings()
        assert config._default_settings is not None


class TestCreateCollection:
    """Tests for create_collection."""

    def test_strict_from_settings(self, config_file):
        collection = create_collection(Settings(config_file))
        work = collection.add_work("Chrono Trigger", "media.game")

        assert collection.namespaces.strict is True
        with pytest.raises(NamespaceViolationError):
            collection.set_field_value("work", work.id, "ext.games.platform", "SNES")

    def test_non_strict_default(self):
        collection = create_collection()

        assert collection.namespaces.strict is False

    def test_explicit_registry_wins(self, config_file):
        registry = NamespaceRegistry(["games"])

        collection = create_collection(Settings(config_file), namespaces=registry)

        assert collection.namespaces is registry
