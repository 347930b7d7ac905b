"""Pytest fixtures for curio-core tests."""

import itertools

import pytest

from curio_core import config, host
from curio_core.core import Collection

T0 = 1_700_000_000_000


class FixedClock:
    """Clock returning ``now`` until a test moves it with ``advance``."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1) -> int:
        self.now += ms
        return self.now


class ScriptedIds:
    """Id factory returning scripted ids first, then 'id-<n>' counters."""

    def __init__(self, *scripted: str):
        self._scripted = list(scripted)
        self._counter = itertools.count(1)
        self.issued: list[str] = []

    def __call__(self) -> str:
        value = self._scripted.pop(0) if self._scripted else f"id-{next(self._counter)}"
        self.issued.append(value)
        return value


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Reset process-wide providers, cached settings and CURIO_* variables.

    The config path points into tmp_path so a developer's own
    ~/.config/curio/config.toml never leaks into a test.
    """
    for name in (
        "CURIO_DB",
        "CURIO_DATA_DIR",
        "CURIO_LOG_LEVEL",
        "CURIO_LOG_FORMAT",
        "CURIO_STRICT_NAMESPACES",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CURIO_CONFIG", str(tmp_path / "missing-config.toml"))
    monkeypatch.setattr(config, "_default_settings", None)
    host.reset_default_providers()
    yield
    host.reset_default_providers()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def ids():
    return ScriptedIds()


@pytest.fixture
def collection(clock, ids):
    """Empty Collection with a fixed clock and counter ids."""
    return Collection(now=clock, id_factory=ids)


@pytest.fixture
def work(collection):
    """A Work in the collection fixture."""
    return collection.add_work("Chrono Trigger", "media.game")


@pytest.fixture
def holding(collection, work):
    """A Holding of the work fixture."""
    return collection.add_holding(work.id)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "curio.db"
