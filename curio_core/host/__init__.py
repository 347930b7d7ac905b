"""Host interface for the Curio kernel.

Holds the process-wide default providers (clock and id factory). Both are
resolved lazily when a Collection is created, and either can be replaced
for deterministic tests or replay:

    from curio_core import host
    host.set_default_clock(lambda: 1_700_000_000_000)
    ...
    host.reset_default_providers()
"""

from typing import Callable

from ..utils import uid
from .environment import get_db_path, get_env
from .time import from_ms, now_ms

Clock = Callable[[], int]
IdFactory = Callable[[], str]

_default_clock: Clock | None = None
_default_id_factory: IdFactory | None = None


def get_default_clock() -> Clock:
    """Return the process-wide clock (``now_ms`` unless overridden)."""
    return _default_clock or now_ms


def get_default_id_factory() -> IdFactory:
    """Return the process-wide id factory (``uid.generate_uuid`` unless overridden)."""
    return _default_id_factory or uid.generate_uuid


def set_default_clock(clock: Clock | None) -> None:
    """Override the process-wide clock. ``None`` restores the default."""
    global _default_clock
    _default_clock = clock


def set_default_id_factory(id_factory: IdFactory | None) -> None:
    """Override the process-wide id factory. ``None`` restores the default."""
    global _default_id_factory
    _default_id_factory = id_factory


def reset_default_providers() -> None:
    """Restore both default providers."""
    set_default_clock(None)
    set_default_id_factory(None)


__all__ = [
    "Clock",
    "IdFactory",
    "from_ms",
    "get_db_path",
    "get_default_clock",
    "get_default_id_factory",
    "get_env",
    "now_ms",
    "reset_default_providers",
    "set_default_clock",
    "set_default_id_factory",
]
