"""Deep value copies for plain data crossing the Collection boundary."""

from copy import deepcopy
from typing import TypeVar

T = TypeVar("T")


def deep_copy(value: T) -> T:
    """Return a copy of ``value`` sharing no mutable state with it."""
    return deepcopy(value)
