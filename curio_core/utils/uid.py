"""Identifier generation.

Default ids are UUID v4 strings. When the runtime cannot supply strong
randomness, ids fall back to a composite of a base-36 millisecond
timestamp and a base-36 random suffix under the ``curio_`` prefix.
"""

import random
import string
import time
import uuid as uuid_lib

CURIO_ID_PREFIX = "curio_"

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    """Encode a non-negative integer in base 36 (lowercase).

    Examples:
        >>> to_base36(0)
        '0'
        >>> to_base36(1295)
        'zz'
    """
    if value < 0:
        raise ValueError(f"Cannot encode negative value: {value}")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def fallback_id() -> str:
    """Generate a ``curio_<timestamp>_<random>`` id without a strong RNG."""
    timestamp = to_base36(int(time.time() * 1000))
    suffix = to_base36(random.getrandbits(41)).rjust(8, "0")[-8:]
    return f"{CURIO_ID_PREFIX}{timestamp}_{suffix}"


def generate_uuid() -> str:
    """Generate a new entity id.

    Returns:
        UUID v4 string, or a ``fallback_id()`` when ``os.urandom`` is
        unavailable on this platform
    """
    try:
        return str(uuid_lib.uuid4())
    except NotImplementedError:
        return fallback_id()
