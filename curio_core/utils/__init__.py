"""Utility functions for the Curio kernel.

    from curio_core.utils import uid, clone
    entity_id = uid.generate_uuid()
    snapshot = clone.deep_copy(record)
"""

from . import clone, uid

__all__ = ["clone", "uid"]
