"""Declarative input validation for every entity kind.

Each entity kind has an EntitySchema: an ordered tuple of FieldRules plus
cross-field invariants. ``validate_input`` interprets a schema against
caller input and returns the normalized values (trimmed strings, defaults
applied, JSON values copied), or raises on the FIRST violated rule:

    >>> validate_input(WORK_SCHEMA, {"display_title": "  ", "media_type_key": "media.game"})
    Traceback (most recent call last):
    ...
    ValidationError: Work input invalid for displayTitle: must be a non-empty string

Error field paths use the camelCase wire names. Foreign-key resolution is
not done here; the Collection checks references against its store.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Callable

from ..exceptions import NamespaceViolationError, ValidationError
from ..utils.clone import deep_copy
from .namespace import FIELD_KIND, ROLE_KIND, SEGMENT_PATTERN, NamespaceRegistry
from .types import DEFAULT_LOCATION_KEY, DEFAULT_OWNER_KEY, to_wire_name

ENTITY_TYPES = ("work", "holding")

MIME_TYPE_PATTERN = re.compile(r"^[\w.+-]+/[\w.+-]+$")

_UNSET = object()


class RuleViolation(ValueError):
    """Raised by a rule check; converted to a field-addressed error."""

    def __init__(self, reason: str, field: str | None = None, namespace: bool = False):
        super().__init__(reason)
        self.reason = reason
        self.field = field
        self.namespace = namespace


@dataclass
class RuleContext:
    """What a rule check may consult besides its own value."""

    namespaces: NamespaceRegistry


Check = Callable[[Any, RuleContext], Any]


@dataclass(frozen=True)
class FieldRule:
    """One input field.

    Attributes:
        name: Python attribute name (snake_case)
        check: Callable returning the normalized value or raising RuleViolation
        required: Missing/None input is an error
        default: Value used when optional input is missing (None = stays unset)
        nullable: None is a legitimate value and is passed to ``check``
    """

    name: str
    check: Check
    required: bool = True
    default: Any = None
    nullable: bool = False

    @property
    def wire(self) -> str:
        return to_wire_name(self.name)


@dataclass(frozen=True)
class EntitySchema:
    """Ordered constraint set for one entity kind."""

    entity: str
    rules: tuple[FieldRule, ...]
    invariants: tuple[Callable[[dict[str, Any], RuleContext], None], ...] = ()

    def rule(self, name: str) -> FieldRule:
        for rule in self.rules:
            if rule.name == name:
                return rule
        raise KeyError(name)


# ============================================================================
# RULE CHECKS
# ============================================================================

def text(value: Any, ctx: RuleContext) -> str:
    """Non-empty string after trimming; returns the trimmed value."""
    if not isinstance(value, str) or not value.strip():
        raise RuleViolation("must be a non-empty string")
    return value.strip()


def timestamp(value: Any, ctx: RuleContext) -> int | float:
    """Non-negative finite epoch milliseconds."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RuleViolation("must be a number of epoch milliseconds")
    if not math.isfinite(value) or value < 0:
        raise RuleViolation("must be a non-negative finite number")
    return value


def non_negative_int(value: Any, ctx: RuleContext) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise RuleViolation("must be an integer")
    if value < 0:
        raise RuleViolation("must be non-negative")
    return value


def choice(*allowed: str) -> Check:
    def check(value: Any, ctx: RuleContext) -> str:
        if value not in allowed:
            raise RuleViolation(f"must be one of {list(allowed)}")
        return value
    return check


def key_segment(value: Any, ctx: RuleContext) -> str:
    value = text(value, ctx)
    if not SEGMENT_PATTERN.match(value):
        raise RuleViolation(f"{value!r} must be a single key segment")
    return value


def namespaced(kind: str, allow_shared: bool | None = None) -> Check:
    """Key in the ``kind`` namespace, checked by the context's registry."""
    def check(value: Any, ctx: RuleContext) -> str:
        if isinstance(value, str):
            value = value.strip()
        reason = ctx.namespaces.key_violation(kind, value, allow_shared=allow_shared)
        if reason is not None:
            raise RuleViolation(reason, namespace=True)
        return value
    return check


def mime_type(value: Any, ctx: RuleContext) -> str:
    value = text(value, ctx)
    if not MIME_TYPE_PATTERN.match(value):
        raise RuleViolation(f"{value!r} is not a type/subtype MIME type")
    return value


def json_value(value: Any, ctx: RuleContext) -> Any:
    """Any JSON value (no NaN/Infinity) that survives encoding unchanged.

    Tuples and non-string dict keys serialize without error but decode as
    lists and string keys, so they are rejected. Returns a deep copy.
    """
    try:
        encoded = json.dumps(value, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise RuleViolation(f"must be JSON-serializable ({e})") from e
    if not _same_json(json.loads(encoded), value):
        raise RuleViolation("must be plain JSON (lists and string-keyed objects only)")
    return deep_copy(value)


def _same_json(decoded: Any, value: Any) -> bool:
    if isinstance(value, dict):
        return (
            isinstance(decoded, dict)
            and all(isinstance(k, str) for k in value)
            and decoded.keys() == value.keys()
            and all(_same_json(decoded[k], v) for k, v in value.items())
        )
    if isinstance(value, list):
        return (
            isinstance(decoded, list)
            and len(decoded) == len(value)
            and all(_same_json(d, v) for d, v in zip(decoded, value))
        )
    return type(decoded) is type(value) and decoded == value


# ============================================================================
# INVARIANTS
# ============================================================================

def created_not_after_updated(values: dict[str, Any], ctx: RuleContext) -> None:
    created_at = values.get("created_at")
    updated_at = values.get("updated_at")
    if created_at is not None and updated_at is not None and updated_at < created_at:
        raise RuleViolation("must not be earlier than createdAt", field="updated_at")


def dimension_key_in_type(values: dict[str, Any], ctx: RuleContext) -> None:
    key = values.get("key")
    dimension_type = values.get("dimension_type")
    if key is None or dimension_type is None:
        return
    reason = ctx.namespaces.key_violation(dimension_type, key, allow_shared=True)
    if reason is not None:
        raise RuleViolation(reason, field="key", namespace=True)


# ============================================================================
# SCHEMAS
# ============================================================================

_ID = FieldRule("id", text, required=False)
_CREATED_AT = FieldRule("created_at", timestamp, required=False)
_UPDATED_AT = FieldRule("updated_at", timestamp, required=False)

WORK_SCHEMA = EntitySchema(
    "Work",
    (
        _ID,
        FieldRule("display_title", text),
        FieldRule("media_type_key", text),
        _CREATED_AT,
        _UPDATED_AT,
    ),
    (created_not_after_updated,),
)

HOLDING_SCHEMA = EntitySchema(
    "Holding",
    (
        _ID,
        FieldRule("work_id", text),
        FieldRule("owner_key", namespaced("owner", allow_shared=True), required=False,
                  default=DEFAULT_OWNER_KEY),
        FieldRule("location_key", namespaced("location", allow_shared=True), required=False,
                  default=DEFAULT_LOCATION_KEY),
        _CREATED_AT,
        _UPDATED_AT,
    ),
    (created_not_after_updated,),
)

FIELD_VALUE_SCHEMA = EntitySchema(
    "FieldValue",
    (
        _ID,
        FieldRule("entity_type", choice(*ENTITY_TYPES)),
        FieldRule("entity_id", text),
        FieldRule("field_key", namespaced(FIELD_KIND, allow_shared=False)),
        FieldRule("value_json", json_value, nullable=True),
        _UPDATED_AT,
    ),
)

DIMENSION_VALUE_SCHEMA = EntitySchema(
    "DimensionValue",
    (
        FieldRule("key", text),
        FieldRule("label", text),
        FieldRule("dimension_type", key_segment),
        FieldRule("meta_json", json_value, required=False),
        _CREATED_AT,
        _UPDATED_AT,
    ),
    (dimension_key_in_type, created_not_after_updated),
)

ASSET_SCHEMA = EntitySchema(
    "Asset",
    (
        _ID,
        FieldRule("asset_type", text),
        FieldRule("mime_type", mime_type),
        FieldRule("byte_size", non_negative_int),
        FieldRule("content_hash", text, required=False),
        _CREATED_AT,
    ),
)

ASSET_LINK_SCHEMA = EntitySchema(
    "AssetLink",
    (
        _ID,
        FieldRule("asset_id", text),
        FieldRule("entity_type", choice(*ENTITY_TYPES)),
        FieldRule("entity_id", text),
        FieldRule("role", namespaced(ROLE_KIND)),
        _CREATED_AT,
    ),
)

LIBRARY_SCHEMA = EntitySchema(
    "Library",
    (
        _ID,
        FieldRule("label", text),
        FieldRule("definition_json", json_value),
        _CREATED_AT,
        _UPDATED_AT,
    ),
    (created_not_after_updated,),
)

CHANGE_LOG_ENTRY_SCHEMA = EntitySchema(
    "ChangeLogEntry",
    (
        FieldRule("id", text),
        FieldRule("timestamp", timestamp),
        FieldRule("op_type", text),
        FieldRule("payload_json", json_value, nullable=True),
        FieldRule("device_id", text, required=False),
        FieldRule("seq", non_negative_int, required=False),
    ),
)


# ============================================================================
# INTERPRETER
# ============================================================================

def validate_input(
    schema: EntitySchema,
    data: dict[str, Any],
    *,
    namespaces: NamespaceRegistry | None = None,
    partial: bool = False,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Validate and normalize input against a schema, failing fast.

    Args:
        schema: Constraint set for the entity kind
        data: Input keyed by snake_case attribute names. None means
            "not supplied" except for nullable fields.
        namespaces: Registry for namespaced-key rules (non-strict default)
        partial: Only validate the keys present in ``data`` (updates);
            required-field and default handling is skipped
        context: Existing values the invariants should see alongside the
            input (the stored entity during an update)

    Returns:
        Normalized values keyed by attribute name. Optional fields left
        unset are present with value None.

    Raises:
        ValidationError: On the first violated rule
        NamespaceViolationError: If the first violation is a namespace rule
    """
    known = {rule.name for rule in schema.rules}
    for name in data:
        if name not in known:
            raise ValidationError(
                f"{schema.entity} input invalid for {to_wire_name(name)}: unexpected field",
                field=to_wire_name(name),
            )

    ctx = RuleContext(namespaces=namespaces or NamespaceRegistry())
    normalized: dict[str, Any] = {}

    for rule in schema.rules:
        value = data.get(rule.name, _UNSET)
        if partial and value is _UNSET:
            continue
        if value is _UNSET or (value is None and not rule.nullable):
            if rule.required:
                _fail(schema, rule.name, "is required")
            normalized[rule.name] = rule.default
            if rule.default is None:
                continue
            value = rule.default
        try:
            normalized[rule.name] = rule.check(value, ctx)
        except RuleViolation as e:
            _fail(schema, rule.name, e.reason, namespace=e.namespace, key=value)

    merged = {**(context or {}), **{k: v for k, v in normalized.items() if v is not None}}
    for invariant in schema.invariants:
        try:
            invariant(merged, ctx)
        except RuleViolation as e:
            _fail(schema, e.field, e.reason, namespace=e.namespace, key=merged.get(e.field))

    return normalized


def _fail(
    schema: EntitySchema,
    name: str | None,
    reason: str,
    namespace: bool = False,
    key: Any = None,
) -> None:
    wire = to_wire_name(name) if name else None
    message = f"{schema.entity} input invalid for {wire}: {reason}"
    if namespace:
        if key is not None and not isinstance(key, str):
            key = repr(key)
        raise NamespaceViolationError(message, key=key, field=wire)
    raise ValidationError(message, field=wire)
