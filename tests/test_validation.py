"""Tests for curio_core.core.validation.

The interpreter is exercised directly here; the per-kind test modules
cover the same schemas through the Collection.
"""

import pytest

from curio_core.core.namespace import NamespaceRegistry
from curio_core.core.validation import (
    ASSET_SCHEMA,
    HOLDING_SCHEMA,
    LIBRARY_SCHEMA,
    WORK_SCHEMA,
    EntitySchema,
    FieldRule,
    RuleViolation,
    text,
    validate_input,
)
from curio_core.exceptions import NamespaceViolationError, ValidationError


class TestValidateInput:
    """Tests for validate_input."""

    def test_normalizes_and_fills_optionals(self):
        values = validate_input(WORK_SCHEMA, {"display_title": " Mother ", "media_type_key": "media.game"})

        assert values == {
            "id": None,
            "display_title": "Mother",
            "media_type_key": "media.game",
            "created_at": None,
            "updated_at": None,
        }

    def test_defaults_applied(self):
        values = validate_input(HOLDING_SCHEMA, {"work_id": "w1"})

        assert values["owner_key"] == "owner.default"
        assert values["location_key"] == "location.default"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError, match="unexpected field") as exc_info:
            validate_input(WORK_SCHEMA, {"display_title": "x", "media_type_key": "y", "rating": 5})

        assert exc_info.value.field == "rating"

    def test_fails_on_first_rule_in_schema_order(self):
        """Both fields are invalid; displayTitle comes first in the schema."""
        with pytest.raises(ValidationError) as exc_info:
            validate_input(WORK_SCHEMA, {"display_title": "", "media_type_key": ""})

        assert exc_info.value.field == "displayTitle"
        assert str(exc_info.value) == "Work input invalid for displayTitle: must be a non-empty string"

    def test_missing_required_field(self):
        with pytest.raises(ValidationError, match="is required") as exc_info:
            validate_input(ASSET_SCHEMA, {"asset_type": "image", "mime_type": "image/png"})

        assert exc_info.value.field == "byteSize"
        assert exc_info.value.details == {"field": "byteSize"}

    def test_partial_only_checks_given_keys(self):
        values = validate_input(WORK_SCHEMA, {"display_title": " New "}, partial=True)

        assert values == {"display_title": "New"}

    def test_partial_invariant_sees_context(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_input(
                WORK_SCHEMA,
                {"updated_at": 5},
                partial=True,
                context={"created_at": 10, "updated_at": 10},
            )

        assert exc_info.value.field == "updatedAt"

    def test_namespace_rule_raises_namespace_violation(self):
        with pytest.raises(NamespaceViolationError) as exc_info:
            validate_input(HOLDING_SCHEMA, {"work_id": "w1", "owner_key": "sam"})

        assert exc_info.value.field == "ownerKey"

    def test_strict_registry_is_consulted(self):
        strict = NamespaceRegistry(["family"], strict=True)

        values = validate_input(
            HOLDING_SCHEMA, {"work_id": "w1", "owner_key": "owner.family.sam"}, namespaces=strict
        )
        assert values["owner_key"] == "owner.family.sam"

        with pytest.raises(NamespaceViolationError, match="unregistered extension 'friends'"):
            validate_input(
                HOLDING_SCHEMA, {"work_id": "w1", "owner_key": "owner.friends.alex"}, namespaces=strict
            )

    def test_custom_schema(self):
        """Rules are plain callables; new kinds need no interpreter changes."""
        def even(value, ctx):
            if value % 2:
                raise RuleViolation("must be even")
            return value

        schema = EntitySchema("Pair", (FieldRule("name", text), FieldRule("count", even)))

        assert validate_input(schema, {"name": "socks", "count": 2}) == {"name": "socks", "count": 2}
        with pytest.raises(ValidationError, match="Pair input invalid for count: must be even"):
            validate_input(schema, {"name": "socks", "count": 3})

    def test_namespace_violation_carries_rejected_key(self):
        with pytest.raises(NamespaceViolationError) as exc_info:
            validate_input(HOLDING_SCHEMA, {"work_id": "w1", "location_key": " shelf "})

        assert exc_info.value.key == " shelf "
        assert exc_info.value.details["key"] == " shelf "


class TestJsonValue:
    """JSON rules accept only values that decode back to themselves."""

    def test_plain_json_accepted(self):
        definition = {"sort": ["displayTitle"], "filter": {"year": 1995, "boxed": True, "note": None}}

        values = validate_input(LIBRARY_SCHEMA, {"label": "All", "definition_json": definition})

        assert values["definition_json"] == definition
        assert values["definition_json"] is not definition

    @pytest.mark.parametrize(
        "definition",
        [{1: "one"}, {"pair": (2, 3)}, [("a", "b")], {"nested": [{True: 1}]}],
    )
    def test_values_altered_by_encoding_rejected(self, definition):
        with pytest.raises(ValidationError, match="must be plain JSON") as exc_info:
            validate_input(LIBRARY_SCHEMA, {"label": "All", "definition_json": definition})

        assert exc_info.value.field == "definitionJson"

    def test_non_finite_number_rejected(self):
        with pytest.raises(ValidationError, match="JSON-serializable"):
            validate_input(LIBRARY_SCHEMA, {"label": "All", "definition_json": {"x": float("nan")}})

    def test_tuple_field_value_rejected_through_collection(self, collection):
        work = collection.add_work("Chrono Trigger", "media.game")

        with pytest.raises(ValidationError) as exc_info:
            collection.add_field_value("work", work.id, "ext.games.meta", {1: (2, 3)})

        assert exc_info.value.field == "valueJson"
        assert collection.list_field_values() == []
