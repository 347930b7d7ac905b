"""Tests for the namespace registry and manifest checks.

Coverage:
- Key shapes per kind (ext, role, action, dimension types)
- Strict mode (registered extension ids only)
- Extension/Plugin manifest validation and dependency direction
- Registration
"""

import pytest

from curio_core.core import Collection
from curio_core.core.namespace import ExtensionManifest, NamespaceRegistry, PluginManifest
from curio_core.exceptions import DuplicateIdError, NamespaceViolationError, ValidationError

GAMES_EXTENSION = {
    "id": "games",
    "version": "1.0.0",
    "tier": "public",
    "fields": [{"key": "ext.games.platform"}, {"key": "ext.games.releaseYear"}],
    "dimensions": [{"dimensionType": "location", "key": "location.games.shelf"}],
    "libraries": [{"key": "library.games.snes", "fieldKeys": ["ext.games.platform"]}],
    "ui": {"anything": ["goes", "here"]},
}


@pytest.fixture
def registry():
    return NamespaceRegistry()


class TestKeyChecks:
    """Tests for NamespaceRegistry key predicates."""

    @pytest.mark.parametrize("key", ["ext.games.platform", "ext.my-ext.release_year"])
    def test_valid_field_keys(self, registry, key):
        assert registry.check_field_key(key) == key

    @pytest.mark.parametrize("key", ["ext.platform", "role.games.x", "ext.games.", 42, None])
    def test_invalid_field_keys(self, registry, key):
        with pytest.raises(NamespaceViolationError) as exc_info:
            registry.check_field_key(key)

        assert exc_info.value.field == "fieldKey"

    def test_roles_allow_shared_form(self, registry):
        assert registry.check_role("role.cover") == "role.cover"
        assert registry.check_role("role.games.boxArt") == "role.games.boxArt"

    def test_actions_have_no_shared_form(self, registry):
        assert registry.check_action_id("action.pricer.refresh") == "action.pricer.refresh"
        with pytest.raises(NamespaceViolationError):
            registry.check_action_id("action.refresh")

    def test_dimension_keys(self, registry):
        assert registry.check_dimension_key("region.pal", "region") == "region.pal"
        with pytest.raises(NamespaceViolationError, match="must start with 'region.'"):
            registry.check_dimension_key("location.pal", "region")

    def test_error_message_and_key(self, registry):
        with pytest.raises(NamespaceViolationError) as exc_info:
            registry.check_key("ext", "ext.platform", field="fieldKey")

        assert str(exc_info.value).startswith("Invalid fieldKey: ")
        assert exc_info.value.key == "ext.platform"

    def test_namespace_violation_is_validation_error(self, registry):
        with pytest.raises(ValidationError):
            registry.check_field_key("platform")

    def test_non_strict_accepts_any_extension(self, registry):
        assert registry.key_violation("ext", "ext.unknown.x") is None

    def test_strict_requires_registration(self):
        registry = NamespaceRegistry(["games"], strict=True)

        assert registry.key_violation("ext", "ext.games.platform") is None
        assert "unregistered extension 'books'" in registry.key_violation("ext", "ext.books.isbn")
        # Core two-segment keys do not name an extension
        assert registry.key_violation("role", "role.cover") is None

    def test_strict_collection_rejects_unregistered_field(self):
        registry = NamespaceRegistry(["games"], strict=True)
        collection = Collection(namespaces=registry)
        work = collection.add_work("Chrono Trigger", "media.game")

        collection.set_field_value("work", work.id, "ext.games.platform", "SNES")
        with pytest.raises(NamespaceViolationError):
            collection.set_field_value("work", work.id, "ext.books.isbn", "x")


class TestExtensionManifest:
    """Tests for validate_extension_manifest."""

    def test_valid_manifest(self, registry):
        manifest = registry.validate_extension_manifest(GAMES_EXTENSION)

        assert isinstance(manifest, ExtensionManifest)
        assert manifest.id == "games"
        assert manifest.ui == {"anything": ["goes", "here"]}

    def test_field_outside_own_namespace(self, registry):
        data = {**GAMES_EXTENSION, "fields": [{"key": "ext.books.isbn"}]}

        with pytest.raises(NamespaceViolationError, match="outside the namespace of 'games'") as exc_info:
            registry.validate_extension_manifest(data)

        assert exc_info.value.field == "fields[0].key"

    def test_dimension_needs_type(self, registry):
        data = {**GAMES_EXTENSION, "dimensions": [{"key": "location.games.shelf"}]}

        with pytest.raises(ValidationError) as exc_info:
            registry.validate_extension_manifest(data)

        assert exc_info.value.field == "dimensions[0].dimensionType"

    def test_library_key_namespaced(self, registry):
        data = {**GAMES_EXTENSION, "libraries": [{"key": "library.snes"}]}

        with pytest.raises(NamespaceViolationError) as exc_info:
            registry.validate_extension_manifest(data)

        assert exc_info.value.field == "libraries[0].key"

    @pytest.mark.parametrize("tier", ["protected", None])
    def test_bad_tier(self, registry, tier):
        with pytest.raises(ValidationError) as exc_info:
            registry.validate_extension_manifest({**GAMES_EXTENSION, "tier": tier})

        assert exc_info.value.field == "tier"

    def test_bad_id(self, registry):
        with pytest.raises(NamespaceViolationError) as exc_info:
            registry.validate_extension_manifest({**GAMES_EXTENSION, "id": "my.games"})

        assert exc_info.value.field == "id"

    def test_depends_on_declared_plugin(self, registry):
        data = {**GAMES_EXTENSION, "dependencies": ["core-fields", {"id": "pricer", "kind": "plugin"}]}

        with pytest.raises(NamespaceViolationError, match="Extension games must not depend on Plugin pricer") as exc_info:
            registry.validate_extension_manifest(data)

        assert exc_info.value.field == "dependencies[1]"

    def test_depends_on_registered_plugin(self):
        registry = NamespaceRegistry(plugin_ids=["pricer"])

        with pytest.raises(NamespaceViolationError):
            registry.validate_extension_manifest({**GAMES_EXTENSION, "dependencies": ["pricer"]})

    def test_depends_on_extension(self, registry):
        manifest = registry.validate_extension_manifest(
            {**GAMES_EXTENSION, "dependencies": [{"id": "media", "kind": "extension"}]}
        )

        assert manifest.dependencies == [{"id": "media", "kind": "extension"}]


class TestPluginManifest:
    """Tests for validate_plugin_manifest."""

    def test_valid_plugin(self, registry):
        manifest = registry.validate_plugin_manifest({
            "id": "pricer",
            "version": "0.2.0",
            "actions": ["action.pricer.refresh", {"id": "action.pricer.export"}],
            "dependencies": ["games"],
        })

        assert isinstance(manifest, PluginManifest)
        assert manifest.dependencies == ["games"]

    def test_action_outside_namespace(self, registry):
        with pytest.raises(NamespaceViolationError) as exc_info:
            registry.validate_plugin_manifest(
                {"id": "pricer", "version": "1", "actions": ["action.other.refresh"]}
            )

        assert exc_info.value.field == "actions[0]"

    def test_missing_version(self, registry):
        with pytest.raises(ValidationError) as exc_info:
            registry.validate_plugin_manifest({"id": "pricer", "version": " "})

        assert exc_info.value.field == "version"

    def test_strict_dependencies_must_be_registered(self):
        registry = NamespaceRegistry(["games"], strict=True)
        registry.validate_plugin_manifest({"id": "pricer", "version": "1", "dependencies": ["games"]})

        with pytest.raises(NamespaceViolationError, match="unregistered extension books"):
            registry.validate_plugin_manifest({"id": "pricer", "version": "1", "dependencies": ["books"]})


class TestRegistration:
    """Tests for register_extension / register_plugin."""

    def test_register_extension_enables_strict_keys(self):
        registry = NamespaceRegistry(strict=True)
        assert registry.key_violation("ext", "ext.games.platform") is not None

        registry.register_extension(GAMES_EXTENSION)

        assert registry.is_registered("games")
        assert registry.extension_ids == frozenset({"games"})
        assert registry.key_violation("ext", "ext.games.platform") is None

    def test_register_plugin_then_extension_depending_on_it(self, registry):
        registry.register_plugin({"id": "pricer", "version": "1"})

        assert registry.plugin_ids == frozenset({"pricer"})
        with pytest.raises(NamespaceViolationError):
            registry.register_extension({**GAMES_EXTENSION, "dependencies": ["pricer"]})
        assert not registry.is_registered("games")

    def test_duplicate_registration(self, registry):
        registry.register_extension(GAMES_EXTENSION)

        with pytest.raises(DuplicateIdError):
            registry.register_extension(GAMES_EXTENSION)
        with pytest.raises(DuplicateIdError):
            registry.register_plugin({"id": "games", "version": "1"})
