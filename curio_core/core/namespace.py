"""Extension and dimension namespace registry.

Keys minted outside the kernel follow ``<kind>.<extensionId>.<name>``:

    ext.games.releaseYear        field key minted by extension 'games'
    role.games.boxArt            asset role minted by extension 'games'
    action.pricer.refresh        action id minted by plugin 'pricer'
    location.games.shelf         dimension key of type 'location'

Shared namespaces (asset roles and dimension types) also accept the
two-segment core form ``<kind>.<name>`` (``role.cover``, ``owner.default``).
Field keys and action ids have no shared form.

DEPENDENCY DIRECTION:
A Plugin (executable) may depend on an Extension (data-only) by id. An
Extension manifest must never declare a dependency on a Plugin.

The registry holds no state beyond the extension and plugin id sets it is
given or that are registered through it. All checks are predicates that
either return the key or raise NamespaceViolationError.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal

from ..exceptions import DuplicateIdError, NamespaceViolationError, ValidationError

logger = logging.getLogger(__name__)

FIELD_KIND = "ext"
ROLE_KIND = "role"
ACTION_KIND = "action"
LIBRARY_KIND = "library"

DEFAULT_SHARED_NAMESPACES = frozenset({ROLE_KIND, "owner", "location"})

MANIFEST_TIERS = ("public", "private")

SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


@dataclass
class ExtensionManifest:
    """Data-only bundle defining vocabulary. ``ui`` is carried, never inspected."""

    id: str
    version: str
    tier: Literal["public", "private"]
    fields: list[dict] = field(default_factory=list)
    ui: Any = None
    libraries: list[dict] = field(default_factory=list)
    dimensions: list[dict] = field(default_factory=list)
    dependencies: list[str | dict] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> ExtensionManifest:
        return cls(
            id=data.get("id"),
            version=data.get("version"),
            tier=data.get("tier"),
            fields=list(data.get("fields") or []),
            ui=data.get("ui"),
            libraries=list(data.get("libraries") or []),
            dimensions=list(data.get("dimensions") or []),
            dependencies=list(data.get("dependencies") or []),
        )


@dataclass
class PluginManifest:
    """Executable module declaration. Only ids and dependencies are checked."""

    id: str
    version: str
    actions: list[str | dict] = field(default_factory=list)
    dependencies: list[str | dict] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> PluginManifest:
        return cls(
            id=data.get("id"),
            version=data.get("version"),
            actions=list(data.get("actions") or []),
            dependencies=list(data.get("dependencies") or []),
        )


def _dependency_ref(dependency: str | dict) -> tuple[str | None, str | None]:
    """Return (id, declared kind) for a manifest dependency entry."""
    if isinstance(dependency, str):
        return dependency, None
    if isinstance(dependency, dict):
        return dependency.get("id"), dependency.get("kind")
    return None, None


def _entry_key(entry: str | dict, key_name: str) -> Any:
    if isinstance(entry, dict):
        return entry.get(key_name)
    return entry


class NamespaceRegistry:
    """Validates namespaced keys and manifest dependency direction.

    Attributes:
        strict: If True, the extension segment of a three-part key must be
            a registered extension id
        shared_namespaces: Kinds that also accept ``<kind>.<name>``
    """

    def __init__(
        self,
        extension_ids: Iterable[str] = (),
        plugin_ids: Iterable[str] = (),
        *,
        strict: bool = False,
        shared_namespaces: Iterable[str] = DEFAULT_SHARED_NAMESPACES,
    ):
        self._extension_ids = set(extension_ids)
        self._plugin_ids = set(plugin_ids)
        self.strict = strict
        self.shared_namespaces = frozenset(shared_namespaces)

    @property
    def extension_ids(self) -> frozenset[str]:
        return frozenset(self._extension_ids)

    @property
    def plugin_ids(self) -> frozenset[str]:
        return frozenset(self._plugin_ids)

    def is_registered(self, extension_id: str) -> bool:
        return extension_id in self._extension_ids

    # ==========================================================================
    # KEY CHECKS
    # ==========================================================================

    def key_violation(
        self,
        kind: str,
        key: Any,
        *,
        allow_shared: bool | None = None,
        owner_id: str | None = None,
    ) -> str | None:
        """Explain why ``key`` is not a valid ``kind`` key, or return None.

        Args:
            kind: Leading namespace segment ('ext', 'role', 'action', a
                dimension type, ...)
            key: Candidate key
            allow_shared: Accept ``<kind>.<name>``; defaults to whether
                ``kind`` is a shared namespace
            owner_id: If given, the key must be minted by this extension or
                plugin (its middle segment must equal owner_id)

        Returns:
            Human-readable reason, or None if the key is valid
        """
        if allow_shared is None:
            allow_shared = kind in self.shared_namespaces
        expected = f"{kind}.<extensionId>.<name>"
        if allow_shared and owner_id is None:
            expected = f"{kind}.<name> or {expected}"

        if not isinstance(key, str):
            return f"must be a string of the form {expected}"
        parts = key.split(".")
        if not all(SEGMENT_PATTERN.match(part) for part in parts):
            return f"{key!r} is not a dot-namespaced key of the form {expected}"
        if parts[0] != kind:
            return f"{key!r} must start with '{kind}.'"

        if len(parts) == 2 and allow_shared and owner_id is None:
            return None
        if len(parts) != 3:
            return f"{key!r} must have the form {expected}"

        namespace = parts[1]
        if owner_id is not None:
            if namespace != owner_id:
                return f"{key!r} is outside the namespace of '{owner_id}'"
        elif self.strict and namespace not in self._extension_ids:
            return f"{key!r} names unregistered extension '{namespace}'"
        return None

    def check_key(
        self,
        kind: str,
        key: Any,
        *,
        field: str | None = None,
        allow_shared: bool | None = None,
        owner_id: str | None = None,
    ) -> str:
        """Return ``key`` if it is a valid ``kind`` key.

        Raises:
            NamespaceViolationError: If the key breaks the scheme
        """
        reason = self.key_violation(kind, key, allow_shared=allow_shared, owner_id=owner_id)
        if reason is not None:
            message = f"Invalid {field}: {reason}" if field else f"Invalid key: {reason}"
            raise NamespaceViolationError(message, key=str(key), field=field)
        return key

    def check_field_key(self, key: Any, field: str = "fieldKey") -> str:
        return self.check_key(FIELD_KIND, key, field=field, allow_shared=False)

    def check_role(self, key: Any, field: str = "role") -> str:
        return self.check_key(ROLE_KIND, key, field=field)

    def check_action_id(self, key: Any, field: str = "actionId") -> str:
        return self.check_key(ACTION_KIND, key, field=field, allow_shared=False)

    def check_dimension_key(self, key: Any, dimension_type: str, field: str = "key") -> str:
        return self.check_key(dimension_type, key, field=field, allow_shared=True)

    # ==========================================================================
    # MANIFESTS
    # ==========================================================================

    def _check_identity(self, label: str, manifest: ExtensionManifest | PluginManifest) -> None:
        if not isinstance(manifest.id, str) or not SEGMENT_PATTERN.match(manifest.id):
            raise NamespaceViolationError(
                f"{label} manifest invalid for id: {manifest.id!r} is not a valid id",
                key=str(manifest.id),
                field="id",
            )
        if not isinstance(manifest.version, str) or not manifest.version.strip():
            raise ValidationError(
                f"{label} manifest invalid for version: must be a non-empty string",
                field="version",
            )

    def validate_extension_manifest(self, manifest: ExtensionManifest | dict) -> ExtensionManifest:
        """Check an Extension manifest's keys and dependency direction.

        Args:
            manifest: ExtensionManifest or its dict form

        Returns:
            The manifest as an ExtensionManifest

        Raises:
            ValidationError: If id, version or tier is malformed
            NamespaceViolationError: If a minted key is outside the
                extension's namespace or a dependency names a Plugin
        """
        if isinstance(manifest, dict):
            manifest = ExtensionManifest.from_dict(manifest)

        self._check_identity("Extension", manifest)
        if manifest.tier not in MANIFEST_TIERS:
            raise ValidationError(
                f"Extension manifest invalid for tier: must be one of {list(MANIFEST_TIERS)}",
                field="tier",
            )
        ext_id = manifest.id

        for i, entry in enumerate(manifest.fields):
            self.check_key(
                FIELD_KIND, _entry_key(entry, "key"),
                field=f"fields[{i}].key", allow_shared=False, owner_id=ext_id,
            )

        for i, entry in enumerate(manifest.dimensions):
            dimension_type = entry.get("dimensionType") if isinstance(entry, dict) else None
            if not isinstance(dimension_type, str) or not SEGMENT_PATTERN.match(dimension_type):
                raise ValidationError(
                    f"Extension manifest invalid for dimensions[{i}].dimensionType: "
                    "must be a single key segment",
                    field=f"dimensions[{i}].dimensionType",
                )
            self.check_key(
                dimension_type, entry.get("key"),
                field=f"dimensions[{i}].key", allow_shared=False, owner_id=ext_id,
            )

        for i, entry in enumerate(manifest.libraries):
            self.check_key(
                LIBRARY_KIND, _entry_key(entry, "key"),
                field=f"libraries[{i}].key", allow_shared=False, owner_id=ext_id,
            )
            field_keys = entry.get("fieldKeys", []) if isinstance(entry, dict) else []
            for j, field_key in enumerate(field_keys):
                # Keys minted by this manifest are not registered yet
                own = isinstance(field_key, str) and field_key.split(".")[1:2] == [ext_id]
                self.check_key(
                    FIELD_KIND, field_key,
                    field=f"libraries[{i}].fieldKeys[{j}]", allow_shared=False,
                    owner_id=ext_id if own else None,
                )

        for i, dependency in enumerate(manifest.dependencies):
            dep_id, dep_kind = _dependency_ref(dependency)
            if dep_kind == "plugin" or dep_id in self._plugin_ids:
                raise NamespaceViolationError(
                    f"Extension {ext_id} must not depend on Plugin {dep_id}",
                    key=str(dep_id),
                    field=f"dependencies[{i}]",
                )

        return manifest

    def validate_plugin_manifest(self, manifest: PluginManifest | dict) -> PluginManifest:
        """Check a Plugin manifest's action ids and dependencies.

        Raises:
            ValidationError: If id or version is malformed
            NamespaceViolationError: If an action id is outside the plugin's
                namespace, or (strict mode) a dependency names an
                unregistered extension
        """
        if isinstance(manifest, dict):
            manifest = PluginManifest.from_dict(manifest)

        self._check_identity("Plugin", manifest)

        for i, entry in enumerate(manifest.actions):
            self.check_key(
                ACTION_KIND, _entry_key(entry, "id"),
                field=f"actions[{i}]", allow_shared=False, owner_id=manifest.id,
            )

        if self.strict:
            for i, dependency in enumerate(manifest.dependencies):
                dep_id, dep_kind = _dependency_ref(dependency)
                if dep_kind == "plugin" or dep_id in self._plugin_ids:
                    continue
                if dep_id not in self._extension_ids:
                    raise NamespaceViolationError(
                        f"Plugin {manifest.id} depends on unregistered extension {dep_id}",
                        key=str(dep_id),
                        field=f"dependencies[{i}]",
                    )

        return manifest

    def register_extension(self, manifest: ExtensionManifest | dict) -> ExtensionManifest:
        """Validate an Extension manifest and add its id to the registry.

        Raises:
            DuplicateIdError: If the id is already registered (as either kind)
        """
        manifest = self.validate_extension_manifest(manifest)
        if manifest.id in self._extension_ids or manifest.id in self._plugin_ids:
            raise DuplicateIdError("Extension", manifest.id)
        self._extension_ids.add(manifest.id)
        logger.debug("Registered extension %s@%s", manifest.id, manifest.version)
        return manifest

    def register_plugin(self, manifest: PluginManifest | dict) -> PluginManifest:
        """Validate a Plugin manifest and add its id to the registry.

        Raises:
            DuplicateIdError: If the id is already registered (as either kind)
        """
        manifest = self.validate_plugin_manifest(manifest)
        if manifest.id in self._plugin_ids or manifest.id in self._extension_ids:
            raise DuplicateIdError("Plugin", manifest.id)
        self._plugin_ids.add(manifest.id)
        logger.debug("Registered plugin %s@%s", manifest.id, manifest.version)
        return manifest
