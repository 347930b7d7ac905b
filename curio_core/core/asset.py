"""Asset and AssetLink operations.

Assets are file metadata only (type, MIME type, size, optional content
hash). The bytes live in whatever blob store the host uses. An AssetLink
attaches an Asset to a Work or Holding under a role, either a shared role
(``role.cover``) or an extension role (``role.<extId>.<name>``).

OP TYPES:
- asset.create / asset.remove for Assets
- asset.link / asset.unlink for AssetLinks
"""

from __future__ import annotations

from ..exceptions import NotFoundError
from .entity import EntityOperations
from .types import Asset, AssetLink, EntityType
from .validation import ASSET_LINK_SCHEMA, ASSET_SCHEMA


class AssetOperations(EntityOperations[Asset]):
    """Register, remove and read Asset metadata."""

    kind = "Asset"
    op_prefix = "asset"
    payload_key = "asset"
    id_payload_key = "assetId"
    table_name = "assets"
    schema = ASSET_SCHEMA

    def add(
        self,
        asset_type: str,
        mime_type: str,
        byte_size: int,
        *,
        content_hash: str | None = None,
        id: str | None = None,
        created_at: int | None = None,
    ) -> Asset:
        """Register Asset metadata and record ``asset.create``.

        Raises:
            ValidationError: If a field is invalid (e.g. negative byte_size)
            DuplicateIdError: If the id already exists
        """
        values = self._validate({
            "id": id,
            "asset_type": asset_type,
            "mime_type": mime_type,
            "byte_size": byte_size,
            "content_hash": content_hash,
            "created_at": created_at,
        })

        timestamp = self._collection._now()
        asset = Asset(
            id=self._resolve_id(values["id"]),
            asset_type=values["asset_type"],
            mime_type=values["mime_type"],
            byte_size=values["byte_size"],
            content_hash=values["content_hash"],
            created_at=values["created_at"] if values["created_at"] is not None else timestamp,
        )
        return self._create(asset, timestamp)

    def find_by_hash(self, content_hash: str) -> list[Asset]:
        """List copies of Assets with the given content hash."""
        return [asset for asset in self.list() if asset.content_hash == content_hash]

    def _references(self, asset: Asset) -> list[str]:
        links = self._collection._store.asset_links.where(lambda link: link.asset_id == asset.id)
        return [f"{len(links)} AssetLink(s)"] if links else []


class AssetLinkOperations(EntityOperations[AssetLink]):
    """Link Assets to Works/Holdings, unlink them, and read links."""

    kind = "AssetLink"
    op_prefix = "asset"
    payload_key = "assetLink"
    id_payload_key = "assetLinkId"
    table_name = "asset_links"
    schema = ASSET_LINK_SCHEMA
    op_types = {"create": "asset.link", "remove": "asset.unlink"}

    def add(
        self,
        asset_id: str,
        entity_type: EntityType,
        entity_id: str,
        role: str,
        *,
        id: str | None = None,
        created_at: int | None = None,
    ) -> AssetLink:
        """Link an Asset to a Work/Holding and record ``asset.link``.

        Raises:
            ValidationError: If a field is invalid
            NamespaceViolationError: If role is not role.<name> or role.<extId>.<name>
            NotFoundError: If the Asset or the target entity doesn't exist
            DuplicateIdError: If the id already exists
        """
        values = self._validate({
            "id": id,
            "asset_id": asset_id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "role": role,
            "created_at": created_at,
        })
        if values["asset_id"] not in self._collection._store.assets:
            raise NotFoundError("Asset", values["asset_id"], field="assetId")
        self._resolve_target(values["entity_type"], values["entity_id"])

        timestamp = self._collection._now()
        link = AssetLink(
            id=self._resolve_id(values["id"]),
            asset_id=values["asset_id"],
            entity_type=values["entity_type"],
            entity_id=values["entity_id"],
            role=values["role"],
            created_at=values["created_at"] if values["created_at"] is not None else timestamp,
        )
        return self._create(link, timestamp)

    def list(
        self,
        entity_type: EntityType | None = None,
        entity_id: str | None = None,
    ) -> list[AssetLink]:
        """List copies of links, optionally for one target entity."""
        return [
            link for link in super().list()
            if (entity_type is None or link.entity_type == entity_type)
            and (entity_id is None or link.entity_id == entity_id)
        ]
