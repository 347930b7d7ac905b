"""Holding operations.

A Holding is a concrete copy of, or access right to, a Work, placed on an
owner and a location dimension (``owner.default``/``location.default``
unless given).
"""

from __future__ import annotations

from ..exceptions import NotFoundError
from .entity import EntityOperations
from .types import Holding
from .validation import HOLDING_SCHEMA


class HoldingOperations(EntityOperations[Holding]):
    """Create, update, remove and read Holdings."""

    kind = "Holding"
    op_prefix = "holding"
    payload_key = "holding"
    id_payload_key = "holdingId"
    table_name = "holdings"
    schema = HOLDING_SCHEMA

    def add(
        self,
        work_id: str,
        *,
        owner_key: str | None = None,
        location_key: str | None = None,
        id: str | None = None,
        created_at: int | None = None,
        updated_at: int | None = None,
    ) -> Holding:
        """Create a Holding of an existing Work and record ``holding.create``.

        Raises:
            ValidationError: If a field is invalid
            NamespaceViolationError: If owner/location keys are malformed
            NotFoundError: If work_id doesn't resolve
            DuplicateIdError: If the id already exists
        """
        values = self._validate({
            "id": id,
            "work_id": work_id,
            "owner_key": owner_key,
            "location_key": location_key,
            "created_at": created_at,
            "updated_at": updated_at,
        })
        self._resolve_work(values["work_id"])

        timestamp = self._collection._now()
        holding_id = self._resolve_id(values["id"])
        created = values["created_at"] if values["created_at"] is not None else timestamp

        holding = Holding(
            id=holding_id,
            work_id=values["work_id"],
            owner_key=values["owner_key"],
            location_key=values["location_key"],
            created_at=created,
            updated_at=values["updated_at"] if values["updated_at"] is not None else created,
        )
        return self._create(holding, timestamp)

    def update(
        self,
        holding_id: str,
        *,
        work_id: str | None = None,
        owner_key: str | None = None,
        location_key: str | None = None,
        updated_at: int | None = None,
    ) -> Holding:
        """Move a Holding (owner/location/work) and record ``holding.update``.

        Raises:
            NotFoundError: If holding_id or a new work_id doesn't resolve
            ValidationError: If a supplied field is invalid
        """
        existing = self._require(holding_id)
        changes = self._validate(
            self._changes(
                work_id=work_id,
                owner_key=owner_key,
                location_key=location_key,
                updated_at=updated_at,
            ),
            partial=True,
            existing=existing,
        )
        if "work_id" in changes:
            self._resolve_work(changes["work_id"])
        return self._update(existing, changes)

    def for_work(self, work_id: str) -> list[Holding]:
        """List copies of the Holdings of one Work."""
        return [h for h in self.list() if h.work_id == work_id]

    def _resolve_work(self, work_id: str) -> None:
        if work_id not in self._collection._store.works:
            raise NotFoundError("Work", work_id, field="workId")

    def _references(self, holding: Holding) -> list[str]:
        store = self._collection._store
        references = []
        fields = store.field_values.where(
            lambda f: f.entity_type == "holding" and f.entity_id == holding.id
        )
        if fields:
            references.append(f"{len(fields)} FieldValue(s)")
        links = store.asset_links.where(
            lambda a: a.entity_type == "holding" and a.entity_id == holding.id
        )
        if links:
            references.append(f"{len(links)} AssetLink(s)")
        return references
