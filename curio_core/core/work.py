"""Work operations.

A Work is the conceptual item (a game title, a hardware model). Holdings,
field values and asset links hang off it by id.
"""

from __future__ import annotations

from .entity import EntityOperations
from .types import Work
from .validation import WORK_SCHEMA


class WorkOperations(EntityOperations[Work]):
    """Create, update, remove and read Works."""

    kind = "Work"
    op_prefix = "work"
    payload_key = "work"
    id_payload_key = "workId"
    table_name = "works"
    schema = WORK_SCHEMA

    def add(
        self,
        display_title: str,
        media_type_key: str,
        *,
        id: str | None = None,
        created_at: int | None = None,
        updated_at: int | None = None,
    ) -> Work:
        """Create a Work and record ``work.create``.

        Args:
            display_title: Title shown to the user (trimmed, non-empty)
            media_type_key: Extension-defined media type, e.g. 'media.game'
            id: Explicit id (import/history); generated if omitted
            created_at: Explicit creation time; defaults to now
            updated_at: Explicit update time; defaults to created_at

        Returns:
            Copy of the created Work

        Raises:
            ValidationError: If a field is empty or timestamps are invalid
            DuplicateIdError: If the id already exists
        """
        values = self._validate({
            "id": id,
            "display_title": display_title,
            "media_type_key": media_type_key,
            "created_at": created_at,
            "updated_at": updated_at,
        })

        timestamp = self._collection._now()
        work_id = self._resolve_id(values["id"])
        created = values["created_at"] if values["created_at"] is not None else timestamp
        updated = values["updated_at"] if values["updated_at"] is not None else created

        work = Work(
            id=work_id,
            display_title=values["display_title"],
            media_type_key=values["media_type_key"],
            created_at=created,
            updated_at=updated,
        )
        return self._create(work, timestamp)

    def update(
        self,
        work_id: str,
        *,
        display_title: str | None = None,
        media_type_key: str | None = None,
        updated_at: int | None = None,
    ) -> Work:
        """Change a Work's title or media type and record ``work.update``.

        Raises:
            NotFoundError: If work_id doesn't exist
            ValidationError: If a supplied field is invalid
        """
        existing = self._require(work_id)
        changes = self._validate(
            self._changes(
                display_title=display_title,
                media_type_key=media_type_key,
                updated_at=updated_at,
            ),
            partial=True,
            existing=existing,
        )
        return self._update(existing, changes)

    def _references(self, work: Work) -> list[str]:
        store = self._collection._store
        references = []
        holdings = store.holdings.where(lambda h: h.work_id == work.id)
        if holdings:
            references.append(f"{len(holdings)} Holding(s)")
        fields = store.field_values.where(lambda f: f.entity_type == "work" and f.entity_id == work.id)
        if fields:
            references.append(f"{len(fields)} FieldValue(s)")
        links = store.asset_links.where(lambda a: a.entity_type == "work" and a.entity_id == work.id)
        if links:
            references.append(f"{len(links)} AssetLink(s)")
        return references
