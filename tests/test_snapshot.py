"""Tests for snapshot export/import and change log replay.

Coverage:
- export_snapshot format and isolation
- from_snapshot round trip (entities, order, change log)
- Import validation (format, records, references, duplicates)
- replay_change_log / from_change_log
"""

import json

import pytest

from curio_core.core import Collection
from curio_core.core.namespace import NamespaceRegistry
from curio_core.core.snapshot import SNAPSHOT_FORMAT, replay_change_log
from curio_core.exceptions import (
    DuplicateIdError,
    NamespaceViolationError,
    NotFoundError,
    ValidationError,
)

from conftest import T0


@pytest.fixture
def populated(collection, clock):
    """Collection touching every entity kind, including updates and removals."""
    work = collection.add_work("Chrono Trigger", "media.game")
    other = collection.add_work("EarthBound", "media.game")
    holding = collection.add_holding(work.id, location_key="location.shelf")
    collection.add_dimension_value("location.shelf", "Shelf", "location", meta_json={"room": "den"})
    collection.set_field_value("work", work.id, "ext.games.releaseYear", 1995)
    collection.set_field_value("holding", holding.id, "ext.games.condition", None)
    asset = collection.add_asset("image", "image/jpeg", 2048, content_hash="sha256:abc")
    collection.add_asset_link(asset.id, "work", work.id, "role.cover")
    collection.add_library("SNES", {"filter": {"ext.games.platform": "SNES"}})
    clock.advance(100)
    collection.update_work(work.id, display_title="Chrono Trigger (SNES)")
    collection.set_field_value("work", work.id, "ext.games.releaseYear", 1996)
    scratch = collection.add_work("Scratch", "media.game")
    collection.remove_work(scratch.id)
    collection.update_dimension_value("location.shelf", label="Den shelf")
    collection.update_holding(holding.id, owner_key="owner.sam")
    assert other
    return collection


def _state(collection):
    return {
        "works": collection.list_works(),
        "holdings": collection.list_holdings(),
        "fieldValues": collection.list_field_values(),
        "dimensionValues": collection.list_dimension_values(),
        "assets": collection.list_assets(),
        "assetLinks": collection.list_asset_links(),
        "libraries": collection.list_libraries(),
    }


class TestExportSnapshot:
    """Tests for Collection.export_snapshot."""

    def test_format(self, populated):
        snapshot = populated.export_snapshot()

        assert snapshot["format"] == SNAPSHOT_FORMAT
        assert snapshot["version"] == 1
        assert snapshot["exportedAt"] == T0 + 100
        assert set(snapshot["entities"]) == {
            "works", "holdings", "fieldValues", "dimensionValues", "assets", "assetLinks", "libraries",
        }
        assert [w["displayTitle"] for w in snapshot["entities"]["works"]] == [
            "Chrono Trigger (SNES)",
            "EarthBound",
        ]
        assert len(snapshot["changeLog"]) == len(populated.get_change_log())

    def test_json_serializable(self, populated):
        snapshot = populated.export_snapshot()

        assert json.loads(json.dumps(snapshot)) == snapshot

    def test_export_is_detached(self, populated):
        snapshot = populated.export_snapshot()
        snapshot["entities"]["works"][0]["displayTitle"] = "Tampered"
        snapshot["changeLog"].clear()

        assert populated.list_works()[0].display_title == "Chrono Trigger (SNES)"
        assert populated.get_change_log()


class TestImportSnapshot:
    """Tests for Collection.from_snapshot."""

    def test_round_trip(self, populated):
        restored = Collection.from_snapshot(populated.export_snapshot())

        assert _state(restored) == _state(populated)
        assert restored.get_change_log() == populated.get_change_log()

    def test_round_trip_through_json(self, populated):
        text = json.dumps(populated.export_snapshot())

        restored = Collection.from_snapshot(json.loads(text))

        assert _state(restored) == _state(populated)

    def test_import_appends_no_entries(self, populated):
        snapshot = populated.export_snapshot()
        snapshot["changeLog"] = []

        restored = Collection.from_snapshot(snapshot)

        assert restored.get_change_log() == []
        assert len(restored.list_works()) == 2

    def test_restored_collection_accepts_new_mutations(self, populated, clock):
        restored = Collection.from_snapshot(populated.export_snapshot(), now=clock, id_factory=lambda: "new")

        work = restored.add_work("Mother 3", "media.game", id="w-mother3")

        assert restored.get_change_log()[-1].id == "new"
        assert restored.get_work(work.id) == work

    @pytest.mark.parametrize(
        "changes, field",
        [({"format": "other"}, "format"), ({"version": 2}, "version")],
    )
    def test_unsupported_format(self, populated, changes, field):
        snapshot = {**populated.export_snapshot(), **changes}

        with pytest.raises(ValidationError) as exc_info:
            Collection.from_snapshot(snapshot)

        assert exc_info.value.field == field

    def test_invalid_record_reports_path(self, populated):
        snapshot = populated.export_snapshot()
        snapshot["entities"]["works"][1]["displayTitle"] = "   "

        with pytest.raises(ValidationError) as exc_info:
            Collection.from_snapshot(snapshot)

        assert exc_info.value.field == "entities.works[1].displayTitle"

    def test_missing_timestamp_rejected(self, populated):
        snapshot = populated.export_snapshot()
        del snapshot["entities"]["libraries"][0]["createdAt"]

        with pytest.raises(ValidationError, match="is required") as exc_info:
            Collection.from_snapshot(snapshot)

        assert exc_info.value.field == "entities.libraries[0].createdAt"

    def test_unknown_record_field_rejected(self, populated):
        snapshot = populated.export_snapshot()
        snapshot["entities"]["assets"][0]["color"] = "blue"

        with pytest.raises(ValidationError, match="unexpected field"):
            Collection.from_snapshot(snapshot)

    def test_namespace_violation_preserved(self, populated):
        snapshot = populated.export_snapshot()
        snapshot["entities"]["fieldValues"][0]["fieldKey"] = "releaseYear"

        with pytest.raises(NamespaceViolationError) as exc_info:
            Collection.from_snapshot(snapshot)

        assert exc_info.value.field == "entities.fieldValues[0].fieldKey"

    def test_strict_registry_applies_to_import(self, populated):
        strict = NamespaceRegistry(["family"], strict=True)

        with pytest.raises(NamespaceViolationError):
            Collection.from_snapshot(populated.export_snapshot(), namespaces=strict)

    def test_dangling_reference_rejected(self, populated):
        snapshot = populated.export_snapshot()
        snapshot["entities"]["holdings"][0]["workId"] = "missing"

        with pytest.raises(NotFoundError) as exc_info:
            Collection.from_snapshot(snapshot)

        assert exc_info.value.field == "entities.holdings[0].workId"

    def test_duplicate_id_rejected(self, populated):
        snapshot = populated.export_snapshot()
        works = snapshot["entities"]["works"]
        works.append(dict(works[0]))

        with pytest.raises(DuplicateIdError):
            Collection.from_snapshot(snapshot)

    def test_unknown_op_type_in_change_log(self, populated):
        snapshot = populated.export_snapshot()
        snapshot["changeLog"][0]["opType"] = "work.archive"

        with pytest.raises(ValidationError) as exc_info:
            Collection.from_snapshot(snapshot)

        assert exc_info.value.field == "changeLog[0].opType"

    @pytest.mark.parametrize(
        "changes, field",
        [
            ({"entities": ["works"]}, "entities"),
            ({"entities": {"works": {"id": "w1"}}}, "entities.works"),
            ({"changeLog": {"id": "e1"}}, "changeLog"),
        ],
    )
    def test_malformed_containers_rejected(self, populated, changes, field):
        snapshot = {**populated.export_snapshot(), **changes}

        with pytest.raises(ValidationError) as exc_info:
            Collection.from_snapshot(snapshot)

        assert exc_info.value.field == field


class TestReplay:
    """Tests for replay_change_log and Collection.from_change_log."""

    def test_replay_matches_export(self, populated):
        snapshot = populated.export_snapshot()

        assert replay_change_log(populated.get_change_log()) == snapshot["entities"]

    def test_replay_accepts_records(self, populated):
        records = populated.export_snapshot()["changeLog"]

        assert replay_change_log(records) == populated.export_snapshot()["entities"]

    def test_replay_empty(self):
        assert replay_change_log([]) == {
            "dimensionValues": [],
            "works": [],
            "holdings": [],
            "assets": [],
            "assetLinks": [],
            "fieldValues": [],
            "libraries": [],
        }

    def test_replay_prefix(self, populated):
        """Replaying the first two entries yields the state after two mutations."""
        entities = replay_change_log(populated.get_change_log()[:2])

        assert [w["displayTitle"] for w in entities["works"]] == ["Chrono Trigger", "EarthBound"]

    def test_replay_rejects_unknown_op(self):
        with pytest.raises(ValidationError, match="unknown op type"):
            replay_change_log([{"id": "e1", "timestamp": T0, "opType": "work.archive", "payloadJson": {}}])

    def test_replay_rejects_incomplete_payload(self):
        with pytest.raises(ValidationError, match="missing work"):
            replay_change_log([{"id": "e1", "timestamp": T0, "opType": "work.create", "payloadJson": {}}])

    def test_from_change_log(self, populated):
        restored = Collection.from_change_log(populated.get_change_log())

        assert _state(restored) == _state(populated)
        assert restored.get_change_log() == populated.get_change_log()

    def test_replay_rejects_non_object_payload(self):
        with pytest.raises(ValidationError) as exc_info:
            replay_change_log([{"id": "e1", "timestamp": T0, "opType": "work.create", "payloadJson": [1]}])

        assert exc_info.value.field == "changeLog[0].payloadJson"

    def test_replay_rejects_non_object_entry(self):
        with pytest.raises(ValidationError) as exc_info:
            replay_change_log(["work.create"])

        assert exc_info.value.field == "changeLog[0]"

    def test_from_change_log_rejects_non_object_payload(self):
        entries = [{"id": "x", "timestamp": 1, "opType": "work.create", "payloadJson": [1]}]

        with pytest.raises(ValidationError, match="must be an object"):
            Collection.from_change_log(entries)
