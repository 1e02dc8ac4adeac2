"""Tests for the persistence adapters: seed fallback, repair on load, round trips and write failures."""

import json
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.data.technologies import TechCategory, TechStatus
from app.schemas.technology import TechnologyRecord
from app.services.persistence_service import (
    InMemorySlotAdapter,
    SqlSlotAdapter,
    deserialize_collection,
    repair_record,
    seed_collection,
    serialize_collection,
)


def sample_collection() -> list[TechnologyRecord]:
    return seed_collection() + [
        TechnologyRecord(
            id=1767225600000,
            title="Kubernetes",
            description="Container orchestration at scale",
            status=TechStatus.in_progress,
            notes="Read the concepts section",
            category=TechCategory.devops,
            difficulty="advanced",
            deadline=date.today() + timedelta(days=10),
            resources=("https://kubernetes.io/docs/", "https://kind.sigs.k8s.io"),
            created_at=datetime(2026, 1, 1, 9, 30, tzinfo=timezone.utc),
        ),
        TechnologyRecord(id="imported-7", title="SQL", description="Query language"),
    ]


# ---------------------------------------------------------------------------
# Seed fallback
# ---------------------------------------------------------------------------

class TestSeedFallback:
    def test_absent_slot_returns_seed(self):
        records = InMemorySlotAdapter().load()
        assert [r.id for r in records] == [1, 2, 3, 4, 5]
        assert [r.status for r in records].count(TechStatus.completed) == 1

    def test_seed_copies_are_independent(self):
        assert seed_collection() == seed_collection()
        assert seed_collection() is not seed_collection()

    def test_invalid_json_returns_seed(self):
        assert InMemorySlotAdapter(initial="{not json").load() == seed_collection()

    def test_non_array_returns_seed(self):
        assert InMemorySlotAdapter(initial='{"id": 1}').load() == seed_collection()

    def test_empty_array_is_respected(self):
        assert InMemorySlotAdapter(initial="[]").load() == []


# ---------------------------------------------------------------------------
# Repair of stored records
# ---------------------------------------------------------------------------

class TestRepair:
    def test_records_missing_mandatory_fields_dropped(self):
        raw = json.dumps([
            {"id": 1, "title": "Kept", "description": "Has everything"},
            {"id": 2, "description": "No title"},
            {"title": "No id", "description": "Missing id"},
            {"id": 3, "title": "   ", "description": "Blank title"},
            {"id": True, "title": "Bool id", "description": "Not an id"},
            "just a string",
            None,
        ])
        records = deserialize_collection(raw)
        assert [r.id for r in records] == [1]

    def test_unknown_status_repaired_to_not_started(self):
        record = repair_record({"id": 1, "title": "X1", "description": "Y", "status": "paused"})
        assert record.status == TechStatus.not_started

    def test_non_string_status_repaired_to_not_started(self):
        raw = json.dumps([
            {"id": 1, "title": "Listed", "description": "Status is a list", "status": ["completed"]},
            {"id": 2, "title": "Mapped", "description": "Status is an object", "status": {"a": 1}},
        ])
        records = deserialize_collection(raw)
        assert [r.status for r in records] == [TechStatus.not_started, TechStatus.not_started]

    def test_invalid_optional_fields_dropped(self):
        record = repair_record({
            "id": 9,
            "title": "TypeScript",
            "description": "Typed JavaScript",
            "category": "language",
            "difficulty": "expert",
            "deadline": "someday",
            "createdAt": "yesterday",
            "notes": 12,
            "resources": ["https://www.typescriptlang.org", "nope", 5],
        })
        assert record.category is None
        assert record.difficulty is None
        assert record.deadline is None
        assert record.created_at is None
        assert record.notes == ""
        assert record.resources == ("https://www.typescriptlang.org",)

    def test_past_deadline_kept_on_load(self):
        record = repair_record({
            "id": 1, "title": "Old", "description": "Overdue item", "deadline": "2020-01-01",
        })
        assert record.deadline == date(2020, 1, 1)

    def test_duplicate_ids_keep_first(self):
        raw = json.dumps([
            {"id": 1, "title": "First", "description": "Original"},
            {"id": 1, "title": "Second", "description": "Duplicate"},
        ])
        records = deserialize_collection(raw)
        assert len(records) == 1
        assert records[0].title == "First"

    def test_absent_optional_fields_tolerated(self):
        records = deserialize_collection('[{"id": 1, "title": "Go", "description": "Gophers"}]')
        assert records[0].status == TechStatus.not_started
        assert records[0].notes == ""
        assert records[0].resources == ()


# ---------------------------------------------------------------------------
# Round trips
# ---------------------------------------------------------------------------

class TestRoundTrip:
    def test_serialized_shape(self):
        data = json.loads(serialize_collection(sample_collection()))
        kube = data[5]
        assert kube["createdAt"].startswith("2026-01-01T09:30:00")
        assert kube["status"] == "in-progress"
        assert kube["resources"] == ["https://kubernetes.io/docs/", "https://kind.sigs.k8s.io"]
        # Unset optional fields are omitted.
        assert "category" not in data[6]
        assert "created_at" not in kube

    def test_in_memory_round_trip(self):
        adapter = InMemorySlotAdapter()
        collection = sample_collection()
        assert adapter.save(collection) is True
        assert adapter.load() == collection

    def test_sql_round_trip(self, sql_adapter):
        collection = sample_collection()
        assert sql_adapter.save(collection) is True
        assert sql_adapter.load() == collection

    def test_sql_save_overwrites(self, sql_adapter):
        sql_adapter.save(sample_collection())
        sql_adapter.save(seed_collection()[:2])
        assert [r.id for r in sql_adapter.load()] == [1, 2]

    def test_sql_empty_slot_returns_seed(self, sql_adapter):
        assert sql_adapter.load() == seed_collection()

    def test_slots_are_independent(self, db_engine):
        factory = sessionmaker(db_engine, expire_on_commit=False)
        first = SqlSlotAdapter("first", factory)
        second = SqlSlotAdapter("second", factory)
        first.save(seed_collection()[:1])
        assert [r.id for r in first.load()] == [1]
        assert second.load() == seed_collection()


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:
    def test_in_memory_write_failure_reported(self):
        adapter = InMemorySlotAdapter(initial="[]")
        adapter.fail_writes = True
        assert adapter.save(seed_collection()) is False
        assert adapter.last_error is not None
        assert adapter.value == "[]"

    def test_successful_write_clears_error(self):
        adapter = InMemorySlotAdapter()
        adapter.fail_writes = True
        adapter.save(seed_collection())
        adapter.fail_writes = False
        assert adapter.save(seed_collection()) is True
        assert adapter.last_error is None

    def test_sql_without_table_degrades(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'missing.db'}")
        adapter = SqlSlotAdapter("technologies", sessionmaker(engine))
        # No tables were created: reads fall back to the seed, writes report failure.
        assert adapter.load() == seed_collection()
        assert adapter.last_error is not None
        assert adapter.save(seed_collection()) is False
        assert "could not be loaded" in adapter.last_error

        fresh = SqlSlotAdapter("technologies", sessionmaker(engine))
        assert fresh.save(seed_collection()) is False
        assert "saving failed" in fresh.last_error
        engine.dispose()

    def test_unreadable_slot_is_never_overwritten(self):
        saved = json.dumps([{"id": 42, "title": "Saved", "description": "Must survive"}])
        adapter = InMemorySlotAdapter(initial=saved)
        adapter.fail_reads = True
        assert adapter.load() == seed_collection()
        assert adapter.save(seed_collection()) is False
        assert adapter.value == saved
        assert adapter.write_count == 0

    def test_successful_reload_allows_writes_again(self):
        adapter = InMemorySlotAdapter(initial="[]")
        adapter.fail_reads = True
        adapter.load()
        adapter.fail_reads = False
        assert adapter.load() == []
        assert adapter.save(seed_collection()) is True
        assert adapter.last_error is None
