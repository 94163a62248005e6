import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from induction_engine.errors import FactSourceUnavailableError
from induction_engine.models.trainset import FleetFilter
from induction_engine.services.fact_loader import FactSnapshotLoader
from induction_engine.utils.cloud_database_mock import MockCloudDatabaseManager


@pytest.fixture
def seeded_db(make_doc):
    broken_fitness = make_doc("T-004")
    del broken_fitness["fitness"]["telecom"]
    return MockCloudDatabaseManager(
        seed={
            "trainsets": [
                make_doc("T-001"),
                make_doc("T-002", depot_id="ALUVA"),
                make_doc("T-003", cleaning_status="DIRTY"),
                broken_fitness,
                make_doc("T-005"),
                {"depot_id": "MUTTOM"},
            ],
            "branding_contracts": [
                {"trainset_id": "T-001", "priority": "HIGH", "remaining_hours": 50},
                {"trainset_id": "T-005", "priority": "ULTRA"},
            ],
            "mileage_balances": [{"trainset_id": "T-001", "variance": 7000}],
            "stabling_geometry": [{"trainset_id": "T-001", "bay_id": "B1", "shunting_distance": 100}],
            "cleaning_slots": [
                {"bay_id": "CL-1", "depot_id": "MUTTOM", "capacity": 2, "current_occupancy": 0},
                {"bay_id": "CL-2", "depot_id": "ALUVA", "capacity": 1, "current_occupancy": 0},
            ],
        },
        seed_path=None,
    )


@pytest.mark.asyncio
async def test_load_filters_by_depot_and_keys_related_facts(seeded_db):
    snapshot = await FactSnapshotLoader(seeded_db).load(FleetFilter(depot_id="MUTTOM"))

    assert [t.trainset_id for t in snapshot.trainsets] == ["T-001"]
    assert snapshot.branding_for("T-001").remaining_hours == 50
    assert snapshot.mileage_for("T-001").variance == 7000
    assert snapshot.stabling_for("T-001").shunting_distance == 100
    assert [s.bay_id for s in snapshot.cleaning_slots] == ["CL-1"]
    assert snapshot.loaded_at is not None


@pytest.mark.asyncio
async def test_malformed_documents_are_reported_per_trainset(seeded_db):
    snapshot = await FactSnapshotLoader(seeded_db).load(FleetFilter(depot_id="MUTTOM"))

    assert snapshot.invalid == {
        "T-003": "invalid trainset data",
        "T-004": "invalid fitness data",
        "T-005": "invalid trainset data",
    }
    assert "T-005" not in snapshot.branding
    assert snapshot.fleet_size == 4


@pytest.mark.asyncio
async def test_trainset_id_filter(seeded_db):
    snapshot = await FactSnapshotLoader(seeded_db).load(FleetFilter(trainset_ids=["T-002"]))
    assert [t.trainset_id for t in snapshot.trainsets] == ["T-002"]
    assert len(snapshot.cleaning_slots) == 2


@pytest.mark.asyncio
async def test_unreachable_source_is_fatal():
    db = MagicMock()
    db.get_collection = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))

    with pytest.raises(FactSourceUnavailableError):
        await FactSnapshotLoader(db).load(FleetFilter())


@pytest.mark.asyncio
async def test_slow_source_times_out():
    async def _hang(name):
        await asyncio.sleep(5)

    db = MagicMock()
    db.get_collection = _hang

    with pytest.raises(FactSourceUnavailableError):
        await FactSnapshotLoader(db, timeout=0.05).load(FleetFilter())


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["job_card_open", "cleaning_status"])
async def test_missing_safety_field_makes_trainset_invalid(make_doc, missing):
    doc = make_doc("T-100")
    del doc[missing]
    db = MockCloudDatabaseManager(seed={"trainsets": [doc]}, seed_path=None)

    snapshot = await FactSnapshotLoader(db).load(FleetFilter())

    assert snapshot.trainsets == ()
    assert snapshot.invalid == {"T-100": "invalid trainset data"}


def test_empty_id_list_queries_for_no_trainsets():
    assert FleetFilter(trainset_ids=[]).to_query() == {"trainset_id": {"$in": []}}
    assert FleetFilter().to_query() == {}


@pytest.mark.asyncio
async def test_empty_id_list_selects_nothing(seeded_db):
    snapshot = await FactSnapshotLoader(seeded_db).load(FleetFilter(trainset_ids=[]))

    assert snapshot.trainsets == ()
    assert snapshot.invalid == {}


@pytest.mark.asyncio
async def test_duplicate_documents_keep_the_first(make_doc):
    db = MockCloudDatabaseManager(
        seed={"trainsets": [make_doc("T-100"), make_doc("T-100", cleaning_status="DIRTY")]},
        seed_path=None,
    )

    snapshot = await FactSnapshotLoader(db).load(FleetFilter())

    assert [t.trainset_id for t in snapshot.trainsets] == ["T-100"]
    assert snapshot.invalid == {}
