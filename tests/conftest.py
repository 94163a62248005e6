import pytest

from induction_engine.models.trainset import FleetFitness, SubsystemFitness, TrainsetFact
from induction_engine.utils import cloud_database
from induction_engine.utils.cloud_database_mock import MockCloudDatabaseManager


def trainset_doc(trainset_id, rolling_stock="PASS", signalling="PASS", telecom="PASS", **fields):
    """Raw trainset document as stored in the trainsets collection"""
    doc = {
        "trainset_id": trainset_id,
        "depot_id": "MUTTOM",
        "fitness": {
            "rolling_stock": {"status": rolling_stock, "details": ""},
            "signalling": {"status": signalling, "details": ""},
            "telecom": {"status": telecom, "details": ""},
        },
        "job_card_open": False,
        "cleaning_status": "COMPLETED",
        "branding_priority": "LOW",
        "mileage_km": 30000,
    }
    doc.update(fields)
    return doc


@pytest.fixture
def make_fact():
    def _make(trainset_id="T-001", rolling_stock="PASS", signalling="PASS", telecom="PASS", **fields):
        fitness = FleetFitness(
            rolling_stock=SubsystemFitness(status=rolling_stock),
            signalling=SubsystemFitness(status=signalling),
            telecom=SubsystemFitness(status=telecom),
        )
        fields.setdefault("job_card_open", False)
        fields.setdefault("cleaning_status", "COMPLETED")
        return TrainsetFact(trainset_id=trainset_id, fitness=fitness, **fields)

    return _make


@pytest.fixture
def mock_db(monkeypatch):
    """Empty in-memory database installed as the process-wide manager"""
    db = MockCloudDatabaseManager(seed={}, seed_path=None)
    monkeypatch.setattr(cloud_database, "cloud_db_manager", db)
    return db


@pytest.fixture
def make_doc():
    return trainset_doc
