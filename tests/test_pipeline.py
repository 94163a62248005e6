from datetime import datetime, timezone

from induction_engine.models.induction import Decision
from induction_engine.models.trainset import (
    CleaningSlotAvailability,
    FactSnapshot,
    StablingConstraints,
    StablingFact,
)
from induction_engine.services.allocator import allocate
from induction_engine.services.pipeline import evaluate_fleet, evaluate_trainset

NOW = datetime(2026, 10, 18, 22, 0, tzinfo=timezone.utc)


def test_pending_without_capacity_is_held(make_fact):
    fact = make_fact("T-004", cleaning_status="PENDING", branding_priority="HIGH")
    snapshot = FactSnapshot(
        trainsets=(fact,),
        cleaning_slots=(CleaningSlotAvailability(bay_id="CL-1", capacity=1, current_occupancy=1),),
    )

    outcome = evaluate_trainset(fact, snapshot, now=NOW)

    assert outcome.decision == Decision.STANDBY
    assert outcome.score == 0
    assert outcome.reasons == ["Cleaning pending and no slot capacity available"]


def test_pending_with_capacity_is_scored(make_fact):
    fact = make_fact("T-004", cleaning_status="PENDING", branding_priority="MEDIUM")
    snapshot = FactSnapshot(
        trainsets=(fact,),
        cleaning_slots=(CleaningSlotAvailability(bay_id="CL-1", capacity=2, current_occupancy=1),),
    )

    outcome = evaluate_trainset(fact, snapshot, now=NOW)

    assert outcome.score == 15
    assert outcome.reasons == ["branding priority MEDIUM", "cleaning pending"]


def test_dawn_exit_constraint_blocks(make_fact):
    fact = make_fact("T-007")
    snapshot = FactSnapshot(
        trainsets=(fact,),
        stabling={
            "T-007": StablingFact(
                trainset_id="T-007", constraints=StablingConstraints(can_exit_at_dawn=False)
            )
        },
    )

    outcome = evaluate_trainset(fact, snapshot, now=NOW)

    assert outcome.decision == Decision.IBL
    assert outcome.blockers == ["Stabling constraint: cannot exit at dawn"]


def test_invalid_trainsets_come_first_as_ibl(make_fact):
    snapshot = FactSnapshot(
        trainsets=(make_fact("T-001"), make_fact("T-002", signalling="FAIL")),
        invalid={"T-010": "invalid trainset data", "T-009": "invalid fitness data"},
    )

    outcomes = evaluate_fleet(snapshot, now=NOW, max_workers=2)

    assert [o.trainset_id for o in outcomes] == ["T-009", "T-010", "T-001", "T-002"]
    assert outcomes[0].blockers == ["invalid fitness data"]
    assert outcomes[1].blockers == ["invalid trainset data"]
    assert outcomes[3].decision == Decision.IBL


def test_adding_a_failure_only_moves_that_trainset_to_ibl(make_fact):
    base = [make_fact(f"T-00{i}", branding_priority="MEDIUM") for i in range(1, 4)]
    before = allocate(evaluate_fleet(FactSnapshot(trainsets=tuple(base)), now=NOW), 2)

    changed = [base[0], make_fact("T-002", branding_priority="MEDIUM", telecom="FAIL"), base[2]]
    after = allocate(evaluate_fleet(FactSnapshot(trainsets=tuple(changed)), now=NOW), 2)

    assert "T-002" not in [o.trainset_id for o in before.ibl]
    assert [o.trainset_id for o in after.ibl] == ["T-002"]
    assert {o.trainset_id for o in after.revenue} == {"T-001", "T-003"}


def test_evaluation_is_deterministic(make_fact):
    facts = tuple(
        make_fact(f"T-{i:03d}", branding_priority=("HIGH", "MEDIUM", "LOW")[i % 3], mileage_variance=i * 900.0)
        for i in range(1, 25)
    )
    snapshot = FactSnapshot(trainsets=facts)

    first = allocate(evaluate_fleet(snapshot, now=NOW, max_workers=4), 10).ordered()
    second = allocate(evaluate_fleet(snapshot, now=NOW, max_workers=1), 10).ordered()

    assert [o.model_dump() for o in first] == [o.model_dump() for o in second]


def test_empty_fleet():
    assert evaluate_fleet(FactSnapshot(), now=NOW) == []
