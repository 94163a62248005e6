"""Capacity-constrained allocation tests"""
import pytest

from induction_engine.models.induction import Decision, DecisionOutcome
from induction_engine.services.allocator import allocate, resolve_revenue_cap
from induction_engine.services.cleaning_gate import cleaning_standby_outcome
from induction_engine.services.rule_engine import blocked_outcome


def _eligible(trainset_id, score):
    return DecisionOutcome(trainset_id=trainset_id, decision=Decision.REVENUE, score=score)


@pytest.fixture
def ten_eligible():
    return [_eligible(f"T-{i:03d}", float(i * 10)) for i in range(1, 11)]


def test_cap_selects_top_scores(ten_eligible):
    allocation = allocate(ten_eligible, revenue_cap=3)

    assert [o.trainset_id for o in allocation.revenue] == ["T-010", "T-009", "T-008"]
    assert all(o.decision == Decision.REVENUE for o in allocation.revenue)
    assert len(allocation.standby) == 7
    assert all(o.decision == Decision.STANDBY for o in allocation.standby)
    scores = [o.score for o in allocation.standby]
    assert scores == sorted(scores, reverse=True)


def test_no_cap_sends_every_eligible_to_revenue(ten_eligible):
    allocation = allocate(ten_eligible, revenue_cap=None)
    assert len(allocation.revenue) == 10
    assert allocation.standby == []


@pytest.mark.parametrize("cap,expected", [(0, 0), (4, 4), (25, 10)])
def test_cap_is_clamped_to_eligible_count(ten_eligible, cap, expected):
    allocation = allocate(ten_eligible, revenue_cap=cap)
    assert len(allocation.revenue) == expected
    assert allocation.cap == expected


def test_ties_break_on_trainset_id():
    outcomes = [_eligible("T-003", 20), _eligible("T-001", 20), _eligible("T-002", 20)]
    allocation = allocate(outcomes, revenue_cap=2)

    assert [o.trainset_id for o in allocation.revenue] == ["T-001", "T-002"]
    assert [o.trainset_id for o in allocation.standby] == ["T-003"]


def test_blocked_and_gated_never_compete_for_revenue():
    outcomes = [
        blocked_outcome("T-005", ["Cleaning OVERDUE"]),
        cleaning_standby_outcome("T-004"),
        _eligible("T-001", 40),
        blocked_outcome("T-002", ["SIGNALLING fitness certificate EXPIRED"]),
    ]

    allocation = allocate(outcomes, revenue_cap=5)

    assert [o.trainset_id for o in allocation.revenue] == ["T-001"]
    assert [o.trainset_id for o in allocation.standby] == ["T-004"]
    assert [o.trainset_id for o in allocation.ibl] == ["T-002", "T-005"]
    assert allocation.standby[0].reasons == ["Cleaning pending and no slot capacity available"]


def test_partition_is_exact(ten_eligible):
    outcomes = ten_eligible + [blocked_outcome("T-099", ["Open job card present"]), cleaning_standby_outcome("T-098")]
    allocation = allocate(outcomes, revenue_cap=4)

    ordered_ids = [o.trainset_id for o in allocation.ordered()]
    assert sorted(ordered_ids) == sorted(o.trainset_id for o in outcomes)
    assert len(ordered_ids) == len(set(ordered_ids))
    counts = allocation.counts()
    assert (counts.revenue, counts.standby, counts.ibl) == (4, 7, 1)
    assert counts.total == len(outcomes)


def test_scores_survive_reassignment(ten_eligible):
    allocation = allocate(ten_eligible, revenue_cap=1)
    assert allocation.standby[0].score == 90


@pytest.mark.parametrize("raw,cap", [(None, None), (3, 3), ("4", 4), (0, 0)])
def test_valid_caps_resolve_without_warning(raw, cap):
    assert resolve_revenue_cap(raw) == (cap, None)


@pytest.mark.parametrize("raw", [-2, "abc", 2.5, True, float("inf"), float("-inf"), float("nan"), "inf"])
def test_invalid_caps_clamp_to_zero_with_warning(raw):
    cap, warning = resolve_revenue_cap(raw)
    assert cap == 0
    assert "clamped to 0" in warning
