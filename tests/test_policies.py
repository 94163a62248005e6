from datetime import datetime, timezone

from induction_engine.models.induction import Decision
from induction_engine.models.simulation import SimulationRuleSet
from induction_engine.models.trainset import FactSnapshot
from induction_engine.services.policies import CapacityBoundedPolicy, OverlayPolicy, policy_divergence

NOW = datetime(2026, 10, 18, 22, 0, tzinfo=timezone.utc)


def test_policies_agree_on_clean_trainsets(make_fact):
    snapshot = FactSnapshot(trainsets=(make_fact("T-001"), make_fact("T-002", signalling="FAIL")))

    assert policy_divergence(snapshot, CapacityBoundedPolicy(now=NOW), OverlayPolicy()) == {}


def test_policies_diverge_without_toggles(make_fact):
    snapshot = FactSnapshot(
        trainsets=(
            make_fact("T-001"),
            make_fact("T-003", telecom="WARN"),
            make_fact("T-005", cleaning_status="OVERDUE"),
        )
    )

    divergence = policy_divergence(snapshot, CapacityBoundedPolicy(now=NOW), OverlayPolicy(SimulationRuleSet()))

    assert divergence == {
        "T-003": (Decision.REVENUE, Decision.STANDBY),
        "T-005": (Decision.IBL, Decision.STANDBY),
    }


def test_only_the_capacity_policy_honours_a_cap(make_fact):
    snapshot = FactSnapshot(trainsets=tuple(make_fact(f"T-00{i}") for i in range(1, 5)))

    capped = CapacityBoundedPolicy(revenue_cap=1, now=NOW).decide(snapshot)
    overlay = OverlayPolicy().decide(snapshot)

    assert sum(1 for o in capped if o.decision == Decision.REVENUE) == 1
    assert all(o.decision == Decision.REVENUE for o in overlay)
