# induction_engine/services/policies.py
"""Two decision policies over the same fact model.

``CapacityBoundedPolicy`` is the production pipeline (hard constraints,
cleaning gate, scoring, capped allocation). ``OverlayPolicy`` is the what-if
simulator's fitness-based decision with rule toggles and no cap. They are
kept as separate variants on purpose and are not expected to agree, even with
every toggle off: the overlay sends WARN trainsets to STANDBY, lets OVERDUE
cleaning through to STANDBY instead of IBL and ignores stabling entirely.
``policy_divergence`` reports exactly where the two disagree.
"""
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple

from induction_engine.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights
from induction_engine.models.induction import Decision, DecisionOutcome
from induction_engine.models.simulation import SimulationRuleSet
from induction_engine.models.trainset import FactSnapshot
from induction_engine.services import allocator, pipeline, whatif_simulator


class DecisionPolicy(Protocol):
    name: str

    def decide(self, snapshot: FactSnapshot) -> List[DecisionOutcome]:
        ...


class CapacityBoundedPolicy:
    name = "capacity_bounded"

    def __init__(
        self,
        revenue_cap: Optional[int] = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        now: Optional[datetime] = None,
        max_workers: Optional[int] = None,
    ):
        self.revenue_cap = revenue_cap
        self.weights = weights
        self.now = now
        self.max_workers = max_workers

    def decide(self, snapshot: FactSnapshot) -> List[DecisionOutcome]:
        outcomes = pipeline.evaluate_fleet(
            snapshot, self.weights, now=self.now, max_workers=self.max_workers
        )
        return allocator.allocate(outcomes, self.revenue_cap).ordered()


class OverlayPolicy:
    name = "overlay"

    def __init__(self, rules: Optional[SimulationRuleSet] = None):
        self.rules = rules or SimulationRuleSet()

    def decide(self, snapshot: FactSnapshot) -> List[DecisionOutcome]:
        return whatif_simulator.simulate_snapshot(snapshot, self.rules)


def policy_divergence(
    snapshot: FactSnapshot,
    first: DecisionPolicy,
    second: DecisionPolicy,
) -> Dict[str, Tuple[Decision, Decision]]:
    """Trainsets on which two policies reach different decisions.

    Only trainsets decided by both policies are compared.
    """
    left = {o.trainset_id: o.decision for o in first.decide(snapshot)}
    right = {o.trainset_id: o.decision for o in second.decide(snapshot)}
    return {
        trainset_id: (left[trainset_id], right[trainset_id])
        for trainset_id in sorted(left.keys() & right.keys())
        if left[trainset_id] != right[trainset_id]
    }
