# induction_engine/services/pipeline.py
"""Per-trainset evaluation: classify, gate, score.

Each trainset is evaluated independently of the others, so the fleet is mapped
over a bounded thread pool. The allocator runs only once every outcome is in.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import List, Optional
import logging
import os

from pydantic import ValidationError

from induction_engine.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights
from induction_engine.errors import InputError
from induction_engine.models.induction import Decision, DecisionOutcome
from induction_engine.models.trainset import CleaningStatus, FactSnapshot, TrainsetFact
from induction_engine.services import cleaning_gate, rule_engine, scoring

logger = logging.getLogger(__name__)


def evaluate_trainset(
    fact: TrainsetFact,
    snapshot: FactSnapshot,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    now: Optional[datetime] = None,
) -> DecisionOutcome:
    """Pre-allocation outcome for one trainset.

    The decision is provisional: the allocator decides REVENUE versus STANDBY
    for everything that is neither blocked nor held by the cleaning gate.
    """
    now = now or datetime.now(timezone.utc)
    stabling = snapshot.stabling_for(fact.trainset_id)

    blockers = rule_engine.classify(fact, stabling)
    if blockers:
        return rule_engine.blocked_outcome(fact.trainset_id, blockers)

    if fact.cleaning_status == CleaningStatus.PENDING and not cleaning_gate.has_cleaning_capacity(
        fact.trainset_id, snapshot.cleaning_slots, now
    ):
        return cleaning_gate.cleaning_standby_outcome(fact.trainset_id)

    result = scoring.score(
        fact,
        branding=snapshot.branding_for(fact.trainset_id),
        mileage=snapshot.mileage_for(fact.trainset_id),
        stabling=stabling,
        weights=weights,
    )
    return DecisionOutcome(
        trainset_id=fact.trainset_id,
        decision=Decision.REVENUE,
        score=result.score,
        reasons=result.reasons,
    )


def invalid_outcome(error: InputError) -> DecisionOutcome:
    logger.warning(f"INVALID DATA: {error}")
    return rule_engine.blocked_outcome(error.trainset_id, [error.blocker])


def _safe_evaluate(
    fact: TrainsetFact,
    snapshot: FactSnapshot,
    weights: ScoringWeights,
    now: datetime,
) -> DecisionOutcome:
    try:
        return evaluate_trainset(fact, snapshot, weights, now)
    except (ValidationError, TypeError, ValueError, AttributeError) as e:
        # Related facts were structurally wrong for this trainset only
        return invalid_outcome(
            InputError(fact.trainset_id, rule_engine.INVALID_TRAINSET_BLOCKER, str(e))
        )


def evaluate_fleet(
    snapshot: FactSnapshot,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    now: Optional[datetime] = None,
    max_workers: Optional[int] = None,
) -> List[DecisionOutcome]:
    """Evaluate every trainset in the snapshot, preserving snapshot order.

    Trainsets whose raw data failed validation come first as IBL outcomes
    carrying their ``invalid ...`` blocker.
    """
    now = now or datetime.now(timezone.utc)
    outcomes: List[DecisionOutcome] = [
        invalid_outcome(InputError(trainset_id, blocker))
        for trainset_id, blocker in sorted(snapshot.invalid.items())
    ]

    facts = list(snapshot.trainsets)
    if not facts:
        return outcomes

    workers = max(1, min(max_workers or os.cpu_count() or 1, len(facts)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        evaluated = list(
            executor.map(lambda fact: _safe_evaluate(fact, snapshot, weights, now), facts)
        )
    outcomes.extend(evaluated)

    blocked = sum(1 for o in evaluated if o.is_blocked)
    gated = sum(1 for o in evaluated if o.decision == Decision.STANDBY)
    logger.info(
        f"Evaluated {len(facts)} trainsets ({len(snapshot.invalid)} invalid): "
        f"{blocked} blocked, {gated} held for cleaning, {len(evaluated) - blocked - gated} eligible"
    )
    return outcomes
