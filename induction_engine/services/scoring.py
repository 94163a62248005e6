# induction_engine/services/scoring.py
"""Soft-scoring for trainsets that cleared the hard constraints.

Scores only order eligible trainsets for revenue selection; they never move a
trainset into IBL.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import logging
import math

from induction_engine.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights
from induction_engine.models.induction import dedupe_reasons
from induction_engine.models.trainset import (
    BrandingFact,
    BrandingPriority,
    CleaningStatus,
    MileageFact,
    StablingFact,
    TrainsetFact,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreResult:
    score: float
    reasons: List[str] = field(default_factory=list)


def _branding_component(
    fact: TrainsetFact, branding: Optional[BrandingFact], weights: ScoringWeights
) -> Tuple[float, List[str]]:
    priority = branding.priority if branding is not None else fact.branding_priority
    points = 0.0
    reasons: List[str] = []

    if priority == BrandingPriority.HIGH:
        points += weights.branding_high
        reasons.append("branding priority HIGH")
    elif priority == BrandingPriority.MEDIUM:
        points += weights.branding_medium
        reasons.append("branding priority MEDIUM")
    else:
        points += weights.branding_low

    if (
        branding is not None
        and branding.remaining_hours is not None
        and branding.remaining_hours < weights.branding_hours_low_threshold
    ):
        points += weights.branding_hours_low_bonus
        reasons.append("branding hours running low")

    return points, reasons


def _mileage_component(
    fact: TrainsetFact, mileage: Optional[MileageFact], weights: ScoringWeights
) -> Tuple[float, List[str]]:
    variance = mileage.variance if mileage is not None else fact.mileage_variance
    if variance is None:
        return 0.0, []

    magnitude = abs(variance)
    if magnitude > weights.mileage_high_variance_threshold:
        return weights.mileage_high_variance_bonus, ["high mileage variance"]
    if magnitude > weights.mileage_moderate_variance_threshold:
        return weights.mileage_moderate_variance_bonus, ["moderate mileage variance"]
    return 0.0, []


def _cleaning_component(fact: TrainsetFact, weights: ScoringWeights) -> Tuple[float, List[str]]:
    if fact.cleaning_status == CleaningStatus.COMPLETED:
        return weights.cleaning_completed_bonus, ["cleaning completed"]
    if fact.cleaning_status == CleaningStatus.PENDING:
        return weights.cleaning_pending_bonus, ["cleaning pending"]
    # OVERDUE never reaches the scorer
    return 0.0, []


def _stabling_component(stabling: Optional[StablingFact], weights: ScoringWeights) -> Tuple[float, List[str]]:
    if stabling is None:
        return 0.0, []

    points = 0.0
    reasons: List[str] = []
    constraints = stabling.constraints

    if constraints.requires_shunting:
        points += weights.requires_shunting_penalty
        reasons.append("requires shunting")

    if stabling.shunting_distance is not None:
        steps = math.floor(stabling.shunting_distance / weights.shunting_distance_step)
        points += max(0.0, weights.shunting_distance_base - steps)

    if stabling.turnaround_time is not None:
        steps = math.floor(stabling.turnaround_time / weights.turnaround_step)
        points += max(0.0, weights.turnaround_base - steps)

    if constraints.blocked_by:
        points += weights.blocked_exit_penalty
        reasons.append(f"exit path blocked by {constraints.blocked_by}")

    return points, reasons


def score(
    fact: TrainsetFact,
    branding: Optional[BrandingFact] = None,
    mileage: Optional[MileageFact] = None,
    stabling: Optional[StablingFact] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoreResult:
    """Score an eligible trainset: branding, mileage, cleaning, then stabling."""
    total = 0.0
    reasons: List[str] = []

    for points, component_reasons in (
        _branding_component(fact, branding, weights),
        _mileage_component(fact, mileage, weights),
        _cleaning_component(fact, weights),
        _stabling_component(stabling, weights),
    ):
        total += points
        reasons.extend(component_reasons)

    logger.debug(f"{fact.trainset_id}: score={total} reasons={reasons}")
    return ScoreResult(score=total, reasons=dedupe_reasons(reasons))
