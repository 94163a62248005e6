# induction_engine/services/rule_engine.py
"""Hard-constraint classifier.

Every rule is evaluated independently and all violations are collected, so the
blocker list handed to the audit log is complete rather than first-hit only.
"""
from typing import Callable, Dict, List, Optional
import logging

from induction_engine.models.induction import Decision, DecisionOutcome, dedupe_reasons
from induction_engine.models.trainset import (
    CleaningStatus,
    FitnessStatus,
    StablingFact,
    TrainsetFact,
)

logger = logging.getLogger(__name__)

JOB_CARD_BLOCKER = "Open job card present"
CLEANING_OVERDUE_BLOCKER = "Cleaning OVERDUE"
DAWN_EXIT_BLOCKER = "Stabling constraint: cannot exit at dawn"
INVALID_FITNESS_BLOCKER = "invalid fitness data"
INVALID_TRAINSET_BLOCKER = "invalid trainset data"


def _check_fitness_certificates(fact: TrainsetFact, stabling: Optional[StablingFact]) -> List[str]:
    """One blocker per subsystem whose certificate has failed"""
    return [
        f"{subsystem.value} fitness certificate EXPIRED"
        for subsystem, cert in fact.fitness.items()
        if cert.status == FitnessStatus.FAIL
    ]


def _check_job_cards(fact: TrainsetFact, stabling: Optional[StablingFact]) -> List[str]:
    return [JOB_CARD_BLOCKER] if fact.job_card_open else []


def _check_cleaning(fact: TrainsetFact, stabling: Optional[StablingFact]) -> List[str]:
    return [CLEANING_OVERDUE_BLOCKER] if fact.cleaning_status == CleaningStatus.OVERDUE else []


def _check_dawn_exit(fact: TrainsetFact, stabling: Optional[StablingFact]) -> List[str]:
    if stabling is not None and stabling.constraints.can_exit_at_dawn is False:
        return [DAWN_EXIT_BLOCKER]
    return []


# Evaluation order fixes the order of blockers in the output
CONSTRAINT_RULES: Dict[str, Callable[[TrainsetFact, Optional[StablingFact]], List[str]]] = {
    "fitness_certificate_expiry": _check_fitness_certificates,
    "open_job_cards": _check_job_cards,
    "cleaning_overdue": _check_cleaning,
    "stabling_dawn_exit": _check_dawn_exit,
}


def classify(fact: TrainsetFact, stabling: Optional[StablingFact] = None) -> List[str]:
    """Return every hard-constraint violation for a trainset (empty if it passes)."""
    blockers: List[str] = []
    for rule in CONSTRAINT_RULES.values():
        blockers.extend(rule(fact, stabling))
    blockers = dedupe_reasons(blockers)
    if blockers:
        logger.warning(f"SAFETY EXCLUSION: {fact.trainset_id} blocked by {blockers}")
    return blockers


def blocked_outcome(trainset_id: str, blockers: List[str]) -> DecisionOutcome:
    """IBL outcome for a trainset that failed hard constraints; blockers double as reasons"""
    return DecisionOutcome(
        trainset_id=trainset_id,
        decision=Decision.IBL,
        score=0.0,
        reasons=list(blockers),
        blockers=list(blockers),
    )
