# induction_engine/services/whatif_simulator.py
"""Rule-overlay ("what-if") simulator.

Re-derives a decision per trainset under hypothetical policy toggles. It has
its own base decision (fitness only), applies no capacity cap, never ranks and
never writes anywhere: callers that want to keep a result save it as a named
scenario through the scenario store.
"""
from typing import Iterable, List, Tuple
import logging

from induction_engine.models.induction import Decision
from induction_engine.models.simulation import (
    ConflictItem,
    DecisionExplanation,
    ExplanationItem,
    SimulationOutcome,
    SimulationRuleSet,
)
from induction_engine.models.trainset import (
    BrandingPriority,
    CleaningStatus,
    FactSnapshot,
    FitnessStatus,
    Subsystem,
    TrainsetFact,
)

logger = logging.getLogger(__name__)

HIGH_MILEAGE_KM = 50000

_SUBSYSTEM_CODES = {
    Subsystem.ROLLING_STOCK: ("RS", "Rolling Stock"),
    Subsystem.SIGNALLING: ("SIG", "Signalling"),
    Subsystem.TELECOM: ("TEL", "Telecom"),
}


def _base_decision(fact: TrainsetFact) -> Tuple[Decision, str]:
    if fact.fitness.has_status(FitnessStatus.FAIL):
        return Decision.IBL, "critical system failure detected"
    if fact.fitness.has_status(FitnessStatus.WARN):
        return Decision.STANDBY, "system warning detected"
    return Decision.REVENUE, "all systems operational"


def _decide(fact: TrainsetFact, rules: SimulationRuleSet) -> Tuple[Decision, List[str]]:
    """Apply the overlay steps in order; returns the decision and every reason applied"""
    decision, reason = _base_decision(fact)
    reasons = [reason]
    has_failure = fact.fitness.has_status(FitnessStatus.FAIL)
    promotable = not has_failure and not fact.job_card_open

    if not rules.ignore_job_cards and fact.job_card_open:
        decision = Decision.IBL
        reasons.append("open job card requires attention")

    if (
        not rules.ignore_cleaning
        and fact.cleaning_status == CleaningStatus.OVERDUE
        and decision == Decision.REVENUE
    ):
        decision = Decision.STANDBY
        reasons.append("cleaning overdue")

    if (
        rules.force_high_branding
        and fact.branding_priority == BrandingPriority.HIGH
        and decision == Decision.STANDBY
        and promotable
    ):
        decision = Decision.REVENUE
        reasons.append("promoted: high branding priority override")

    if (
        rules.prioritize_low_mileage
        and fact.mileage_km < rules.low_mileage_threshold_km
        and decision == Decision.STANDBY
        and promotable
    ):
        decision = Decision.REVENUE
        reasons.append("promoted: low mileage priority")

    return decision, reasons


def build_explanation(
    fact: TrainsetFact,
    rules: SimulationRuleSet,
    decision: Decision,
    final_reason: str,
) -> DecisionExplanation:
    """Structured account of what pushed a trainset towards its simulated decision"""
    explanation = DecisionExplanation(final_reason=final_reason)

    for subsystem, cert in fact.fitness.items():
        code, label = _SUBSYSTEM_CODES[subsystem]
        if cert.status == FitnessStatus.FAIL:
            explanation.blockers.append(
                ExplanationItem(code=f"FITNESS_{code}_FAIL", message=f"{label} fitness FAIL")
            )
        elif cert.status == FitnessStatus.WARN:
            explanation.warnings.append(
                ExplanationItem(code=f"FITNESS_{code}_WARN", message=f"{label} fitness WARN")
            )

    if fact.job_card_open:
        if rules.ignore_job_cards:
            explanation.overrides.append(
                ExplanationItem(code="JOB_CARD_IGNORED", message="Job-card rule ignored (what-if)")
            )
        else:
            explanation.blockers.append(
                ExplanationItem(code="JOB_CARD_OPEN", message="Open job card present")
            )

    if fact.cleaning_status == CleaningStatus.OVERDUE:
        if rules.ignore_cleaning:
            explanation.overrides.append(
                ExplanationItem(code="CLEANING_IGNORED", message="Cleaning rule ignored (what-if)")
            )
        else:
            explanation.warnings.append(
                ExplanationItem(code="CLEANING_OVERDUE", message="Cleaning overdue")
            )

    if fact.branding_priority == BrandingPriority.HIGH:
        explanation.promoters.append(
            ExplanationItem(code="BRANDING_HIGH", message="High branding priority")
        )
        if rules.force_high_branding:
            explanation.overrides.append(
                ExplanationItem(code="BRANDING_FORCE", message="Branding priority forced (what-if)")
            )

    if rules.prioritize_low_mileage and fact.mileage_km < rules.low_mileage_threshold_km:
        explanation.promoters.append(
            ExplanationItem(code="MILEAGE_LOW", message="Low mileage priority enabled")
        )
    if fact.mileage_km > HIGH_MILEAGE_KM:
        explanation.warnings.append(
            ExplanationItem(code="MILEAGE_HIGH", message=f"High mileage ({fact.mileage_km:g} km)")
        )

    if decision == Decision.REVENUE and explanation.blockers:
        explanation.overrides.append(
            ExplanationItem(
                code="REVENUE_WITH_BLOCKERS",
                message="Revenue decision despite blockers (review required)",
            )
        )

    return explanation


def detect_conflicts(fact: TrainsetFact, decision: Decision) -> List[ConflictItem]:
    """Operational conflicts between a trainset's facts and its simulated decision"""
    conflicts: List[ConflictItem] = []

    for subsystem, cert in fact.fitness.items():
        if cert.status == FitnessStatus.FAIL:
            _, label = _SUBSYSTEM_CODES[subsystem]
            conflicts.append(ConflictItem(
                type="MISSING_CERTIFICATE",
                severity="HIGH",
                message=f"{label} fitness certificate expired/invalid",
            ))

    if fact.branding_priority == BrandingPriority.HIGH and decision != Decision.REVENUE:
        conflicts.append(ConflictItem(
            type="BRANDING_SLA_RISK",
            severity="MEDIUM",
            message="High branding priority train not in revenue service",
        ))

    if fact.mileage_km > HIGH_MILEAGE_KM:
        conflicts.append(ConflictItem(
            type="MILEAGE_IMBALANCE",
            severity="MEDIUM",
            message=f"High mileage: {fact.mileage_km:g} km - consider maintenance rotation",
        ))

    if fact.cleaning_status == CleaningStatus.OVERDUE and decision == Decision.REVENUE:
        conflicts.append(ConflictItem(
            type="CLEANING_CLASH",
            severity="LOW",
            message="Cleaning overdue but assigned to revenue service",
        ))

    return conflicts


def simulate_trainset(fact: TrainsetFact, rules: SimulationRuleSet) -> SimulationOutcome:
    decision, reasons = _decide(fact, rules)
    final_reason = reasons[-1]
    return SimulationOutcome(
        trainset_id=fact.trainset_id,
        decision=decision,
        score=0.0,
        reasons=reasons,
        blockers=[final_reason] if decision == Decision.IBL else [],
        explanation=build_explanation(fact, rules, decision, final_reason),
        conflicts=detect_conflicts(fact, decision),
    )


def invalid_outcome(trainset_id: str, blocker: str) -> SimulationOutcome:
    """IBL outcome for a trainset whose data could not be read"""
    return SimulationOutcome(
        trainset_id=trainset_id,
        decision=Decision.IBL,
        score=0.0,
        reasons=[blocker],
        blockers=[blocker],
        explanation=DecisionExplanation(
            blockers=[ExplanationItem(code="INVALID_DATA", message=blocker)],
            final_reason=blocker,
        ),
    )


def simulate_snapshot(snapshot: FactSnapshot, rules: SimulationRuleSet) -> List[SimulationOutcome]:
    """Simulate a loaded snapshot; invalid trainsets come first, in id order, as IBL."""
    invalid = [
        invalid_outcome(trainset_id, blocker)
        for trainset_id, blocker in sorted(snapshot.invalid.items())
    ]
    return invalid + simulate(snapshot.trainsets, rules)


def simulate(facts: Iterable[TrainsetFact], rules: SimulationRuleSet) -> List[SimulationOutcome]:
    """Recompute decisions for every trainset under the given toggles."""
    outcomes = [simulate_trainset(fact, rules) for fact in facts]
    revenue = sum(1 for o in outcomes if o.decision == Decision.REVENUE)
    logger.info(
        f"Simulation over {len(outcomes)} trainsets: {revenue} revenue "
        f"(rules: {rules.model_dump()})"
    )
    return outcomes
