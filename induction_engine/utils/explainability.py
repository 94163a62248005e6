# induction_engine/utils/explainability.py
from typing import List

from induction_engine.models.induction import DecisionOutcome
from induction_engine.models.simulation import SimulationOutcome


def render_outcome_text(outcome: DecisionOutcome) -> str:
    """Render a decision outcome as plain text for logs and terminals."""
    lines: List[str] = [f"Trainset {outcome.trainset_id}: {outcome.decision.value} (score {outcome.score:g})"]

    if outcome.blockers:
        lines.append("Blockers:")
        lines.extend(f"  - {b}" for b in outcome.blockers)
    elif outcome.reasons:
        lines.append("Reasons:")
        lines.extend(f"  - {r}" for r in outcome.reasons)

    if isinstance(outcome, SimulationOutcome):
        explanation = outcome.explanation
        for title, items in (
            ("Warnings", explanation.warnings),
            ("Promoters", explanation.promoters),
            ("Overrides", explanation.overrides),
        ):
            if items:
                lines.append(f"{title}:")
                lines.extend(f"  - [{item.code}] {item.message}" for item in items)
        if outcome.conflicts:
            lines.append("Conflicts:")
            lines.extend(f"  - {c.severity} {c.type}: {c.message}" for c in outcome.conflicts)
        if explanation.final_reason:
            lines.append(f"Final reason: {explanation.final_reason}")

    return "\n".join(lines)
