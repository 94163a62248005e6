# induction_engine/services/allocator.py
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple
import logging

from induction_engine.errors import ConfigError
from induction_engine.models.induction import CategoryCounts, Decision, DecisionOutcome

logger = logging.getLogger(__name__)


def _rank_key(outcome: DecisionOutcome) -> Tuple[float, str]:
    return (-outcome.score, outcome.trainset_id)


@dataclass
class Allocation:
    """Final placement of every evaluated trainset"""
    revenue: List[DecisionOutcome] = field(default_factory=list)
    standby: List[DecisionOutcome] = field(default_factory=list)
    ibl: List[DecisionOutcome] = field(default_factory=list)
    cap: int = 0

    def ordered(self) -> List[DecisionOutcome]:
        return [*self.revenue, *self.standby, *self.ibl]

    def counts(self) -> CategoryCounts:
        return CategoryCounts(
            revenue=len(self.revenue), standby=len(self.standby), ibl=len(self.ibl)
        )


def _validate_cap(revenue_cap: Any) -> Optional[int]:
    if revenue_cap is None:
        return None
    if isinstance(revenue_cap, bool):
        raise ConfigError(f"Revenue cap must be a number, got {revenue_cap!r}")
    try:
        value = int(revenue_cap)
    except (TypeError, ValueError, OverflowError):
        raise ConfigError(f"Revenue cap must be a number, got {revenue_cap!r}") from None
    if value != revenue_cap and not isinstance(revenue_cap, str):
        raise ConfigError(f"Revenue cap must be a whole number, got {revenue_cap!r}")
    if value < 0:
        raise ConfigError(f"Revenue cap must not be negative, got {value}")
    return value


def resolve_revenue_cap(revenue_cap: Any) -> Tuple[Optional[int], Optional[str]]:
    """Normalise a caller-supplied revenue cap.

    Returns ``(cap, warning)``. Invalid values never abort a run: they are
    clamped to 0 and reported through the warning string.
    """
    try:
        return _validate_cap(revenue_cap), None
    except ConfigError as e:
        warning = f"{e}; revenue cap clamped to 0"
        logger.warning(warning)
        return 0, warning


def allocate(outcomes: List[DecisionOutcome], revenue_cap: Optional[int] = None) -> Allocation:
    """Select the top-scoring eligible trainsets for revenue service.

    Blocked trainsets stay IBL and gate-held trainsets stay STANDBY; neither
    competes for a revenue slot. Eligible trainsets are ranked by score
    (descending) with the trainset id as a deterministic tie-break.
    """
    ibl = [o for o in outcomes if o.is_blocked]
    cleaning_standby = [
        o for o in outcomes if not o.is_blocked and o.decision == Decision.STANDBY
    ]
    eligible = [
        o for o in outcomes if not o.is_blocked and o.decision != Decision.STANDBY
    ]
    eligible.sort(key=_rank_key)

    cap = len(eligible) if revenue_cap is None else revenue_cap
    cap = max(0, min(cap, len(eligible)))

    revenue = [o.with_decision(Decision.REVENUE) for o in eligible[:cap]]
    overflow = [o.with_decision(Decision.STANDBY) for o in eligible[cap:]]
    standby = sorted(cleaning_standby + overflow, key=_rank_key)
    ibl = sorted((o.with_decision(Decision.IBL) for o in ibl), key=lambda o: o.trainset_id)

    allocation = Allocation(revenue=revenue, standby=standby, ibl=ibl, cap=cap)
    counts = allocation.counts()
    logger.info(
        f"Allocation: cap={cap} revenue={counts.revenue} standby={counts.standby} ibl={counts.ibl}"
    )
    return allocation
