from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Decision(str, Enum):
    REVENUE = "REVENUE"
    STANDBY = "STANDBY"
    IBL = "IBL"


def dedupe_reasons(reasons: List[str]) -> List[str]:
    """Drop empty and repeated entries while keeping first-seen order"""
    seen = set()
    unique: List[str] = []
    for reason in reasons:
        if not reason or reason in seen:
            continue
        seen.add(reason)
        unique.append(reason)
    return unique


class DecisionOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    trainset_id: str
    decision: Decision
    score: float = 0.0
    reasons: List[str] = Field(default_factory=list)
    blockers: List[str] = Field(default_factory=list)

    @field_validator("reasons", "blockers")
    @classmethod
    def _unique(cls, value: List[str]) -> List[str]:
        return dedupe_reasons(value)

    @model_validator(mode="after")
    def _blockers_force_ibl(self) -> "DecisionOutcome":
        if self.blockers and self.decision != Decision.IBL:
            raise ValueError(
                f"{self.trainset_id}: outcome with blockers must be IBL, got {self.decision.value}"
            )
        return self

    @property
    def is_blocked(self) -> bool:
        return bool(self.blockers)

    def with_decision(self, decision: Decision) -> "DecisionOutcome":
        return self.model_copy(update={"decision": decision})


class CategoryCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    revenue: int = 0
    standby: int = 0
    ibl: int = 0

    @property
    def total(self) -> int:
        return self.revenue + self.standby + self.ibl

    @classmethod
    def of(cls, outcomes: List[DecisionOutcome]) -> "CategoryCounts":
        return cls(
            revenue=sum(1 for o in outcomes if o.decision == Decision.REVENUE),
            standby=sum(1 for o in outcomes if o.decision == Decision.STANDBY),
            ibl=sum(1 for o in outcomes if o.decision == Decision.IBL),
        )


class InductionRun(BaseModel):
    """Immutable audit record of one classify + allocate invocation"""
    model_config = ConfigDict(frozen=True)

    run_id: str = Field(..., description="Unique, time-derived run identifier")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_by: Optional[str] = Field(None, description="Actor that requested the run")
    rule_set: str = "OPTION_B"
    weights_version: Optional[str] = None
    revenue_cap: Optional[int] = Field(None, description="Cap actually applied, None when uncapped")
    results: List[DecisionOutcome] = Field(default_factory=list)
    counts: CategoryCounts = Field(default_factory=CategoryCounts)

    @model_validator(mode="after")
    def _counts_match_results(self) -> "InductionRun":
        expected = CategoryCounts.of(self.results)
        if expected != self.counts:
            raise ValueError(
                f"Run {self.run_id} counts {self.counts.model_dump()} do not match results {expected.model_dump()}"
            )
        return self

    def partitions(self) -> Dict[str, List[DecisionOutcome]]:
        """Split stored results back into presentation lists"""
        revenue = [r for r in self.results if r.decision == Decision.REVENUE]
        standby = [r for r in self.results if r.decision == Decision.STANDBY]
        ibl = [r for r in self.results if r.decision == Decision.IBL]
        return {
            "revenue": sorted(revenue, key=lambda r: (-r.score, r.trainset_id)),
            "standby": sorted(standby, key=lambda r: (-r.score, r.trainset_id)),
            "ibl": sorted(ibl, key=lambda r: r.trainset_id),
        }

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(mode="json")
        # keep a native datetime so the created_at index sorts chronologically
        doc["created_at"] = self.created_at
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "InductionRun":
        data = dict(doc)
        data.pop("_id", None)
        return cls.model_validate(data)


class InductionRunResult(BaseModel):
    """What RunInduction hands back to the boundary"""
    run: InductionRun
    persisted: bool = True
    warnings: List[str] = Field(default_factory=list)
    persistence_error: Optional[str] = None
