from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from induction_engine.models.induction import CategoryCounts, DecisionOutcome


class SimulationRuleSet(BaseModel):
    """Policy toggles for a what-if recomputation"""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "ignore_job_cards": True,
                "ignore_cleaning": False,
                "force_high_branding": True,
                "prioritize_low_mileage": False,
            }
        },
    )

    ignore_job_cards: bool = False
    ignore_cleaning: bool = False
    force_high_branding: bool = False
    prioritize_low_mileage: bool = False
    low_mileage_threshold_km: float = Field(20000.0, gt=0)

    @property
    def is_baseline(self) -> bool:
        return not (
            self.ignore_job_cards
            or self.ignore_cleaning
            or self.force_high_branding
            or self.prioritize_low_mileage
        )


class ExplanationItem(BaseModel):
    code: str
    message: str


class DecisionExplanation(BaseModel):
    blockers: List[ExplanationItem] = Field(default_factory=list)
    warnings: List[ExplanationItem] = Field(default_factory=list)
    promoters: List[ExplanationItem] = Field(default_factory=list)
    overrides: List[ExplanationItem] = Field(default_factory=list)
    final_reason: str = ""


class ConflictItem(BaseModel):
    type: str  # MISSING_CERTIFICATE | BRANDING_SLA_RISK | MILEAGE_IMBALANCE | CLEANING_CLASH
    severity: str  # HIGH | MEDIUM | LOW
    message: str


class SimulationOutcome(DecisionOutcome):
    explanation: DecisionExplanation = Field(default_factory=DecisionExplanation)
    conflicts: List[ConflictItem] = Field(default_factory=list)


class SimulationScenario(BaseModel):
    """A simulation promoted by the caller to a named, stored scenario"""
    simulation_id: str
    name: str
    rules: SimulationRuleSet
    results: List[DecisionOutcome] = Field(default_factory=list)
    counts: CategoryCounts = Field(default_factory=CategoryCounts)
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(mode="json")
        doc["created_at"] = self.created_at
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "SimulationScenario":
        data = dict(doc)
        data.pop("_id", None)
        return cls.model_validate(data)
