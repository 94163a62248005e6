from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class FitnessStatus(str, Enum):
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


class CleaningStatus(str, Enum):
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"


class BrandingPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Subsystem(str, Enum):
    ROLLING_STOCK = "ROLLING_STOCK"
    SIGNALLING = "SIGNALLING"
    TELECOM = "TELECOM"


class SubsystemFitness(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: FitnessStatus
    details: str = ""


class FleetFitness(BaseModel):
    """Fitness certificates for the three certified subsystems"""
    model_config = ConfigDict(frozen=True)

    rolling_stock: SubsystemFitness
    signalling: SubsystemFitness
    telecom: SubsystemFitness

    def items(self) -> Iterator[Tuple[Subsystem, SubsystemFitness]]:
        yield Subsystem.ROLLING_STOCK, self.rolling_stock
        yield Subsystem.SIGNALLING, self.signalling
        yield Subsystem.TELECOM, self.telecom

    def has_status(self, status: FitnessStatus) -> bool:
        return any(cert.status == status for _, cert in self.items())


class TrainsetFact(BaseModel):
    """Snapshot of one trainset, immutable for the duration of a run"""
    model_config = ConfigDict(frozen=True)

    trainset_id: str
    depot_id: Optional[str] = None
    fitness: FleetFitness
    job_card_open: bool
    cleaning_status: CleaningStatus
    branding_priority: BrandingPriority = BrandingPriority.LOW
    mileage_km: float = 0.0
    mileage_variance: Optional[float] = Field(
        default=None, description="Signed km deviation from the fleet balancing target"
    )


class BrandingFact(BaseModel):
    model_config = ConfigDict(frozen=True)

    trainset_id: str
    priority: BrandingPriority
    remaining_hours: Optional[float] = None
    advertiser: Optional[str] = None


class MileageFact(BaseModel):
    model_config = ConfigDict(frozen=True)

    trainset_id: str
    variance: float
    current_mileage: Optional[float] = None
    target_mileage: Optional[float] = None


class StablingConstraints(BaseModel):
    model_config = ConfigDict(frozen=True)

    can_exit_at_dawn: bool = True
    requires_shunting: bool = False
    blocked_by: Optional[str] = Field(default=None, description="Trainset occupying the exit path")


class StablingFact(BaseModel):
    """Yard position of a trainset and the constraints on leaving it"""
    model_config = ConfigDict(frozen=True)

    trainset_id: str
    bay_id: Optional[str] = None
    position: Optional[int] = None
    shunting_distance: Optional[float] = Field(default=None, description="Metres to the depot exit")
    turnaround_time: Optional[float] = Field(default=None, description="Minutes to turn out")
    constraints: StablingConstraints = Field(default_factory=StablingConstraints)


class CleaningSlotAvailability(BaseModel):
    model_config = ConfigDict(frozen=True)

    bay_id: str
    capacity: int = 0
    current_occupancy: int = 0
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    assigned_trainsets: Tuple[str, ...] = ()


class FleetFilter(BaseModel):
    """Selects the part of the fleet a run or simulation covers"""
    depot_id: Optional[str] = None
    trainset_ids: Optional[List[str]] = None

    def to_query(self) -> Dict[str, object]:
        query: Dict[str, object] = {}
        if self.depot_id:
            query["depot_id"] = self.depot_id
        if self.trainset_ids is not None:
            query["trainset_id"] = {"$in": list(self.trainset_ids)}
        return query


class FactSnapshot(BaseModel):
    """Everything the engine reads for one run.

    ``invalid`` maps trainset ids whose raw documents failed validation to the
    blocker they should be reported with; those trainsets never reach scoring.
    """
    model_config = ConfigDict(frozen=True)

    trainsets: Tuple[TrainsetFact, ...] = ()
    cleaning_slots: Tuple[CleaningSlotAvailability, ...] = ()
    branding: Dict[str, BrandingFact] = Field(default_factory=dict)
    mileage: Dict[str, MileageFact] = Field(default_factory=dict)
    stabling: Dict[str, StablingFact] = Field(default_factory=dict)
    invalid: Dict[str, str] = Field(default_factory=dict)
    loaded_at: Optional[datetime] = None

    def branding_for(self, trainset_id: str) -> Optional[BrandingFact]:
        return self.branding.get(trainset_id)

    def mileage_for(self, trainset_id: str) -> Optional[MileageFact]:
        return self.mileage.get(trainset_id)

    def stabling_for(self, trainset_id: str) -> Optional[StablingFact]:
        return self.stabling.get(trainset_id)

    @property
    def fleet_size(self) -> int:
        return len(self.trainsets) + len(self.invalid)
