# induction_engine/core/scoring_config.py

# Centralized scoring weights for the induction soft-scoring stage.
# Used by the scorer, the weights provider and the config API so every
# consumer sees the same documented defaults.

from typing import Any, Dict, List, Mapping, Tuple
import logging

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

SCORING_WEIGHTS_VERSION = "2024.1"

SCORING_WEIGHTS = {
    # Branding contracts
    "BRANDING_HIGH": 30.0,
    "BRANDING_MEDIUM": 15.0,
    "BRANDING_LOW": 0.0,
    "BRANDING_HOURS_LOW_BONUS": 10.0,
    "BRANDING_HOURS_LOW_THRESHOLD": 100.0,

    # Mileage balancing (absolute variance from the fleet target, km)
    "MILEAGE_HIGH_VARIANCE_BONUS": 20.0,
    "MILEAGE_HIGH_VARIANCE_THRESHOLD": 10000.0,
    "MILEAGE_MODERATE_VARIANCE_BONUS": 10.0,
    "MILEAGE_MODERATE_VARIANCE_THRESHOLD": 5000.0,

    # Cleaning state
    "CLEANING_COMPLETED_BONUS": 10.0,
    "CLEANING_PENDING_BONUS": 0.0,

    # Stabling tie-breakers
    "REQUIRES_SHUNTING_PENALTY": -5.0,
    "SHUNTING_DISTANCE_BASE": 10.0,
    "SHUNTING_DISTANCE_STEP": 50.0,
    "TURNAROUND_BASE": 10.0,
    "TURNAROUND_STEP": 10.0,
    "BLOCKED_EXIT_PENALTY": -5.0,
}


class ScoringWeights(BaseModel):
    """Versioned weights table for the soft-scoring function.

    Each field maps to one entry of SCORING_WEIGHTS (lower-cased). The table is
    passed explicitly into every scoring call; there is no process-wide mutable
    copy.
    """
    model_config = ConfigDict(frozen=True)

    version: str = SCORING_WEIGHTS_VERSION

    branding_high: float = SCORING_WEIGHTS["BRANDING_HIGH"]
    branding_medium: float = SCORING_WEIGHTS["BRANDING_MEDIUM"]
    branding_low: float = SCORING_WEIGHTS["BRANDING_LOW"]
    branding_hours_low_bonus: float = SCORING_WEIGHTS["BRANDING_HOURS_LOW_BONUS"]
    branding_hours_low_threshold: float = SCORING_WEIGHTS["BRANDING_HOURS_LOW_THRESHOLD"]

    mileage_high_variance_bonus: float = SCORING_WEIGHTS["MILEAGE_HIGH_VARIANCE_BONUS"]
    mileage_high_variance_threshold: float = SCORING_WEIGHTS["MILEAGE_HIGH_VARIANCE_THRESHOLD"]
    mileage_moderate_variance_bonus: float = SCORING_WEIGHTS["MILEAGE_MODERATE_VARIANCE_BONUS"]
    mileage_moderate_variance_threshold: float = SCORING_WEIGHTS["MILEAGE_MODERATE_VARIANCE_THRESHOLD"]

    cleaning_completed_bonus: float = SCORING_WEIGHTS["CLEANING_COMPLETED_BONUS"]
    cleaning_pending_bonus: float = SCORING_WEIGHTS["CLEANING_PENDING_BONUS"]

    requires_shunting_penalty: float = SCORING_WEIGHTS["REQUIRES_SHUNTING_PENALTY"]
    shunting_distance_base: float = SCORING_WEIGHTS["SHUNTING_DISTANCE_BASE"]
    shunting_distance_step: float = Field(SCORING_WEIGHTS["SHUNTING_DISTANCE_STEP"], gt=0)
    turnaround_base: float = SCORING_WEIGHTS["TURNAROUND_BASE"]
    turnaround_step: float = Field(SCORING_WEIGHTS["TURNAROUND_STEP"], gt=0)
    blocked_exit_penalty: float = SCORING_WEIGHTS["BLOCKED_EXIT_PENALTY"]

    @classmethod
    def recognized_options(cls) -> List[str]:
        return [name for name in cls.model_fields if name != "version"]

    @classmethod
    def from_overrides(cls, overrides: Mapping[str, Any] | None) -> Tuple["ScoringWeights", List[str]]:
        """Build a weights table from defaults plus recognised overrides.

        Keys are matched case-insensitively against the option names, so both
        ``BRANDING_HIGH`` and ``branding_high`` work. Returns the table and the
        list of keys that were not recognised.
        """
        if not overrides:
            return cls(), []

        recognized = set(cls.recognized_options())
        values: Dict[str, Any] = {}
        ignored: List[str] = []
        for key, value in overrides.items():
            name = str(key).lower()
            if name == "version":
                values["version"] = str(value)
            elif name in recognized:
                values[name] = value
            else:
                ignored.append(str(key))

        if ignored:
            logger.warning(f"Ignoring unrecognised scoring weights: {ignored}")
        return cls(**values), ignored


DEFAULT_WEIGHTS = ScoringWeights()
