# induction_engine/services/cleaning_gate.py
from datetime import datetime, timezone
from typing import Iterable
import logging

from induction_engine.models.induction import Decision, DecisionOutcome
from induction_engine.models.trainset import CleaningSlotAvailability

logger = logging.getLogger(__name__)

NO_CLEANING_CAPACITY_REASON = "Cleaning pending and no slot capacity available"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _slot_open(slot: CleaningSlotAvailability, now: datetime) -> bool:
    has_capacity = slot.current_occupancy < slot.capacity
    # Missing window data counts as open
    in_window = slot.available_until is None or _as_utc(now) <= _as_utc(slot.available_until)
    return has_capacity and in_window


def has_cleaning_capacity(
    trainset_id: str,
    slots: Iterable[CleaningSlotAvailability],
    now: datetime,
) -> bool:
    """Check whether a PENDING trainset can be cleaned before departure.

    A trainset already assigned to any slot is accommodated. Otherwise any slot
    with spare capacity whose window has not closed is enough.
    """
    slots = list(slots)
    if any(trainset_id in slot.assigned_trainsets for slot in slots):
        return True
    return any(_slot_open(slot, now) for slot in slots)


def cleaning_standby_outcome(trainset_id: str) -> DecisionOutcome:
    logger.info(f"CLEANING GATE: {trainset_id} held on standby, no cleaning slot capacity")
    return DecisionOutcome(
        trainset_id=trainset_id,
        decision=Decision.STANDBY,
        score=0.0,
        reasons=[NO_CLEANING_CAPACITY_REASON],
    )
