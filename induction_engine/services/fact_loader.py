# induction_engine/services/fact_loader.py
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError
from pymongo.errors import PyMongoError

from induction_engine.config import settings
from induction_engine.errors import FactSourceUnavailableError, InputError
from induction_engine.models.trainset import (
    BrandingFact,
    CleaningSlotAvailability,
    FactSnapshot,
    FleetFilter,
    MileageFact,
    StablingFact,
    TrainsetFact,
)
from induction_engine.services.rule_engine import INVALID_FITNESS_BLOCKER, INVALID_TRAINSET_BLOCKER
from induction_engine.utils import cloud_database
from induction_engine.utils.cloud_database import (
    BRANDING_CONTRACTS,
    CLEANING_SLOTS,
    MILEAGE_BALANCES,
    STABLING_GEOMETRY,
    TRAINSETS,
)

logger = logging.getLogger(__name__)


def _blocker_for(error: ValidationError) -> str:
    if any(err.get("loc") and err["loc"][0] == "fitness" for err in error.errors()):
        return INVALID_FITNESS_BLOCKER
    return INVALID_TRAINSET_BLOCKER


def parse_trainset(doc: Dict[str, Any]) -> TrainsetFact:
    """Validate one raw trainset document, raising InputError if it is malformed"""
    trainset_id = str(doc.get("trainset_id"))
    try:
        return TrainsetFact.model_validate(doc)
    except ValidationError as e:
        raise InputError(trainset_id, _blocker_for(e), str(e)) from e


class FactSnapshotLoader:
    """Reads everything one run needs from the fact collections.

    Collections are queried concurrently and the whole load is bounded by
    ``settings.loader_timeout_seconds``. Malformed documents only affect their
    own trainset; an unreachable or slow source aborts the load.
    """

    def __init__(self, db_manager=None, timeout: Optional[float] = None):
        self._db_manager = db_manager
        self.timeout = timeout if timeout is not None else settings.loader_timeout_seconds

    @property
    def db(self):
        return self._db_manager or cloud_database.cloud_db_manager

    async def _fetch(self, collection_name: str, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        collection = await self.db.get_collection(collection_name)
        return await collection.find(query).to_list(length=None)

    async def load(self, fleet_filter: Optional[FleetFilter] = None) -> FactSnapshot:
        fleet_filter = fleet_filter or FleetFilter()
        try:
            return await asyncio.wait_for(self._load(fleet_filter), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Fact source timed out after {self.timeout}s")
            raise FactSourceUnavailableError(
                f"Fact source did not respond within {self.timeout}s"
            ) from e
        except (PyMongoError, OSError) as e:
            logger.error(f"Fact source unavailable: {e}")
            raise FactSourceUnavailableError(f"Fact source unavailable: {e}") from e

    async def _load(self, fleet_filter: FleetFilter) -> FactSnapshot:
        slot_query = {"depot_id": fleet_filter.depot_id} if fleet_filter.depot_id else {}
        trainset_docs, slot_docs = await asyncio.gather(
            self._fetch(TRAINSETS, fleet_filter.to_query()),
            self._fetch(CLEANING_SLOTS, slot_query),
        )

        trainsets: List[TrainsetFact] = []
        invalid: Dict[str, str] = {}
        seen = set()
        for doc in trainset_docs:
            if not doc.get("trainset_id"):
                logger.warning(f"Skipping trainset document without trainset_id: {doc.get('_id')}")
                continue
            # first document wins
            trainset_id = str(doc["trainset_id"])
            if trainset_id in seen:
                logger.warning(f"Ignoring duplicate trainset document for {trainset_id}: {doc.get('_id')}")
                continue
            seen.add(trainset_id)
            try:
                trainsets.append(parse_trainset(doc))
            except InputError as e:
                logger.warning(f"INVALID DATA: {e}")
                invalid[e.trainset_id] = e.blocker

        ids = [t.trainset_id for t in trainsets]
        related_query = {"trainset_id": {"$in": ids}}
        branding_docs, mileage_docs, stabling_docs = await asyncio.gather(
            self._fetch(BRANDING_CONTRACTS, related_query),
            self._fetch(MILEAGE_BALANCES, related_query),
            self._fetch(STABLING_GEOMETRY, related_query),
        )

        branding = self._index(BrandingFact, branding_docs, invalid)
        mileage = self._index(MileageFact, mileage_docs, invalid)
        stabling = self._index(StablingFact, stabling_docs, invalid)

        slots = []
        for doc in slot_docs:
            try:
                slots.append(CleaningSlotAvailability.model_validate(doc))
            except ValidationError as e:
                # a broken slot only reduces capacity, it says nothing about any trainset
                logger.warning(f"Ignoring malformed cleaning slot {doc.get('bay_id')}: {e}")

        snapshot = FactSnapshot(
            trainsets=tuple(t for t in trainsets if t.trainset_id not in invalid),
            cleaning_slots=tuple(slots),
            branding={k: v for k, v in branding.items() if k not in invalid},
            mileage={k: v for k, v in mileage.items() if k not in invalid},
            stabling={k: v for k, v in stabling.items() if k not in invalid},
            invalid=invalid,
            loaded_at=datetime.now(timezone.utc),
        )
        logger.info(
            f"Loaded {len(snapshot.trainsets)} trainsets ({len(invalid)} invalid), "
            f"{len(slots)} cleaning slots"
        )
        return snapshot

    @staticmethod
    def _index(
        model: Type[BaseModel],
        docs: List[Dict[str, Any]],
        invalid: Dict[str, str],
    ) -> Dict[str, Any]:
        indexed: Dict[str, Any] = {}
        for doc in docs:
            trainset_id = doc.get("trainset_id")
            try:
                indexed[trainset_id] = model.model_validate(doc)
            except ValidationError as e:
                logger.warning(f"INVALID DATA: {trainset_id}: malformed {model.__name__}: {e}")
                invalid.setdefault(trainset_id, INVALID_TRAINSET_BLOCKER)
        return indexed
