# induction_engine/services/weights_provider.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from induction_engine.config import settings
from induction_engine.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights
from induction_engine.errors import ConfigError, PersistenceError
from induction_engine.utils import cloud_database
from induction_engine.utils.cloud_database import SCORING_CONFIG

logger = logging.getLogger(__name__)


class WeightsProvider:
    """Reads and replaces the stored scoring weights document.

    The document lives in ``scoring_config`` under ``settings.scoring_config_key``
    as ``{"key", "weights", "version", "updated_by", "updated_at"}``. Reading
    never fails a run: a missing, unreadable or invalid document yields the
    documented defaults.
    """

    def __init__(self, db_manager=None, key: Optional[str] = None):
        self._db_manager = db_manager
        self.key = key or settings.scoring_config_key

    @property
    def db(self):
        return self._db_manager or cloud_database.cloud_db_manager

    async def _load_document(self) -> Optional[Dict[str, Any]]:
        collection = await self.db.get_collection(SCORING_CONFIG)
        return await collection.find_one({"key": self.key})

    async def current(self) -> ScoringWeights:
        try:
            doc = await self._load_document()
        except PyMongoError as e:
            logger.warning(f"Scoring config unreachable, using default weights: {e}")
            return DEFAULT_WEIGHTS

        if not doc:
            return DEFAULT_WEIGHTS

        overrides = dict(doc.get("weights") or {})
        if doc.get("version"):
            overrides["version"] = doc["version"]
        try:
            weights, _ = ScoringWeights.from_overrides(overrides)
        except ValidationError as e:
            logger.warning(f"Invalid scoring config '{self.key}', using default weights: {e}")
            return DEFAULT_WEIGHTS
        return weights

    async def describe(self) -> Dict[str, Any]:
        """Current weights plus who last changed them"""
        weights = await self.current()
        try:
            doc = await self._load_document() or {}
        except PyMongoError:
            doc = {}
        return {
            "key": self.key,
            "weights": weights.model_dump(exclude={"version"}),
            "version": weights.version,
            "updated_by": doc.get("updated_by"),
            "updated_at": doc.get("updated_at"),
        }

    async def replace(
        self,
        overrides: Mapping[str, Any],
        version: Optional[str] = None,
        updated_by: Optional[str] = None,
    ) -> Tuple[ScoringWeights, List[str]]:
        """Validate and store a new weights document; unknown keys are reported, not stored"""
        values = dict(overrides)
        if version:
            values["version"] = version
        try:
            weights, ignored = ScoringWeights.from_overrides(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid scoring weights: {e}") from e

        document = {
            "key": self.key,
            "weights": weights.model_dump(exclude={"version"}),
            "version": weights.version,
            "updated_by": updated_by,
            "updated_at": datetime.now(timezone.utc),
        }
        try:
            collection = await self.db.get_collection(SCORING_CONFIG)
            await collection.replace_one({"key": self.key}, document, upsert=True)
        except PyMongoError as e:
            raise PersistenceError(f"Could not store scoring config: {e}") from e
        logger.info(f"Scoring weights '{self.key}' replaced (version {weights.version}) by {updated_by}")
        return weights, ignored
