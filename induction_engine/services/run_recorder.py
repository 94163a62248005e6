# induction_engine/services/run_recorder.py
import logging
import secrets
import time
from typing import List, Optional

from pydantic import ValidationError
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from induction_engine.config import settings
from induction_engine.errors import PersistenceError, RunNotFoundError
from induction_engine.models.induction import InductionRun
from induction_engine.utils import cloud_database
from induction_engine.utils.cloud_database import INDUCTION_RUNS

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    """Time-derived run id; the random suffix separates runs in the same millisecond"""
    return f"induction-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


class InductionRunRecorder:
    """Append-only sink for induction runs.

    Uniqueness of ``run_id`` is enforced by the collection's unique index, so a
    replayed insert fails instead of silently overwriting an audit record.
    """

    def __init__(self, db_manager=None):
        self._db_manager = db_manager

    @property
    def db(self):
        return self._db_manager or cloud_database.cloud_db_manager

    async def record(self, run: InductionRun) -> None:
        try:
            collection = await self.db.get_collection(INDUCTION_RUNS)
            await collection.insert_one(run.to_document())
        except DuplicateKeyError as e:
            raise PersistenceError(f"Run {run.run_id} already recorded") from e
        except PyMongoError as e:
            raise PersistenceError(f"Could not record run {run.run_id}: {e}") from e
        logger.info(f"Recorded induction run {run.run_id}")

    async def get(self, run_id: str) -> InductionRun:
        collection = await self.db.get_collection(INDUCTION_RUNS)
        doc = await collection.find_one({"run_id": run_id})
        if doc is None:
            raise RunNotFoundError(f"Induction run {run_id} not found")
        return InductionRun.from_document(doc)

    async def list_recent(self, limit: Optional[int] = None) -> List[InductionRun]:
        """Newest runs first, limit clamped to the configured maximum"""
        limit = limit or settings.run_list_default_limit
        limit = max(1, min(limit, settings.run_list_max_limit))

        collection = await self.db.get_collection(INDUCTION_RUNS)
        docs = await collection.find({}).sort("created_at", DESCENDING).limit(limit).to_list(length=limit)

        runs: List[InductionRun] = []
        for doc in docs:
            try:
                runs.append(InductionRun.from_document(doc))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable run record {doc.get('run_id')}: {e}")
        return runs
