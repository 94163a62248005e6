# induction_engine/services/scenario_store.py
import logging
import secrets
import time
from typing import List, Optional

from pydantic import ValidationError
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from induction_engine.config import settings
from induction_engine.errors import PersistenceError
from induction_engine.models.induction import CategoryCounts, DecisionOutcome
from induction_engine.models.simulation import SimulationOutcome, SimulationRuleSet, SimulationScenario
from induction_engine.utils import cloud_database
from induction_engine.utils.cloud_database import SIMULATION_SCENARIOS

logger = logging.getLogger(__name__)


def new_simulation_id() -> str:
    return f"sim-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


class SimulationScenarioStore:
    """Named what-if scenarios, saved only when a caller promotes a simulation"""

    def __init__(self, db_manager=None):
        self._db_manager = db_manager

    @property
    def db(self):
        return self._db_manager or cloud_database.cloud_db_manager

    async def save(
        self,
        name: str,
        rules: SimulationRuleSet,
        outcomes: List[SimulationOutcome],
        created_by: Optional[str] = None,
    ) -> SimulationScenario:
        results = [
            DecisionOutcome.model_validate(o.model_dump(include=set(DecisionOutcome.model_fields)))
            for o in outcomes
        ]
        scenario = SimulationScenario(
            simulation_id=new_simulation_id(),
            name=name,
            rules=rules,
            results=results,
            counts=CategoryCounts.of(results),
            created_by=created_by,
        )
        try:
            collection = await self.db.get_collection(SIMULATION_SCENARIOS)
            await collection.insert_one(scenario.to_document())
        except DuplicateKeyError as e:
            raise PersistenceError(f"Scenario {scenario.simulation_id} already exists") from e
        except PyMongoError as e:
            raise PersistenceError(f"Could not save scenario '{name}': {e}") from e
        logger.info(f"Saved what-if scenario '{name}' as {scenario.simulation_id}")
        return scenario

    async def list_recent(self, limit: Optional[int] = None) -> List[SimulationScenario]:
        limit = limit or settings.run_list_default_limit
        limit = max(1, min(limit, settings.run_list_max_limit))
        collection = await self.db.get_collection(SIMULATION_SCENARIOS)
        docs = await collection.find({}).sort("created_at", DESCENDING).limit(limit).to_list(length=limit)

        scenarios: List[SimulationScenario] = []
        for doc in docs:
            try:
                scenarios.append(SimulationScenario.from_document(doc))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable scenario {doc.get('simulation_id')}: {e}")
        return scenarios
