"""What-If Simulation API endpoints"""
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from typing import List, Optional
import logging

from pydantic import BaseModel, Field

from induction_engine.api.dependencies import get_induction_service, get_scenario_store
from induction_engine.errors import FactSourceUnavailableError, PersistenceError
from induction_engine.models.induction import CategoryCounts
from induction_engine.models.simulation import SimulationRuleSet
from induction_engine.models.trainset import FleetFilter
from induction_engine.security import require_api_key
from induction_engine.services.induction_service import InductionService
from induction_engine.services.scenario_store import SimulationScenarioStore

router = APIRouter()
logger = logging.getLogger(__name__)


class SimulationRequest(BaseModel):
    """What-if request: fleet selection plus rule toggles"""
    depot_id: Optional[str] = None
    trainset_ids: Optional[List[str]] = None
    rules: SimulationRuleSet = Field(default_factory=SimulationRuleSet)
    save_as: Optional[str] = Field(None, description="Store the result as a named scenario")


@router.post("/simulate")
async def simulate(
    request: SimulationRequest,
    x_actor_id: Optional[str] = Header(default=None),
    service: InductionService = Depends(get_induction_service),
    store: SimulationScenarioStore = Depends(get_scenario_store),
    _auth=Depends(require_api_key),
):
    """Recompute decisions under the given toggles"""
    fleet_filter = FleetFilter(depot_id=request.depot_id, trainset_ids=request.trainset_ids)
    try:
        outcomes = await service.run_simulation(fleet_filter, request.rules)
    except FactSourceUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    response = {
        "rules": request.rules.model_dump(),
        "counts": CategoryCounts.of(outcomes).model_dump(),
        "results": [o.model_dump(mode="json") for o in outcomes],
    }

    if request.save_as:
        try:
            scenario = await store.save(request.save_as, request.rules, outcomes, created_by=x_actor_id)
        except PersistenceError as e:
            logger.error(f"Scenario '{request.save_as}' not saved: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        response["simulation_id"] = scenario.simulation_id
        response["name"] = scenario.name

    return response


@router.get("/scenarios")
async def list_scenarios(
    limit: Optional[int] = Query(None, ge=1),
    store: SimulationScenarioStore = Depends(get_scenario_store),
    _auth=Depends(require_api_key),
):
    """Saved what-if scenarios, newest first"""
    scenarios = await store.list_recent(limit)
    return {
        "scenarios": [
            {
                "simulation_id": s.simulation_id,
                "name": s.name,
                "rules": s.rules.model_dump(),
                "counts": s.counts.model_dump(),
                "created_by": s.created_by,
                "created_at": s.created_at.isoformat(),
            }
            for s in scenarios
        ]
    }
