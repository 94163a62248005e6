# induction_engine/api/induction.py
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from typing import Any, Dict, List, Optional
import logging

from pydantic import BaseModel, Field

from induction_engine.api.dependencies import get_induction_service, get_run_recorder
from induction_engine.errors import FactSourceUnavailableError, RunNotFoundError
from induction_engine.models.induction import InductionRun
from induction_engine.models.trainset import FleetFilter
from induction_engine.security import require_api_key
from induction_engine.services.induction_service import InductionService
from induction_engine.services.run_recorder import InductionRunRecorder

router = APIRouter()
logger = logging.getLogger(__name__)


class InductionRunRequest(BaseModel):
    depot_id: Optional[str] = Field(None, description="Restrict the run to one depot")
    trainset_ids: Optional[List[str]] = Field(None, description="Restrict the run to these trainsets")
    # malformed values are clamped to 0 by the service and reported in warnings
    revenue_count: Optional[Any] = Field(None, description="Maximum trainsets to induct into revenue service")


def _run_view(run: InductionRun) -> Dict[str, Any]:
    partitions = run.partitions()
    return {
        "run_id": run.run_id,
        "created_at": run.created_at.isoformat(),
        "created_by": run.created_by,
        "rule": run.rule_set,
        "weights_version": run.weights_version,
        "revenue_cap": run.revenue_cap,
        "counts": run.counts.model_dump(),
        "revenue": [o.model_dump(mode="json") for o in partitions["revenue"]],
        "standby": [o.model_dump(mode="json") for o in partitions["standby"]],
        "ibl": [o.model_dump(mode="json") for o in partitions["ibl"]],
    }


@router.post("/run")
async def run_induction(
    request: InductionRunRequest,
    x_actor_id: Optional[str] = Header(default=None),
    service: InductionService = Depends(get_induction_service),
    _auth=Depends(require_api_key),
):
    """Run the induction engine and record the result"""
    fleet_filter = FleetFilter(depot_id=request.depot_id, trainset_ids=request.trainset_ids)
    try:
        result = await service.run_induction(
            fleet_filter, revenue_cap=request.revenue_count, created_by=x_actor_id
        )
    except FactSourceUnavailableError as e:
        logger.error(f"Induction run aborted: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    payload = _run_view(result.run)
    payload["warnings"] = result.warnings
    payload["persisted"] = result.persisted
    if result.persistence_error:
        payload["persistence_error"] = result.persistence_error
    return payload


@router.get("/runs")
async def list_runs(
    limit: Optional[int] = Query(None, ge=1),
    recorder: InductionRunRecorder = Depends(get_run_recorder),
    _auth=Depends(require_api_key),
):
    """Recent induction runs, newest first"""
    runs = await recorder.list_recent(limit)
    return {
        "runs": [
            {
                "run_id": run.run_id,
                "created_at": run.created_at.isoformat(),
                "created_by": run.created_by,
                "rule": run.rule_set,
                "counts": run.counts.model_dump(),
            }
            for run in runs
        ]
    }


@router.get("/runs/{run_id}")
async def get_run(
    run_id: str,
    recorder: InductionRunRecorder = Depends(get_run_recorder),
    _auth=Depends(require_api_key),
):
    """One recorded run, split into revenue / standby / ibl"""
    try:
        run = await recorder.get(run_id)
    except RunNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _run_view(run)
