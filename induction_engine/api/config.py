# induction_engine/api/config.py
from fastapi import APIRouter, Depends, Header, HTTPException
from typing import Any, Dict, Optional
import logging

from pydantic import BaseModel, Field

from induction_engine.api.dependencies import get_weights_provider
from induction_engine.core.scoring_config import ScoringWeights
from induction_engine.errors import ConfigError, PersistenceError
from induction_engine.security import require_api_key
from induction_engine.services.weights_provider import WeightsProvider

router = APIRouter()
logger = logging.getLogger(__name__)


class ScoringConfigUpdate(BaseModel):
    weights: Dict[str, Any] = Field(default_factory=dict, description="Weight name -> value")
    version: Optional[str] = None


@router.get("/scoring")
async def get_scoring_config(
    provider: WeightsProvider = Depends(get_weights_provider),
    _auth=Depends(require_api_key),
):
    """Current scoring weights and the recognised option names"""
    config = await provider.describe()
    config["options"] = ScoringWeights.recognized_options()
    return config


@router.put("/scoring")
async def replace_scoring_config(
    update: ScoringConfigUpdate,
    x_actor_id: Optional[str] = Header(default=None),
    provider: WeightsProvider = Depends(get_weights_provider),
    _auth=Depends(require_api_key),
):
    """Replace the stored weights; unrecognised names are ignored and reported"""
    try:
        weights, ignored = await provider.replace(update.weights, update.version, updated_by=x_actor_id)
    except ConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceError as e:
        logger.error(f"Scoring config not stored: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "weights": weights.model_dump(exclude={"version"}),
        "version": weights.version,
        "ignored": ignored,
    }
