# induction_engine/security.py
from __future__ import annotations

from fastapi import Header, HTTPException

from induction_engine.config import settings


async def require_api_key(x_api_key: str | None = Header(default=None)):
    """Shared-key check, enabled only when API_KEY is configured"""
    if settings.api_key and x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return True
