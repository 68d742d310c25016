"""
resto_api.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness information (`/health`).
- Provide readiness probe (`/readyz`) with DB connectivity validation.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from resto_api.api.deps import db_session, settings_dep
from resto_api.settings import Settings

router = APIRouter()

_STARTED = time.monotonic()


@router.get("/health")
async def health(settings: Settings = Depends(settings_dep)) -> dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": datetime.now(tz=UTC).isoformat(),
        "uptime": round(time.monotonic() - _STARTED, 3),
        "environment": settings.env,
        "version": settings.app_version,
    }


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(db_session)) -> dict[str, str]:
    await session.execute(text("SELECT 1"))
    return {"status": "ready"}
