"""
resto_api.auth.deps

FastAPI dependency functions for authentication.

Responsibilities:
- Run the identity verification guard and expose the resulting `Principal`.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_401_UNAUTHORIZED

from resto_api.api.deps import db_session, identity_provider_from_app
from resto_api.auth.guards import IdentityVerificationGuard
from resto_api.auth.identity import IdentityProvider
from resto_api.auth.models import Principal
from resto_api.db.repositories.users import UserRepo


async def authenticate(
    request: Request,
    session: AsyncSession = Depends(db_session),
    identity: IdentityProvider = Depends(identity_provider_from_app),
) -> Principal:
    guard = IdentityVerificationGuard(identity=identity, users=UserRepo(session))
    if not await guard.can_activate(request):
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    principal: Principal = request.state.principal
    structlog.contextvars.bind_contextvars(user_id=principal.local_id, role=principal.role)
    return principal


# --- Module Notes -----------------------------------------------------------
# Routers list `Depends(authenticate)` before their `RolesGuard` so the role
# check always sees the principal attached here.
