"""
resto_api.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and DB sessions.
- Encapsulate app.state access (sessionmaker, identity provider, identity admin).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from resto_api.settings import Settings, get_settings

if TYPE_CHECKING:
    from resto_api.auth.identity import IdentityAdminClient, IdentityProvider


def settings_dep(request: Request) -> Settings:
    # Apps built by `create_app` carry their own settings; fall back to the environment.
    return getattr(request.app.state, "settings", None) or get_settings()


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # Created on app startup in `resto_api.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped session. Services commit; anything uncommitted rolls back on close.
    async with session_factory() as session:
        yield session


def identity_provider_from_app(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider  # type: ignore[attr-defined]


def identity_admin_from_app(request: Request) -> IdentityAdminClient:
    return request.app.state.identity_admin  # type: ignore[attr-defined]
