"""
tests.conftest

Shared fixtures: a throwaway aiosqlite database, fake identity collaborators and
an in-process API harness.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from resto_api.api.app import create_app
from resto_api.auth.identity import IdentityProviderError
from resto_api.auth.jwt import JwtConfig, issue_token
from resto_api.db.init_db import init_db
from resto_api.db.models import UserRole
from resto_api.db.repositories.users import UserRepo
from resto_api.db.session import create_engine, create_sessionmaker
from resto_api.settings import Settings


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(env="test", database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")


@pytest_asyncio.fixture
async def session_factory(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as s:
        yield s


class FakeIdentityAdmin:
    """Records lifecycle calls instead of talking to a provider."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.fail_sign_up = False

    async def sign_up(self, *, email: str, password: str) -> str:
        self.calls.append(("sign_up", email))
        if self.fail_sign_up:
            raise IdentityProviderError("EMAIL_EXISTS")
        return f"ext-{uuid.uuid4().hex[:12]}"

    async def set_disabled(self, external_id: str, *, disabled: bool) -> None:
        self.calls.append(("set_disabled", (external_id, disabled)))

    async def delete_account(self, external_id: str) -> None:
        self.calls.append(("delete_account", external_id))


@dataclass
class ApiHarness:
    app: FastAPI
    client: httpx.AsyncClient
    settings: Settings
    identity_admin: FakeIdentityAdmin
    tokens: dict[str, str] = field(default_factory=dict)

    def token_for(self, external_id: str) -> str:
        return issue_token(cfg=JwtConfig.from_settings(self.settings), subject=external_id)

    def auth(self, external_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token_for(external_id)}"}

    async def seed_user(
        self,
        *,
        role: UserRole = UserRole.customer,
        is_active: bool = True,
        email: str | None = None,
    ) -> dict[str, Any]:
        external_id = f"ext-{uuid.uuid4().hex[:12]}"
        async with self.app.state.sessionmaker() as s:
            doc = await UserRepo(s).insert(
                {
                    "email": email or f"{external_id}@restomail.com",
                    "external_id": external_id,
                    "firstname": "Test",
                    "lastname": role.value.title(),
                    "role": role,
                    "is_active": is_active,
                }
            )
            await s.commit()
        return {**doc, "external_id": external_id}


@pytest_asyncio.fixture
async def api(settings: Settings) -> AsyncIterator[ApiHarness]:
    identity_admin = FakeIdentityAdmin()
    app = create_app(settings=settings, identity_admin=identity_admin)

    # httpx ASGITransport does not run the lifespan; drive it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield ApiHarness(
                app=app, client=client, settings=settings, identity_admin=identity_admin
            )
