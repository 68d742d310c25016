"""
tests.test_identity

Token verification and the identity provider's account lifecycle client.
"""

from __future__ import annotations

import json
from datetime import timedelta

import httpx
import pytest

from resto_api.auth.identity import (
    IdentityAdminClient,
    IdentityProviderError,
    IdentityVerificationError,
    JwtIdentityProvider,
    is_valid_external_id,
)
from resto_api.auth.jwt import JwtConfig, issue_token
from resto_api.settings import Settings

CFG = JwtConfig(alg="HS256", issuer="resto-test", audience="resto-api", secret="s3cret")


@pytest.mark.asyncio
async def test_verify_token_returns_subject_and_claims() -> None:
    token = issue_token(cfg=CFG, subject="ext-42", extra_claims={"email": "a@restomail.com"})
    verified = await JwtIdentityProvider(CFG).verify_token(token)
    assert verified.subject_id == "ext-42"
    assert verified.claims["email"] == "a@restomail.com"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token",
    [
        issue_token(cfg=CFG, subject="ext-42", ttl=timedelta(seconds=-5)),
        issue_token(
            cfg=JwtConfig(alg="HS256", issuer="resto-test", audience="other", secret="s3cret"),
            subject="ext-42",
        ),
        issue_token(
            cfg=JwtConfig(alg="HS256", issuer="resto-test", audience="resto-api", secret="nope"),
            subject="ext-42",
        ),
        "not-a-jwt",
    ],
    ids=["expired", "wrong-audience", "wrong-secret", "garbage"],
)
async def test_verify_token_rejects_bad_tokens(token: str) -> None:
    with pytest.raises(IdentityVerificationError):
        await JwtIdentityProvider(CFG).verify_token(token)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("abc123", True), ("x" * 128, True), ("x" * 129, False), ("", False), ("  ", False), (None, False), (42, False)],
)
def test_is_valid_external_id(value, expected: bool) -> None:
    assert is_valid_external_id(value) is expected


def _client(handler) -> tuple[IdentityAdminClient, httpx.AsyncClient]:
    settings = Settings(
        env="test",
        identity_api_base_url="https://identity.test",
        identity_api_key="k-123",
    )
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url=settings.identity_api_base_url
    )
    return IdentityAdminClient(settings=settings, http=http), http


@pytest.mark.asyncio
async def test_sign_up_returns_account_id() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"localId": "ext-new", "idToken": "t"})

    client, http = _client(handler)
    async with http:
        assert await client.sign_up(email="a@restomail.com", password="secret1") == "ext-new"

    req = seen[0]
    assert req.url.path == "/v1/accounts:signUp"
    assert req.url.params["key"] == "k-123"
    assert json.loads(req.content) == {
        "email": "a@restomail.com",
        "password": "secret1",
        "returnSecureToken": True,
    }


@pytest.mark.asyncio
async def test_sign_up_failures_raise_provider_error() -> None:
    client, http = _client(lambda request: httpx.Response(400, json={"error": "EMAIL_EXISTS"}))
    async with http:
        with pytest.raises(IdentityProviderError):
            await client.sign_up(email="a@restomail.com", password="secret1")

    client, http = _client(lambda request: httpx.Response(200, json={}))
    async with http:
        with pytest.raises(IdentityProviderError, match="no account id"):
            await client.sign_up(email="a@restomail.com", password="secret1")


@pytest.mark.asyncio
async def test_transport_errors_raise_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client, http = _client(handler)
    async with http:
        with pytest.raises(IdentityProviderError):
            await client.delete_account("ext-1")


@pytest.mark.asyncio
async def test_lifecycle_calls() -> None:
    seen: list[tuple[str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={})

    client, http = _client(handler)
    async with http:
        await client.set_disabled("ext-1", disabled=True)
        await client.set_disabled("ext-1", disabled=False)
        await client.delete_account("ext-1")

    assert seen == [
        ("/v1/accounts:update", {"localId": "ext-1", "disableUser": True}),
        ("/v1/accounts:update", {"localId": "ext-1", "disableUser": False}),
        ("/v1/accounts:delete", {"localId": "ext-1"}),
    ]
