"""
resto_api.auth.identity

Boundary to the external identity provider.

Responsibilities:
- Verify bearer tokens and expose the verified subject (`IdentityProvider`).
- Drive account lifecycle calls (sign-up, disable/enable, delete) over HTTP.

The guards only ever use `verify_token`; lifecycle calls are made by services.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from resto_api.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from resto_api.auth.models import VerifiedIdentity
from resto_api.observability.logging import get_logger
from resto_api.settings import Settings

log = get_logger(__name__)

MAX_EXTERNAL_ID_LENGTH = 128


class IdentityVerificationError(Exception):
    pass


class IdentityProviderError(Exception):
    pass


class IdentityProvider(Protocol):
    async def verify_token(self, token: str) -> VerifiedIdentity: ...


class JwtIdentityProvider:
    """
    Verifies provider-issued JWTs locally (signature + registered claims).
    """

    def __init__(self, cfg: JwtConfig) -> None:
        self._cfg = cfg

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtIdentityProvider:
        return cls(JwtConfig.from_settings(settings))

    async def verify_token(self, token: str) -> VerifiedIdentity:
        try:
            claims = decode_and_validate(cfg=self._cfg, token=token)
        except JwtValidationError as e:
            raise IdentityVerificationError(str(e)) from e
        subject = str(claims.get("sub") or "")
        if not subject:
            raise IdentityVerificationError("token has no subject")
        return VerifiedIdentity(subject_id=subject, claims=claims)


def is_valid_external_id(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip()) and len(value) <= MAX_EXTERNAL_ID_LENGTH


class IdentityAdminClient:
    """
    Account lifecycle client for an Identity Toolkit style REST API.
    """

    def __init__(self, *, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http

    def _params(self) -> dict[str, str]:
        return {"key": self._settings.identity_api_key}

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            r = await self._http.post(path, params=self._params(), json=body)
            r.raise_for_status()
            return r.json()
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"{path}: {e}") from e

    async def sign_up(self, *, email: str, password: str) -> str:
        data = await self._post(
            "/v1/accounts:signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        external_id = data.get("localId")
        if not is_valid_external_id(external_id):
            raise IdentityProviderError("sign-up response has no account id")
        return external_id

    async def set_disabled(self, external_id: str, *, disabled: bool) -> None:
        await self._post("/v1/accounts:update", {"localId": external_id, "disableUser": disabled})

    async def delete_account(self, external_id: str) -> None:
        await self._post("/v1/accounts:delete", {"localId": external_id})


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.identity_api_base_url,
        timeout=settings.identity_timeout_seconds,
        headers={"Content-Type": "application/json"},
    )


# --- Module Notes -----------------------------------------------------------
# Swapping providers means implementing `IdentityProvider.verify_token` (and,
# for services, the three lifecycle calls); nothing else depends on the vendor.
