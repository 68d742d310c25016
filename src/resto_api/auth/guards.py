"""
resto_api.auth.guards

Request-time guards.

Responsibilities:
- `IdentityVerificationGuard`: bearer token -> verified identity -> local user,
  attached to `request.state`.
- `RolesGuard`: compare the attached principal's role with the roles required
  by the matched handler.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from fastapi import HTTPException, Request
from starlette.status import HTTP_403_FORBIDDEN

from resto_api.auth.identity import IdentityProvider
from resto_api.auth.models import Principal
from resto_api.db.models import UserRole
from resto_api.observability.logging import get_logger

log = get_logger(__name__)

BEARER_PREFIX = "Bearer "


class UserLookup(Protocol):
    async def find_one_by(
        self, condition: Mapping[str, Any], *, include: Collection[str] = ()
    ) -> dict[str, Any] | None: ...


def extract_bearer_token(header: str | None) -> str | None:
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    return header[len(BEARER_PREFIX) :].strip() or None


class IdentityVerificationGuard:
    """
    One-shot authentication per request. Any failure denies; nothing raises.

    The resolved user's `is_active` flag is not consulted: a deactivated account
    holding a valid token still authenticates here.
    """

    def __init__(self, *, identity: IdentityProvider, users: UserLookup) -> None:
        self._identity = identity
        self._users = users

    async def can_activate(self, request: Request) -> bool:
        token = extract_bearer_token(request.headers.get("authorization"))
        if token is None:
            log.info("auth_denied", reason="missing_or_malformed_bearer")
            return False

        try:
            verified = await self._identity.verify_token(token)
        except Exception as e:
            log.info("auth_denied", reason="token_verification_failed", error=str(e))
            return False

        try:
            user = await self._users.find_one_by({"external_id": verified.subject_id})
        except Exception as e:
            log.warning("auth_denied", reason="user_lookup_failed", error=str(e))
            return False
        if user is None:
            log.info("auth_denied", reason="no_local_account", subject=verified.subject_id)
            return False

        request.state.user = user
        request.state.identity_claims = dict(verified.claims)
        request.state.principal = Principal.from_document(user, external_id=verified.subject_id)
        return True


@dataclass(frozen=True)
class RoleRequirements:
    """
    Required roles for one router.

    `default` applies to every handler of the router; an entry in `handlers`
    (keyed by handler function name) replaces it for that handler. `None`
    everywhere means the router is unrestricted.
    """

    default: frozenset[UserRole] | None = None
    handlers: Mapping[str, frozenset[UserRole]] = field(default_factory=dict)

    def resolve(self, handler_name: str) -> frozenset[UserRole] | None:
        return self.handlers.get(handler_name, self.default)


def roles(*required: UserRole) -> frozenset[UserRole]:
    return frozenset(required)


class RolesGuard:
    def __init__(self, requirements: RoleRequirements) -> None:
        self._requirements = requirements

    def can_activate(self, handler_name: str, principal: Principal | None) -> bool:
        required = self._requirements.resolve(handler_name)
        if required is None:
            return True
        if principal is None or principal.role is None:
            return False
        return principal.role in required

    async def __call__(self, request: Request) -> None:
        # FastAPI dependency form; runs after `authenticate` attached the principal.
        endpoint = request.scope.get("endpoint")
        handler_name = getattr(endpoint, "__name__", "")
        principal = getattr(request.state, "principal", None)
        if not self.can_activate(handler_name, principal):
            log.info("authz_denied", handler=handler_name)
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient role")
