"""
resto_api.services.user_service

User accounts: registration, profile reads/updates, role changes and the
account lifecycle mirrored at the identity provider.

Responsibilities:
- Enforce who may read/update/delete which account.
- Run the role-change rules before any role update reaches the store.
- Keep the identity provider in step (best-effort) when accounts are
  disabled, enabled or deleted.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
)

from resto_api.auth.identity import IdentityAdminClient, IdentityProviderError, is_valid_external_id
from resto_api.auth.models import Principal
from resto_api.auth.roles import (
    RoleChangeForbidden,
    UserRole,
    can_delete_users,
    can_manage_users,
    validate_role_change,
)
from resto_api.db.errors import coerce_id
from resto_api.db.repositories.base import Document
from resto_api.db.repositories.users import UserRepo
from resto_api.observability.logging import get_logger

log = get_logger(__name__)

# Profile fields a PATCH may touch; role and activation have their own pathways.
PROFILE_FIELDS = frozenset({"email", "firstname", "lastname", "phone_number"})


class UserService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        identity_admin: IdentityAdminClient | None = None,
    ) -> None:
        self._session = session
        self._identity = identity_admin
        self._users = UserRepo(session)

    async def register_user(
        self,
        *,
        email: str,
        password: str,
        firstname: str,
        lastname: str,
        phone_number: str | None = None,
    ) -> Document:
        if self._identity is None:
            raise RuntimeError("identity admin client is not configured")
        try:
            external_id = await self._identity.sign_up(email=email, password=password)
        except IdentityProviderError as e:
            log.warning("identity_sign_up_failed", email=email, error=str(e))
            raise HTTPException(
                status_code=HTTP_400_BAD_REQUEST, detail="Failed to create identity account"
            ) from e

        saved = await self._users.insert(
            {
                "email": email,
                "external_id": external_id,
                "firstname": firstname,
                "lastname": lastname,
                "role": UserRole.customer,
                "phone_number": phone_number,
                "is_active": True,
            }
        )
        await self._session.commit()
        log.info("user_registered", user_id=str(saved["id"]))
        return await self._get_or_404(saved["id"])

    async def get_user(self, user_id: str, *, requester: Principal) -> Document:
        uid = coerce_id(user_id)
        if not requester.owns(uid) and not can_manage_users(requester.role):
            raise HTTPException(
                status_code=HTTP_403_FORBIDDEN,
                detail="Insufficient permissions. You can only view your own profile.",
            )
        return await self._get_or_404(uid)

    async def list_users(self, *, role: UserRole | None = None) -> list[Document]:
        if role is not None:
            return await self._users.find_many_by({"role": role})
        return await self._users.find_all()

    async def update_user(
        self, user_id: str, fields: Mapping[str, Any], *, requester: Principal
    ) -> Document:
        uid = coerce_id(user_id)
        if not requester.owns(uid) and not can_manage_users(requester.role):
            raise HTTPException(
                status_code=HTTP_403_FORBIDDEN,
                detail="Insufficient permissions. You can only update your own profile.",
            )
        changes = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}
        if not await self._users.update_one_by({"id": uid}, changes):
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Failed to update user")
        await self._session.commit()
        return await self._get_or_404(uid)

    async def update_user_role(
        self, user_id: str, new_role: UserRole, *, requester: Principal
    ) -> Document:
        uid = coerce_id(user_id)
        try:
            validate_role_change(requester.role, new_role, is_own_role=requester.owns(uid))
        except RoleChangeForbidden as e:
            log.info(
                "role_change_denied",
                requester=requester.local_id,
                target=str(uid),
                new_role=str(new_role),
                reason=str(e),
            )
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail=str(e)) from e

        if not await self._users.update_one_by({"id": uid}, {"role": new_role}):
            raise HTTPException(
                status_code=HTTP_400_BAD_REQUEST, detail="Failed to update user role"
            )
        await self._session.commit()
        log.info("role_changed", target=str(uid), new_role=str(new_role))
        return await self._get_or_404(uid)

    async def delete_user(self, user_id: str, *, requester: Principal) -> bool:
        if not can_delete_users(requester.role):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Only admins can delete users")
        uid = coerce_id(user_id)
        user = await self._users.find_one_by_id_with_external_id(uid)
        if user is None:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")

        external_id = user.get("external_id")
        if is_valid_external_id(external_id) and self._identity is not None:
            try:
                await self._identity.delete_account(external_id)
            except IdentityProviderError as e:
                # The local record is removed regardless; the provider account may already be gone.
                log.warning("identity_delete_failed", user_id=str(uid), error=str(e))
        else:
            log.warning("identity_delete_skipped", user_id=str(uid))

        if not await self._users.delete_one_by({"id": uid}):
            raise HTTPException(
                status_code=HTTP_400_BAD_REQUEST, detail="Failed to delete user from database"
            )
        await self._session.commit()
        log.info("user_deleted", user_id=str(uid))
        return True

    async def deactivate_user(self, user_id: str) -> Document:
        return await self._set_active(user_id, active=False)

    async def activate_user(self, user_id: str) -> Document:
        return await self._set_active(user_id, active=True)

    async def _set_active(self, user_id: str, *, active: bool) -> Document:
        uid = coerce_id(user_id)
        user = await self._users.find_one_by_id_with_external_id(uid)
        if user is None:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")

        external_id = user.get("external_id")
        if is_valid_external_id(external_id) and self._identity is not None:
            try:
                await self._identity.set_disabled(external_id, disabled=not active)
            except IdentityProviderError as e:
                log.warning("identity_status_update_failed", user_id=str(uid), error=str(e))
        else:
            log.warning("identity_status_update_skipped", user_id=str(uid))

        action = "activate" if active else "deactivate"
        if not await self._users.update_one_by({"id": uid}, {"is_active": active}):
            raise HTTPException(
                status_code=HTTP_400_BAD_REQUEST, detail=f"Failed to {action} user in database"
            )
        await self._session.commit()
        return await self._get_or_404(uid)

    async def _get_or_404(self, user_id: uuid.UUID | str) -> Document:
        user = await self._users.find_one_by_id(user_id)
        if user is None:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")
        return user
