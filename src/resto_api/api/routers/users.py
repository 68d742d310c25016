"""
resto_api.api.routers.users

User account endpoints.

Responsibilities:
- Public registration.
- Authenticated profile reads/updates, role changes and account lifecycle.
- Permission summary for the calling user.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from resto_api.api.deps import db_session, identity_admin_from_app
from resto_api.api.envelope import ApiResponse, ok
from resto_api.auth.deps import authenticate
from resto_api.auth.guards import RoleRequirements, RolesGuard, roles
from resto_api.auth.identity import IdentityAdminClient
from resto_api.auth.models import Principal
from resto_api.auth.roles import MANAGEMENT_ROLES, UserRole, permissions_for
from resto_api.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])

_roles = RolesGuard(
    RoleRequirements(
        handlers={
            "list_users": MANAGEMENT_ROLES,
            "deactivate_user": MANAGEMENT_ROLES,
            "activate_user": MANAGEMENT_ROLES,
            "delete_user": roles(UserRole.admin),
        }
    )
)
_guarded = [Depends(authenticate), Depends(_roles)]


class UserCreateRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    firstname: str = Field(min_length=1, max_length=128)
    lastname: str = Field(min_length=1, max_length=128)
    phone_number: str | None = Field(default=None, max_length=32)


class UserUpdateRequest(BaseModel):
    email: EmailStr | None = None
    firstname: str | None = Field(default=None, min_length=1, max_length=128)
    lastname: str | None = Field(default=None, min_length=1, max_length=128)
    phone_number: str | None = Field(default=None, max_length=32)


class RoleUpdateRequest(BaseModel):
    role: UserRole


class UserOut(BaseModel):
    id: uuid.UUID
    email: str
    firstname: str
    lastname: str
    role: UserRole
    phone_number: str | None = None
    is_active: bool
    date_of_creation: str
    date_last_modified: str | None = None


class DeleteResult(BaseModel):
    deleted: bool
    message: str


def _service(
    session: AsyncSession = Depends(db_session),
    identity_admin: IdentityAdminClient = Depends(identity_admin_from_app),
) -> UserService:
    return UserService(session=session, identity_admin=identity_admin)


@router.post("", status_code=201, response_model=ApiResponse[UserOut])
async def create_user(
    body: UserCreateRequest, svc: UserService = Depends(_service)
) -> ApiResponse[Any]:
    user = await svc.register_user(
        email=body.email,
        password=body.password,
        firstname=body.firstname,
        lastname=body.lastname,
        phone_number=body.phone_number,
    )
    return ok(user)


@router.get("/me", response_model=ApiResponse[UserOut], dependencies=_guarded)
async def get_me(principal: Principal = Depends(authenticate), svc: UserService = Depends(_service)):
    return ok(await svc.get_user(principal.local_id, requester=principal))


@router.get("/permissions/check", dependencies=_guarded)
async def check_permissions(principal: Principal = Depends(authenticate)) -> ApiResponse[Any]:
    return ok(permissions_for(principal.role))


@router.get("", response_model=ApiResponse[list[UserOut]], dependencies=_guarded)
async def list_users(role: UserRole | None = None, svc: UserService = Depends(_service)):
    return ok(await svc.list_users(role=role))


@router.get("/{user_id}", response_model=ApiResponse[UserOut], dependencies=_guarded)
async def get_user(
    user_id: str,
    principal: Principal = Depends(authenticate),
    svc: UserService = Depends(_service),
):
    return ok(await svc.get_user(user_id, requester=principal))


@router.patch("/{user_id}", response_model=ApiResponse[UserOut], dependencies=_guarded)
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    principal: Principal = Depends(authenticate),
    svc: UserService = Depends(_service),
):
    fields = body.model_dump(exclude_unset=True)
    return ok(await svc.update_user(user_id, fields, requester=principal))


@router.put("/{user_id}/role", response_model=ApiResponse[UserOut], dependencies=_guarded)
async def update_user_role(
    user_id: str,
    body: RoleUpdateRequest,
    principal: Principal = Depends(authenticate),
    svc: UserService = Depends(_service),
):
    return ok(await svc.update_user_role(user_id, body.role, requester=principal))


@router.delete("/{user_id}", response_model=ApiResponse[DeleteResult], dependencies=_guarded)
async def delete_user(
    user_id: str,
    principal: Principal = Depends(authenticate),
    svc: UserService = Depends(_service),
):
    deleted = await svc.delete_user(user_id, requester=principal)
    return ok(DeleteResult(deleted=deleted, message="User deleted from identity provider and database"))


@router.put("/{user_id}/deactivate", response_model=ApiResponse[UserOut], dependencies=_guarded)
async def deactivate_user(user_id: str, svc: UserService = Depends(_service)):
    return ok(await svc.deactivate_user(user_id))


@router.put("/{user_id}/activate", response_model=ApiResponse[UserOut], dependencies=_guarded)
async def activate_user(user_id: str, svc: UserService = Depends(_service)):
    return ok(await svc.activate_user(user_id))
