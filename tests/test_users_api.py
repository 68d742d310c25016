"""
tests.test_users_api

User endpoints end to end: authentication, role guards, role changes and the
account lifecycle mirrored at the identity provider.
"""

from __future__ import annotations

import pytest

from resto_api.db.models import UserRole
from resto_api.db.repositories.users import UserRepo


def _signup(email: str = "new@restomail.com", **overrides):
    body = {"email": email, "password": "secret1", "firstname": "New", "lastname": "Guest"}
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_register_creates_customer(api) -> None:
    r = await api.client.post("/users", json=_signup(role="admin"))
    assert r.status_code == 201
    body = r.json()
    assert body["error"] == ""
    assert body["data"]["role"] == "customer"
    assert body["data"]["is_active"] is True
    assert "external_id" not in body["data"]
    assert api.identity_admin.calls == [("sign_up", "new@restomail.com")]


@pytest.mark.asyncio
async def test_register_errors(api) -> None:
    await api.seed_user(email="taken@restomail.com")

    r = await api.client.post("/users", json=_signup("taken@restomail.com"))
    assert r.status_code == 409
    assert r.json()["errorCode"] == "DUPLICATE_ENTRY"
    assert r.json()["message"] == "email 'taken@restomail.com' already exists"

    r = await api.client.post("/users", json=_signup("not-an-email"))
    assert r.status_code == 400
    assert r.json()["errorCode"] == "VALIDATION_ERROR"
    assert r.json()["details"]["errors"][0]["field"] == "email"

    api.identity_admin.fail_sign_up = True
    r = await api.client.post("/users", json=_signup("other@restomail.com"))
    assert r.status_code == 400
    assert r.json() == {"errorCode": "BAD_REQUEST", "message": "Failed to create identity account"}


@pytest.mark.asyncio
async def test_unauthenticated_requests_are_rejected(api) -> None:
    r = await api.client.get("/users/me")
    assert r.status_code == 401
    assert r.json() == {
        "errorCode": "UNAUTHORIZED",
        "message": "Invalid or missing authentication token",
    }
    assert r.headers["www-authenticate"] == "Bearer"

    r = await api.client.get("/users/me", headers=api.auth("ext-nobody"))
    assert r.status_code == 401

    r = await api.client.get("/users/me", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_and_permissions(api) -> None:
    cook = await api.seed_user(role=UserRole.kitchen_staff)
    headers = api.auth(cook["external_id"])

    r = await api.client.get("/users/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["id"] == str(cook["id"])

    r = await api.client.get("/users/permissions/check", headers=headers)
    assert r.status_code == 200
    perms = r.json()["data"]
    assert perms["role"] == "kitchen_staff"
    assert perms["can_prepare_orders"] is True
    assert perms["can_take_orders"] is False
    assert perms["can_manage_users"] is False


@pytest.mark.asyncio
async def test_inactive_user_still_authenticates(api) -> None:
    user = await api.seed_user(is_active=False)
    r = await api.client.get("/users/me", headers=api.auth(user["external_id"]))
    assert r.status_code == 200
    assert r.json()["data"]["is_active"] is False


@pytest.mark.asyncio
async def test_role_change_manager_to_owner_is_forbidden_admin_succeeds(api) -> None:
    manager = await api.seed_user(role=UserRole.manager)
    admin = await api.seed_user(role=UserRole.admin)
    target = await api.seed_user(role=UserRole.waiter)
    url = f"/users/{target['id']}/role"

    r = await api.client.put(url, json={"role": "owner"}, headers=api.auth(manager["external_id"]))
    assert r.status_code == 403
    assert r.json() == {"errorCode": "FORBIDDEN", "message": "Only admins can assign owner roles"}

    r = await api.client.put(url, json={"role": "owner"}, headers=api.auth(admin["external_id"]))
    assert r.status_code == 200
    assert r.json()["data"]["role"] == "owner"

    r = await api.client.get(f"/users/{target['id']}", headers=api.auth(admin["external_id"]))
    assert r.json()["data"]["role"] == "owner"


@pytest.mark.asyncio
async def test_role_change_rules_over_http(api) -> None:
    admin = await api.seed_user(role=UserRole.admin)
    waiter = await api.seed_user(role=UserRole.waiter)
    customer = await api.seed_user()

    r = await api.client.put(
        f"/users/{admin['id']}/role", json={"role": "customer"}, headers=api.auth(admin["external_id"])
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Users cannot change their own role"

    r = await api.client.put(
        f"/users/{customer['id']}/role", json={"role": "customer"}, headers=api.auth(waiter["external_id"])
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Insufficient permissions to change user roles"

    r = await api.client.put(
        f"/users/{customer['id']}/role", json={"role": "chef"}, headers=api.auth(admin["external_id"])
    )
    assert r.status_code == 400
    assert r.json()["errorCode"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_profile_access(api) -> None:
    alice = await api.seed_user()
    bob = await api.seed_user()
    manager = await api.seed_user(role=UserRole.manager)

    r = await api.client.get(f"/users/{bob['id']}", headers=api.auth(alice["external_id"]))
    assert r.status_code == 403
    assert r.json()["errorCode"] == "FORBIDDEN"

    r = await api.client.get(f"/users/{bob['id']}", headers=api.auth(manager["external_id"]))
    assert r.status_code == 200

    r = await api.client.patch(
        f"/users/{alice['id']}",
        json={"lastname": "Updated", "role": "admin", "is_active": False},
        headers=api.auth(alice["external_id"]),
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["lastname"] == "Updated"
    assert data["role"] == "customer"
    assert data["is_active"] is True

    r = await api.client.patch(
        f"/users/{bob['id']}", json={"lastname": "Nope"}, headers=api.auth(alice["external_id"])
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_malformed_and_unknown_ids(api) -> None:
    manager = await api.seed_user(role=UserRole.manager)
    headers = api.auth(manager["external_id"])

    r = await api.client.get("/users/not-a-uuid", headers=headers)
    assert r.status_code == 400
    assert r.json() == {
        "errorCode": "INVALID_INPUT",
        "message": "Invalid id: not-a-uuid",
        "details": {"field": "id", "value": "not-a-uuid", "expectedType": "UUID"},
    }

    r = await api.client.get("/users/00000000-0000-0000-0000-000000000000", headers=headers)
    assert r.status_code == 404
    assert r.json() == {"errorCode": "NOT_FOUND", "message": "User not found"}


@pytest.mark.asyncio
async def test_list_users_requires_management(api) -> None:
    waiter = await api.seed_user(role=UserRole.waiter)
    manager = await api.seed_user(role=UserRole.manager)
    await api.seed_user()

    r = await api.client.get("/users", headers=api.auth(waiter["external_id"]))
    assert r.status_code == 403
    assert r.json() == {"errorCode": "FORBIDDEN", "message": "Insufficient role"}

    r = await api.client.get("/users", headers=api.auth(manager["external_id"]))
    assert r.status_code == 200
    assert len(r.json()["data"]) == 3

    r = await api.client.get("/users?role=waiter", headers=api.auth(manager["external_id"]))
    assert [u["id"] for u in r.json()["data"]] == [str(waiter["id"])]


@pytest.mark.asyncio
async def test_deactivate_and_activate(api) -> None:
    manager = await api.seed_user(role=UserRole.manager)
    target = await api.seed_user()
    headers = api.auth(manager["external_id"])

    r = await api.client.put(f"/users/{target['id']}/deactivate", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["is_active"] is False

    r = await api.client.put(f"/users/{target['id']}/activate", headers=headers)
    assert r.json()["data"]["is_active"] is True

    assert api.identity_admin.calls == [
        ("set_disabled", (target["external_id"], True)),
        ("set_disabled", (target["external_id"], False)),
    ]

    r = await api.client.put(
        f"/users/{manager['id']}/deactivate", headers=api.auth(target["external_id"])
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_delete_is_admin_only(api) -> None:
    owner = await api.seed_user(role=UserRole.owner)
    admin = await api.seed_user(role=UserRole.admin)
    target = await api.seed_user()

    r = await api.client.delete(f"/users/{target['id']}", headers=api.auth(owner["external_id"]))
    assert r.status_code == 403

    r = await api.client.delete(f"/users/{target['id']}", headers=api.auth(admin["external_id"]))
    assert r.status_code == 200
    assert r.json()["data"]["deleted"] is True
    assert ("delete_account", target["external_id"]) in api.identity_admin.calls

    r = await api.client.get(f"/users/{target['id']}", headers=api.auth(admin["external_id"]))
    assert r.status_code == 404

    r = await api.client.delete(f"/users/{target['id']}", headers=api.auth(admin["external_id"]))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_lifecycle_skips_identity_call_for_unusable_external_id(api) -> None:
    manager = await api.seed_user(role=UserRole.manager)
    async with api.app.state.sessionmaker() as s:
        legacy = await UserRepo(s).insert(
            {
                "email": "legacy@restomail.com",
                "external_id": "x" * 129,
                "firstname": "Old",
                "lastname": "Account",
            }
        )
        await s.commit()

    r = await api.client.put(
        f"/users/{legacy['id']}/deactivate", headers=api.auth(manager["external_id"])
    )
    assert r.status_code == 200
    assert r.json()["data"]["is_active"] is False
    assert api.identity_admin.calls == []
