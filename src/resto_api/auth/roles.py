"""
resto_api.auth.roles

Role -> capability mapping for the restaurant hierarchy.

Responsibilities:
- Define each capability once as a pure predicate over a role.
- Enforce the ordered rules for changing another user's role.

The hierarchy is customer < waiter < kitchen_staff < manager < owner < admin,
but most predicates test set membership rather than a threshold (a waiter can
take orders, kitchen staff cannot, yet kitchen staff rank above waiters).
"""

from __future__ import annotations

from typing import Any

from resto_api.db.models import UserRole

__all__ = [
    "UserRole",
    "RoleChangeForbidden",
    "can_manage_users",
    "can_change_roles",
    "can_delete_users",
    "can_create_owners",
    "can_manage_orders",
    "can_take_orders",
    "can_prepare_orders",
    "can_supervise_restaurant",
    "is_admin",
    "is_management",
    "validate_role_change",
    "role_description",
    "permissions_for",
]

MANAGEMENT_ROLES = frozenset({UserRole.manager, UserRole.owner, UserRole.admin})

_ORDER_TAKERS = frozenset({UserRole.waiter, UserRole.manager, UserRole.owner, UserRole.admin})
_ORDER_PREPARERS = frozenset(
    {UserRole.kitchen_staff, UserRole.manager, UserRole.owner, UserRole.admin}
)
_SUPERVISORS = frozenset({UserRole.owner, UserRole.admin})


def can_manage_users(role: UserRole | str | None) -> bool:
    return role in MANAGEMENT_ROLES


def can_change_roles(role: UserRole | str | None) -> bool:
    return role in MANAGEMENT_ROLES


def can_delete_users(role: UserRole | str | None) -> bool:
    return role == UserRole.admin


def can_create_owners(role: UserRole | str | None) -> bool:
    return role == UserRole.admin


def can_manage_orders(role: UserRole | str | None) -> bool:
    # Placing and paying for orders is open to every role.
    return role in frozenset(UserRole)


def can_take_orders(role: UserRole | str | None) -> bool:
    return role in _ORDER_TAKERS


def can_prepare_orders(role: UserRole | str | None) -> bool:
    return role in _ORDER_PREPARERS


def can_supervise_restaurant(role: UserRole | str | None) -> bool:
    return role in _SUPERVISORS


def is_admin(role: UserRole | str | None) -> bool:
    return role == UserRole.admin


def is_management(role: UserRole | str | None) -> bool:
    return role in MANAGEMENT_ROLES


class RoleChangeForbidden(Exception):
    pass


def validate_role_change(
    requester_role: UserRole | str | None,
    target_role: UserRole | str,
    *,
    is_own_role: bool = False,
) -> None:
    """
    Raise `RoleChangeForbidden` unless `requester_role` may assign `target_role`.

    Checks run in a fixed order and the first failing one wins:
    self-change, admin target, owner target, manager target, then the general
    role-change capability.
    """

    if is_own_role:
        raise RoleChangeForbidden("Users cannot change their own role")
    if target_role == UserRole.admin and requester_role != UserRole.admin:
        raise RoleChangeForbidden("Only admins can assign admin roles")
    if target_role == UserRole.owner and requester_role != UserRole.admin:
        raise RoleChangeForbidden("Only admins can assign owner roles")
    if target_role == UserRole.manager and requester_role not in _SUPERVISORS:
        raise RoleChangeForbidden("Only admins or owners can assign manager roles")
    if not can_change_roles(requester_role):
        raise RoleChangeForbidden("Insufficient permissions to change user roles")


_DESCRIPTIONS: dict[UserRole, str] = {
    UserRole.customer: "Can place orders and make payments",
    UserRole.waiter: "Can take orders, send to kitchen, and receive order ready notifications",
    UserRole.kitchen_staff: "Can receive orders, prepare them, and mark them as ready",
    UserRole.manager: (
        "Can change user roles (except admin/owner), activate/deactivate users, "
        "and manage restaurant operations"
    ),
    UserRole.owner: (
        "Can supervise entire restaurant, add/remove users, change roles "
        "(except admin and own role), plus all manager rights"
    ),
    UserRole.admin: (
        "Full access to all features including creating owner accounts "
        "and permanent user deletion"
    ),
}


def role_description(role: UserRole | str | None) -> str:
    try:
        return _DESCRIPTIONS[UserRole(role)]
    except ValueError:
        return "Unknown role"


def permissions_for(role: UserRole | str | None) -> dict[str, Any]:
    return {
        "role": role,
        "can_manage_users": can_manage_users(role),
        "can_change_roles": can_change_roles(role),
        "can_delete_users": can_delete_users(role),
        "can_create_owners": can_create_owners(role),
        "can_manage_orders": can_manage_orders(role),
        "can_take_orders": can_take_orders(role),
        "can_prepare_orders": can_prepare_orders(role),
        "can_supervise_restaurant": can_supervise_restaurant(role),
        "role_description": role_description(role),
    }
