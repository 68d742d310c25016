"""
resto_api.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
- Define the result of a successful token verification.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from resto_api.db.models import UserRole


@dataclass(frozen=True, slots=True)
class VerifiedIdentity:
    subject_id: str
    claims: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller, built per request from the local user document.
    """

    local_id: str
    external_id: str
    role: UserRole | None
    is_active: bool

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], *, external_id: str) -> Principal:
        raw_role = doc.get("role")
        try:
            role = UserRole(raw_role) if raw_role else None
        except ValueError:
            role = None
        return cls(
            local_id=str(doc["id"]),
            external_id=external_id,
            role=role,
            is_active=bool(doc.get("is_active", False)),
        )

    def owns(self, user_id: object) -> bool:
        return self.local_id == str(user_id)
