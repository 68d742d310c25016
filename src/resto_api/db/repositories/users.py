"""
resto_api.db.repositories.users

Repository for `User` documents.
"""

from __future__ import annotations

import uuid

from resto_api.db.models import User
from resto_api.db.repositories.base import BaseRepository, Condition, Document


class UserRepo(BaseRepository[User]):
    model = User

    async def find_one_with_external_id(self, condition: Condition) -> Document | None:
        # `external_id` is hidden by default; lifecycle calls need it.
        return await self.find_one_by(condition, include=("external_id",))

    async def find_one_by_id_with_external_id(self, user_id: uuid.UUID | str) -> Document | None:
        return await self.find_one_with_external_id({"id": user_id})
