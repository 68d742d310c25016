from __future__ import annotations

from resto_api.db.models import Card
from resto_api.db.repositories.base import BaseRepository


class CardRepo(BaseRepository[Card]):
    model = Card
