from __future__ import annotations

from resto_api.db.models import Dish
from resto_api.db.repositories.base import BaseRepository


class DishRepo(BaseRepository[Dish]):
    model = Dish
