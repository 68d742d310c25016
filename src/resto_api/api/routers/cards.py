"""
resto_api.api.routers.cards

Menu card endpoints: read a card and manage the dishes listed on it.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from resto_api.api.deps import db_session
from resto_api.api.envelope import ApiResponse, ok
from resto_api.auth.deps import authenticate
from resto_api.auth.guards import RoleRequirements, RolesGuard
from resto_api.auth.roles import MANAGEMENT_ROLES
from resto_api.db.models import DishCategory
from resto_api.services.card_service import CardService

_roles = RolesGuard(
    RoleRequirements(handlers={"add_dish": MANAGEMENT_ROLES, "remove_dish": MANAGEMENT_ROLES})
)

router = APIRouter(
    prefix="/cards",
    tags=["cards"],
    dependencies=[Depends(authenticate), Depends(_roles)],
)


class DishOut(BaseModel):
    id: uuid.UUID
    name: str
    ingredients: list[dict[str, Any]] = Field(default_factory=list)
    price: float
    description: str
    category: DishCategory
    time_cook: int | None = None
    is_available: bool


class CardOut(BaseModel):
    id: uuid.UUID
    name: str
    dishes: list[DishOut] = Field(default_factory=list)
    is_active: bool
    date_of_creation: str
    date_last_modified: str | None = None


def _service(session: AsyncSession = Depends(db_session)) -> CardService:
    return CardService(session=session)


@router.get("/{card_id}", response_model=ApiResponse[CardOut])
async def get_card(card_id: str, svc: CardService = Depends(_service)):
    return ok(await svc.get_card(card_id))


@router.put("/{card_id}/dishes/{dish_id}", response_model=ApiResponse[CardOut])
async def add_dish(card_id: str, dish_id: str, svc: CardService = Depends(_service)):
    return ok(await svc.add_dish(card_id, dish_id))


@router.delete("/{card_id}/dishes/{dish_id}", response_model=ApiResponse[CardOut])
async def remove_dish(card_id: str, dish_id: str, svc: CardService = Depends(_service)):
    return ok(await svc.remove_dish(card_id, dish_id))
