"""
resto_api.services.card_service

Menu cards and the dishes listed on them.

Responsibilities:
- Read a card with its dish ids expanded into dish documents.
- Add/remove a dish on a card.

Note: `add_dish` reads the card, checks for the dish, then pushes. The three
steps are not atomic, so two concurrent adds of the same dish can both pass the
check, and a remove can interleave with an add.
"""

from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_404_NOT_FOUND

from resto_api.db.errors import coerce_id
from resto_api.db.repositories.base import Document
from resto_api.db.repositories.cards import CardRepo
from resto_api.db.repositories.dishes import DishRepo


class CardService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._cards = CardRepo(session)
        self._dishes = DishRepo(session)

    async def get_card(self, card_id: str) -> Document:
        card = await self._cards.find_one_by_id(coerce_id(card_id))
        if card is None:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=f"Card {card_id} not found")
        return await self._expand(card)

    async def add_dish(self, card_id: str, dish_id: str) -> Document:
        cid = coerce_id(card_id)
        did = coerce_id(dish_id, field="dish_id")
        card = await self.get_card(str(cid))
        if await self._dishes.find_one_by_id(did) is None:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=f"Dish {dish_id} not found")
        if any(d["id"] == did for d in card["dishes"]):
            raise HTTPException(
                status_code=HTTP_400_BAD_REQUEST, detail=f"Dish {dish_id} already on card"
            )
        if not await self._cards.push_array({"id": cid}, {"dish_ids": did}):
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Failed to add dish")
        await self._session.commit()
        return await self.get_card(str(cid))

    async def remove_dish(self, card_id: str, dish_id: str) -> Document:
        cid = coerce_id(card_id)
        did = coerce_id(dish_id, field="dish_id")
        await self._cards.pull_array({"id": cid}, {"dish_ids": did})
        await self._session.commit()
        return await self.get_card(str(cid))

    async def _expand(self, card: Document) -> Document:
        # Explicit join: dish ids -> dish documents, in card order; unknown ids are dropped.
        ids = list(card.get("dish_ids") or [])
        found = await self._dishes.find_many_by({"id": ids}) if ids else []
        by_id = {str(d["id"]): d for d in found}
        expanded = {k: v for k, v in card.items() if k != "dish_ids"}
        expanded["dishes"] = [by_id[i] for i in ids if i in by_id]
        return expanded
