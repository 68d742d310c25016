"""
resto_api.db.models

Document collections of the restaurant backend.

Responsibilities:
- Define the persisted shape of users, dishes and cards.
- Define the enums stored in those documents (roles, dish categories).
"""

from __future__ import annotations

import enum
from typing import Any

from sqlalchemy import JSON, Enum, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from resto_api.db.base import Base, DocumentMixin


class UserRole(enum.StrEnum):
    # Declared from least to most privileged.
    customer = "customer"
    waiter = "waiter"
    kitchen_staff = "kitchen_staff"
    manager = "manager"
    owner = "owner"
    admin = "admin"


class DishCategory(enum.StrEnum):
    starters = "STARTERS"
    main_dishes = "MAIN_DISHES"
    fish_seafood = "FISH_SEAFOOD"
    vegetarian = "VEGETARIAN"
    pasta_rice = "PASTA_RICE"
    salads = "SALADS"
    soups = "SOUPS"
    side_dishes = "SIDE_DISHES"
    desserts = "DESSERTS"
    beverages = "BEVERAGES"


def _enum(enum_cls: type[enum.Enum]) -> Enum:
    # Store enum values (not member names) so documents read the same in the DB.
    return Enum(enum_cls, values_callable=lambda e: [m.value for m in e], native_enum=False)


class User(DocumentMixin, Base):
    __tablename__ = "users"
    __hidden__ = frozenset({"external_id"})

    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    # Identity provider subject; only loaded when a read explicitly includes it.
    external_id: Mapped[str] = mapped_column(
        String(128), nullable=False, index=True, deferred=True
    )
    firstname: Mapped[str] = mapped_column(String(128), nullable=False)
    lastname: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        _enum(UserRole), nullable=False, default=UserRole.customer, index=True
    )
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)


class Dish(DocumentMixin, Base):
    __tablename__ = "dishes"

    name: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    # [{"ingredient_id": str, "unity": str, "quantity": float}, ...]
    ingredients: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[DishCategory] = mapped_column(_enum(DishCategory), nullable=False)
    time_cook: Mapped[int | None] = mapped_column(nullable=True)
    is_available: Mapped[bool] = mapped_column(nullable=False)


class Card(DocumentMixin, Base):
    __tablename__ = "cards"

    name: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    # Dish ids as strings; expanded into dish documents by the service layer.
    dish_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)


# --- Module Notes -----------------------------------------------------------
# JSON columns stand in for embedded arrays; repositories mutate them with
# push/pull semantics rather than exposing list manipulation to services.
