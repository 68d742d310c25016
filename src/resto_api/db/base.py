"""
resto_api.db.base

SQLAlchemy declarative base and the columns every document carries.
"""

from __future__ import annotations

import uuid
from typing import ClassVar

from sqlalchemy import String, Uuid as SAUuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from resto_api.utils.dates import full_date


class Base(DeclarativeBase):
    pass


class DocumentMixin:
    # Fields listed here are left out of documents unless a read asks for them.
    __hidden__: ClassVar[frozenset[str]] = frozenset()

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Bumped on every field update; plays the role of a document version key.
    revision: Mapped[int] = mapped_column(nullable=False, default=0)
    date_of_creation: Mapped[str] = mapped_column(String(19), nullable=False, default=full_date)
    date_last_modified: Mapped[str | None] = mapped_column(String(19), nullable=True)


# --- Module Notes -----------------------------------------------------------
# All models inherit from `Base` so Alembic and metadata discovery work.
