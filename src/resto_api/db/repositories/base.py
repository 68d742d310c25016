"""
resto_api.db.repositories.base

Generic repository over one document collection.

Responsibilities:
- Typed CRUD plus array push/pull behind a condition-dict interface.
- Return plain documents (dicts) with hidden fields left out unless requested.
- Collapse read/write failures into None / [] / False, logging the cause.

Contract note:
- Reads and writes never raise: a `None` or `False` result does not tell the
  caller whether the document was missing or the store failed. The log line
  emitted here is the only place the difference survives. `insert` is the
  exception and propagates validation/duplicate errors so callers can map them.
- A failed write rolls back the session, discarding its uncommitted work, so
  later reads on the same session still see the store. Services commit after
  each write they make.
"""

from __future__ import annotations

import enum
import uuid
from collections.abc import Collection, Mapping
from typing import Any, Generic, TypeVar

from sqlalchemy import JSON, Enum, Select, String, inspect as sa_inspect, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from resto_api.db.base import Base
from resto_api.db.errors import (
    DocumentValidationError,
    DuplicateKeyError,
    FieldError,
    coerce_id,
)
from resto_api.observability.logging import get_logger
from resto_api.utils.dates import full_date

ModelT = TypeVar("ModelT", bound=Base)

Condition = Mapping[str, Any]
Document = dict[str, Any]

log = get_logger(__name__)

# Fields managed by the repository itself; never taken from caller payloads on update.
_MANAGED = frozenset({"id", "revision", "date_of_creation", "date_last_modified"})


class BaseRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def collection(self) -> str:
        return self.model.__tablename__

    # -- writes -----------------------------------------------------------------

    async def insert(self, payload: Mapping[str, Any]) -> Document:
        values = self._validate(payload)
        obj = self.model(**values)
        self._session.add(obj)
        try:
            await self._session.flush()
        except IntegrityError as e:
            await self._session.rollback()
            dup = DuplicateKeyError.from_integrity_error(e, values)
            if dup is None:
                raise
            raise dup from e
        return self._to_document(obj)

    async def update_one_by(self, condition: Condition, fields: Mapping[str, Any]) -> bool:
        try:
            obj = await self._first(condition, for_update=True)
            if obj is None:
                return False
            for key, value in self._validate_partial(fields).items():
                setattr(obj, key, value)
            obj.revision = (obj.revision or 0) + 1
            obj.date_last_modified = full_date()
            await self._session.flush()
            return True
        except Exception as e:
            await self._swallowed("update_one_by", e, condition, write=True)
            return False

    async def delete_one_by(self, condition: Condition) -> bool:
        try:
            obj = await self._first(condition, for_update=True)
            if obj is None:
                return False
            await self._session.delete(obj)
            await self._session.flush()
            return True
        except Exception as e:
            await self._swallowed("delete_one_by", e, condition, write=True)
            return False

    async def push_array(self, condition: Condition, fields: Mapping[str, Any]) -> bool:
        try:
            for key in fields:
                self._array_attr(key)
            obj = await self._first(condition, for_update=True)
            if obj is None:
                return False
            for key, value in fields.items():
                current = list(getattr(obj, key) or [])
                current.append(_jsonable(value))
                # Reassign so the JSON column is flagged dirty.
                setattr(obj, key, current)
            obj.date_last_modified = full_date()
            await self._session.flush()
            return True
        except Exception as e:
            await self._swallowed("push_array", e, condition, write=True)
            return False

    async def pull_array(self, condition: Condition, fields: Mapping[str, Any]) -> bool:
        try:
            for key in fields:
                self._array_attr(key)
            obj = await self._first(condition, for_update=True)
            if obj is None:
                return False
            modified = False
            for key, value in fields.items():
                current = list(getattr(obj, key) or [])
                target = _jsonable(value)
                kept = [item for item in current if item != target]
                if len(kept) != len(current):
                    setattr(obj, key, kept)
                    modified = True
            if not modified:
                return False
            obj.date_last_modified = full_date()
            await self._session.flush()
            return True
        except Exception as e:
            await self._swallowed("pull_array", e, condition, write=True)
            return False

    # -- reads ------------------------------------------------------------------

    async def find_one_by(
        self, condition: Condition, *, include: Collection[str] = ()
    ) -> Document | None:
        try:
            stmt = self._select(condition, include).limit(1)
            obj = (await self._session.execute(stmt)).scalars().first()
        except Exception as e:
            await self._swallowed("find_one_by", e, condition)
            return None
        return None if obj is None else self._to_document(obj, include)

    async def find_one_by_id(
        self, id: uuid.UUID | str, *, include: Collection[str] = ()
    ) -> Document | None:
        return await self.find_one_by({"id": id}, include=include)

    async def find_many_by(
        self, condition: Condition, *, include: Collection[str] = ()
    ) -> list[Document]:
        try:
            stmt = self._select(condition, include)
            objs = (await self._session.execute(stmt)).scalars().all()
        except Exception as e:
            await self._swallowed("find_many_by", e, condition)
            return []
        return [self._to_document(o, include) for o in objs]

    async def find_all(self, *, include: Collection[str] = ()) -> list[Document]:
        return await self.find_many_by({}, include=include)

    # -- internals --------------------------------------------------------------

    def _attr(self, name: str):
        if name not in sa_inspect(self.model).column_attrs.keys():
            raise KeyError(f"unknown field {name!r} on {self.collection}")
        return getattr(self.model, name)

    def _array_attr(self, name: str):
        attr = self._attr(name)
        if not isinstance(attr.property.columns[0].type, JSON):
            raise TypeError(f"field {name!r} on {self.collection} is not an array")
        return attr

    def _where(self, condition: Condition) -> list[Any]:
        clauses = []
        for key, value in condition.items():
            attr = self._attr(key)
            many = isinstance(value, (list, tuple, set, frozenset))
            if key == "id":
                value = [coerce_id(v) for v in value] if many else coerce_id(value)
            clauses.append(attr.in_(list(value)) if many else attr == value)
        return clauses

    def _select(self, condition: Condition, include: Collection[str]) -> Select:
        stmt = select(self.model).where(*self._where(condition))
        for name in include:
            stmt = stmt.options(undefer(self._attr(name)))
        # Reads always reflect the store, not stale identity-map state.
        return stmt.execution_options(populate_existing=True)

    async def _first(self, condition: Condition, *, for_update: bool = False) -> ModelT | None:
        stmt = select(self.model).where(*self._where(condition)).limit(1)
        if for_update:
            stmt = stmt.with_for_update()
        return (await self._session.execute(stmt)).scalars().first()

    def _to_document(self, obj: ModelT, include: Collection[str] = ()) -> Document:
        state = sa_inspect(obj)
        hidden = self.model.__hidden__
        doc: Document = {}
        for attr in state.mapper.column_attrs:
            key = attr.key
            if key in state.unloaded or (key in hidden and key not in include):
                continue
            doc[key] = getattr(obj, key)
        return doc

    def _validate(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        errors: list[FieldError] = []
        values: dict[str, Any] = {}
        for attr in sa_inspect(self.model).column_attrs:
            key = attr.key
            column = attr.columns[0]
            value = _clean(payload.get(key), column)
            if value is None or value == "":
                required = not (
                    column.nullable
                    or column.primary_key
                    or column.default is not None
                    or column.server_default is not None
                )
                if required:
                    errors.append(
                        FieldError(field=key, message=f"Path `{key}` is required.", value=value)
                    )
                elif value == "" and column.nullable:
                    values[key] = None
                continue
            try:
                values[key] = _coerce_enum(value, column)
            except ValueError:
                errors.append(
                    FieldError(
                        field=key,
                        message=f"`{value}` is not a valid enum value for path `{key}`.",
                        value=value,
                    )
                )
        if errors:
            raise DocumentValidationError(self.model.__name__, errors)
        return values

    def _validate_partial(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        errors: list[FieldError] = []
        values: dict[str, Any] = {}
        for key, raw in fields.items():
            if key in _MANAGED:
                continue
            column = self._attr(key).property.columns[0]
            value = _clean(raw, column)
            if value is None and not column.nullable:
                errors.append(FieldError(field=key, message=f"Path `{key}` is required.", value=raw))
                continue
            try:
                values[key] = _coerce_enum(value, column) if value is not None else None
            except ValueError:
                errors.append(
                    FieldError(
                        field=key,
                        message=f"`{value}` is not a valid enum value for path `{key}`.",
                        value=value,
                    )
                )
        if errors:
            raise DocumentValidationError(self.model.__name__, errors)
        return values

    async def _swallowed(
        self, op: str, exc: Exception, condition: Condition, *, write: bool = False
    ) -> None:
        log.warning(
            "repository_operation_failed",
            collection=self.collection,
            op=op,
            condition={k: str(v) for k, v in condition.items()},
            error_type=type(exc).__name__,
            error=str(exc),
        )
        # A failed write may have left the session half-changed or needing a rollback;
        # a failed read only poisons it when the driver itself failed.
        if write or isinstance(exc, DBAPIError):
            await self._session.rollback()


def _clean(value: Any, column) -> Any:
    # Strings are trimmed before storage; enums keep their own validation.
    if isinstance(value, str) and isinstance(column.type, String) and not isinstance(
        column.type, Enum
    ):
        return value.strip()
    return value


def _coerce_enum(value: Any, column) -> Any:
    enum_cls = getattr(column.type, "enum_class", None)
    if enum_cls is None or isinstance(value, enum_cls):
        return value
    return enum_cls(value.value if isinstance(value, enum.Enum) else value)


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    return value


# --- Module Notes -----------------------------------------------------------
# Reference expansion (a card's dish ids into dish documents) is deliberately not
# offered here; services perform that join explicitly so this layer stays
# storage-agnostic.
