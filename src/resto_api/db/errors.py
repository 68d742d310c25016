"""
resto_api.db.errors

Typed errors raised by the persistence layer.

Responsibilities:
- Describe schema validation failures per field.
- Describe malformed identifiers (cast failures).
- Describe unique-key conflicts in a driver-independent shape.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError


@dataclass(frozen=True, slots=True)
class FieldError:
    field: str
    message: str
    value: Any = None


class DocumentValidationError(Exception):
    def __init__(self, model: str, errors: list[FieldError]) -> None:
        self.model = model
        self.errors = errors
        fields = ", ".join(e.field for e in errors)
        super().__init__(f"{model} validation failed: {fields}")


class CastError(Exception):
    def __init__(self, *, field: str, value: Any, kind: str) -> None:
        self.field = field
        self.value = value
        self.kind = kind
        super().__init__(f'Cast to {kind} failed for value "{value}" at path "{field}"')


class DuplicateKeyError(Exception):
    # Same code a document store reports for unique index violations.
    code = 11000

    def __init__(self, *, key_pattern: dict[str, int], key_value: dict[str, Any]) -> None:
        self.key_pattern = key_pattern
        self.key_value = key_value
        super().__init__(f"E11000 duplicate key error: {key_value}")

    @classmethod
    def from_integrity_error(
        cls, exc: IntegrityError, payload: Mapping[str, Any]
    ) -> DuplicateKeyError | None:
        fields, values = _parse_unique_violation(str(exc.orig))
        if not fields:
            return None
        key_value = {f: values.get(f, payload.get(f)) for f in fields}
        return cls(key_pattern={f: 1 for f in fields}, key_value=key_value)


# sqlite: "UNIQUE constraint failed: users.email"
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: ([\w.]+(?:, [\w.]+)*)")
# postgres: 'Key (email)=(a@b.c) already exists.'
_PG_UNIQUE = re.compile(r"Key \((?P<cols>[^)]+)\)=\((?P<vals>[^)]*)\) already exists")


def _parse_unique_violation(message: str) -> tuple[list[str], dict[str, Any]]:
    m = _SQLITE_UNIQUE.search(message)
    if m:
        return [c.strip().split(".")[-1] for c in m.group(1).split(",")], {}
    m = _PG_UNIQUE.search(message)
    if m:
        cols = [c.strip() for c in m.group("cols").split(",")]
        vals = [v.strip() for v in m.group("vals").split(",")]
        return cols, dict(zip(cols, vals)) if len(cols) == len(vals) else {}
    return [], {}


def coerce_id(value: Any, field: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as e:
        raise CastError(field=field, value=value, kind="UUID") from e
