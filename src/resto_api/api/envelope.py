"""
resto_api.api.envelope

Uniform success envelope: `{"error": "", "data": ...}`.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    error: str = ""
    data: T | None = None


def ok(data: T) -> ApiResponse[T]:
    return ApiResponse(data=data)
