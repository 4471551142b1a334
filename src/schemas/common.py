"""Shared response envelopes."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of a listing plus the numbers needed to paginate."""

    data: list[T] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 50
    total_pages: int = 0


def total_pages(total: int, per_page: int) -> int:
    """Ceil division; zero results means zero pages."""
    return (total + per_page - 1) // per_page if per_page > 0 else 0


class ApiResponse(BaseModel):
    """Envelope used by every JSON endpoint: success flag, message, payload."""

    success: bool = True
    message: str
    data: Any = None
