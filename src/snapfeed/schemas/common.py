"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of search results."""

    items: list[T]
    total: int = Field(..., description="Number of matches across all pages.")
    page: int = Field(..., ge=1, description="1-based page number.")
    limit: int = Field(..., ge=1, le=100, description="Page size.")
    pages: int = Field(..., description="Total number of pages.")


class SuccessResponse(BaseModel):
    """Acknowledgement returned by mutations without a richer payload."""

    success: bool = True
    message: str | None = None
