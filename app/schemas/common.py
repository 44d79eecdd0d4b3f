"""
Common schemas used across the application.
"""
from math import ceil
from typing import Generic, TypeVar, Optional
from pydantic import BaseModel

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated list response."""
    page: int
    perPage: int
    totalItems: int
    totalPages: int
    items: list[T]

    @classmethod
    def build(cls, items: list, total: int, page: int, limit: int) -> "PaginatedResponse":
        return cls(
            page=page,
            perPage=limit,
            totalItems=total,
            totalPages=ceil(total / limit) if total > 0 else 0,
            items=items,
        )


class MessageResponse(BaseModel):
    """Simple message response."""
    message: str


class HealthResponse(BaseModel):
    code: int = 200
    message: str = "API is healthy."


class Periodo(BaseModel):
    """Inclusive date range echoed back by statistics endpoints."""
    inicio: Optional[str] = None
    fin: Optional[str] = None
