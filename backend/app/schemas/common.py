# backend/app/schemas/common.py
from __future__ import annotations

import math
from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python; accepts either on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class BaseQuery(CamelModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: str = "createdAt"
    sort_direction: Literal["ASC", "DESC"] = "DESC"
    search: Optional[str] = None
    include_deleted: bool = False

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PaginationMeta(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PaginationMeta":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class Paginated(CamelModel, Generic[T]):
    data: list[T]
    meta: PaginationMeta


class MessageResponse(CamelModel):
    message: str
