"""
Shared response shapes.
"""
from typing import Generic, List, Type, TypeVar

from pydantic import BaseModel, Field

from app.repositories.pagination import Page

T = TypeVar("T")


class PageResponse(BaseModel, Generic[T]):
    """One page of results; ``page`` is zero-based."""
    items: List[T]
    total: int = Field(..., description="Total number of matching rows")
    page: int
    size: int
    pages: int


class MessageResponse(BaseModel):
    message: str


def to_page_response(page: Page, schema: Type[BaseModel]) -> dict:
    return {
        "items": [schema.model_validate(item) for item in page.items],
        "total": page.total,
        "page": page.page,
        "size": page.size,
        "pages": page.pages,
    }
