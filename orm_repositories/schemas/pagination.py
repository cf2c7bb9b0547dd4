from typing import Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from orm_repositories.pagination import LengthAwarePaginator

ItemT = TypeVar("ItemT", bound=BaseModel)


class PageMeta(BaseModel):
    """
    Navigation data of a paginated result.

    Attributes:
        total: Number of records across all pages
        per_page: Page size
        current_page: 1-based page number
        last_page: Number of the last page
        has_more_pages: Whether a page follows this one
        first_item: 1-based position of the first item (None when empty)
        last_item: 1-based position of the last item (None when empty)
    """
    total: int = Field(..., ge=0)
    per_page: int = Field(..., ge=1)
    current_page: int = Field(..., ge=1)
    last_page: int = Field(..., ge=1)
    has_more_pages: bool
    first_item: Optional[int] = None
    last_item: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class Page(BaseModel, Generic[ItemT]):
    """A page of records validated against an item schema."""
    items: List[ItemT]
    meta: PageMeta

    @classmethod
    def from_paginator(cls, paginator: LengthAwarePaginator, item_schema: Type[ItemT]) -> "Page[ItemT]":
        """
        Build a page from a paginator of ORM records.

        item_schema must allow from_attributes so records validate directly.
        """
        return cls(
            items=[item_schema.model_validate(item, from_attributes=True) for item in paginator.items],
            meta=PageMeta.model_validate(paginator),
        )
