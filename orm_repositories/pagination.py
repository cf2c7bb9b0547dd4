"""
Length-aware paginator returned by paginate().
"""

import math
from typing import Any, Iterator, Optional, Sequence


class LengthAwarePaginator:
    """
    One page of results plus what is needed to navigate the rest.

    Attributes:
        items: Records on this page
        total: Number of records across all pages
        per_page: Page size
        current_page: 1-based page number
    """

    def __init__(self, items: Sequence[Any], total: int, per_page: int, current_page: int = 1):
        if per_page < 1:
            raise ValueError("per_page must be greater than zero")
        if current_page < 1:
            raise ValueError("current_page must be 1 or greater")
        self.items = list(items)
        self.total = total
        self.per_page = per_page
        self.current_page = current_page

    @property
    def last_page(self) -> int:
        """Number of the last page; 1 when there are no records."""
        return max(math.ceil(self.total / self.per_page), 1)

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page

    @property
    def on_first_page(self) -> bool:
        return self.current_page <= 1

    @property
    def first_item(self) -> Optional[int]:
        """1-based position of the first item on this page, None when empty."""
        if not self.items:
            return None
        return (self.current_page - 1) * self.per_page + 1

    @property
    def last_item(self) -> Optional[int]:
        if not self.items:
            return None
        return self.first_item + len(self.items) - 1

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __getitem__(self, index: int) -> Any:
        return self.items[index]

    def __repr__(self) -> str:
        return (
            f"LengthAwarePaginator(page={self.current_page}/{self.last_page}, "
            f"per_page={self.per_page}, total={self.total})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serializable representation.

        Items are converted with their to_dict() method when they have one.
        """
        return {
            "data": [
                item.to_dict() if hasattr(item, "to_dict") else item
                for item in self.items
            ],
            "total": self.total,
            "per_page": self.per_page,
            "current_page": self.current_page,
            "last_page": self.last_page,
            "from": self.first_item,
            "to": self.last_item,
        }
