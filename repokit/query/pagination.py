"""
Page object returned by ``paginate``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


@dataclass
class Page:
    """
    One page of results plus length-aware metadata.

    Attributes:
        items: Entities on this page
        total: Number of rows matching the query across all pages
        per_page: Page size
        current_page: 1-based page number

    Example:
        page = repo.paginate(15)
        for user in page:
            ...
        if page.has_more_pages:
            next_page = repo.paginate(15, page=page.current_page + 1)
    """

    items: List[Any] = field(default_factory=list)
    total: int = 0
    per_page: int = 15
    current_page: int = 1

    @property
    def last_page(self) -> int:
        """Number of the last page (at least 1)."""
        return max((self.total + self.per_page - 1) // self.per_page, 1)

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page

    @property
    def from_item(self) -> Optional[int]:
        """1-based position of the first item on this page, None when empty."""
        if not self.items:
            return None
        return (self.current_page - 1) * self.per_page + 1

    @property
    def to_item(self) -> Optional[int]:
        if not self.items:
            return None
        return self.from_item + len(self.items) - 1

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def to_dict(self) -> Dict[str, Any]:
        """Metadata plus items, serialized with ``to_dict()`` when available."""
        return {
            "data": [item.to_dict() if hasattr(item, "to_dict") else item for item in self.items],
            "total": self.total,
            "per_page": self.per_page,
            "current_page": self.current_page,
            "last_page": self.last_page,
            "from": self.from_item,
            "to": self.to_item,
        }
