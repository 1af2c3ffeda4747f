"""
Fixed-size paging of usage rows.
"""

import math
from dataclasses import dataclass
from typing import Generic, List, Sequence, Tuple, TypeVar

T = TypeVar("T")

PAGE_SIZES: Tuple[int, ...] = (10, 50, 100)
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class PageSpec:
    """Requested page number (1-based) and page size."""
    page_number: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        """Validate page number and size."""
        if self.page_number < 1:
            raise ValueError("page_number must be >= 1")
        if self.page_size not in PAGE_SIZES:
            raise ValueError(f"page_size must be one of: {list(PAGE_SIZES)}")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of rows plus the counts needed for navigation."""
    items: List[T]
    total_items: int
    total_pages: int
    page_number: int
    page_size: int

    @property
    def start_index(self) -> int:
        """1-based position of the first item, 0 when the page is empty."""
        if not self.items:
            return 0
        return (self.page_number - 1) * self.page_size + 1

    @property
    def end_index(self) -> int:
        """1-based position of the last item, 0 when the page is empty."""
        if not self.items:
            return 0
        return self.start_index + len(self.items) - 1

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages


def total_pages_for(total_items: int, page_size: int) -> int:
    """Number of pages for ``total_items``; at least 1."""
    return max(1, math.ceil(total_items / page_size))


def paginate(records: Sequence[T], page: PageSpec) -> Page[T]:
    """Slice ``records`` into the requested page.

    A page past the end yields an empty slice rather than an error.
    """
    total_items = len(records)
    start = (page.page_number - 1) * page.page_size
    items = list(records[start:start + page.page_size])

    return Page(
        items=items,
        total_items=total_items,
        total_pages=total_pages_for(total_items, page.page_size),
        page_number=page.page_number,
        page_size=page.page_size,
    )
