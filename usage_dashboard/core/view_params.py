"""
Immutable view parameters.

Every control on the dashboard produces a new ViewParameters value; the
view is then recomputed from the full record set. Changing the period,
filter, sort or page size returns to the first page.
"""

from dataclasses import dataclass, replace
from typing import Optional, Union

from .aggregation import Period
from .currency import Currency
from .filtering import parse_min_cost
from .pagination import PageSpec
from .sorting import SortField, SortSpec


@dataclass(frozen=True)
class ViewParameters:
    """Current period, sort, filter, page and currency selection."""
    period: Period = Period.DAILY
    sort: SortSpec = SortSpec()
    min_cost: Optional[float] = None
    page: PageSpec = PageSpec()
    currency: Currency = Currency.USD

    def _first_page(self) -> PageSpec:
        return PageSpec(page_number=1, page_size=self.page.page_size)

    def with_period(self, period: Period) -> "ViewParameters":
        return replace(self, period=period, page=self._first_page())

    def toggle_sort(self, field: SortField) -> "ViewParameters":
        return replace(self, sort=self.sort.toggle(field), page=self._first_page())

    def with_min_cost(self, raw: Union[str, float, None]) -> "ViewParameters":
        """Set the filter from raw input; unparseable input clears it."""
        return replace(self, min_cost=parse_min_cost(raw), page=self._first_page())

    def with_page_size(self, page_size: int) -> "ViewParameters":
        return replace(self, page=PageSpec(page_number=1, page_size=page_size))

    def with_currency(self, currency: Currency) -> "ViewParameters":
        return replace(self, currency=currency)

    def go_to_page(self, page_number: int, total_pages: int) -> "ViewParameters":
        """Move to ``page_number``, clamped to ``1..total_pages``."""
        clamped = min(max(page_number, 1), max(total_pages, 1))
        return replace(self, page=PageSpec(page_number=clamped, page_size=self.page.page_size))

    def first_page(self) -> "ViewParameters":
        return replace(self, page=self._first_page())

    def previous_page(self) -> "ViewParameters":
        return self.go_to_page(self.page.page_number - 1, self.page.page_number)

    def next_page(self, total_pages: int) -> "ViewParameters":
        return self.go_to_page(self.page.page_number + 1, total_pages)

    def last_page(self, total_pages: int) -> "ViewParameters":
        return self.go_to_page(total_pages, total_pages)
