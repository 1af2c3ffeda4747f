"""
Unit tests for view parameter transitions.
"""

import pytest

from usage_dashboard.core.aggregation import Period
from usage_dashboard.core.currency import Currency
from usage_dashboard.core.pagination import PageSpec
from usage_dashboard.core.sorting import SortDirection, SortField, SortSpec
from usage_dashboard.core.view_params import ViewParameters


def _on_page(number: int, size: int = 10) -> ViewParameters:
    return ViewParameters(page=PageSpec(page_number=number, page_size=size))


class TestPageResets:
    """Test which changes return to the first page."""

    def test_defaults(self):
        """Verify the initial view."""
        params = ViewParameters()
        assert params.period == Period.DAILY
        assert params.sort == SortSpec(SortField.DATE, SortDirection.DESC)
        assert params.min_cost is None
        assert params.page == PageSpec(1, 10)
        assert params.currency == Currency.USD

    def test_period_change_resets_page(self):
        """Verify switching period returns to page 1."""
        params = _on_page(4, 50).with_period(Period.WEEKLY)
        assert params.period == Period.WEEKLY
        assert params.page == PageSpec(1, 50)

    def test_sort_toggle_resets_page(self):
        """Verify sorting returns to page 1."""
        params = _on_page(3).toggle_sort(SortField.TOTAL_COST)
        assert params.sort == SortSpec(SortField.TOTAL_COST, SortDirection.DESC)
        assert params.page.page_number == 1

    def test_filter_change_resets_page(self):
        """Verify changing the filter returns to page 1."""
        params = _on_page(3).with_min_cost("2.5")
        assert params.min_cost == 2.5
        assert params.page.page_number == 1

    def test_unparseable_filter_clears_threshold(self):
        """Verify junk input removes the filter."""
        params = ViewParameters(min_cost=5.0).with_min_cost("abc")
        assert params.min_cost is None

    def test_page_size_change_resets_page(self):
        """Verify changing page size returns to page 1."""
        params = _on_page(3).with_page_size(100)
        assert params.page == PageSpec(1, 100)

    def test_invalid_page_size_rejected(self):
        """Verify only offered page sizes are accepted."""
        with pytest.raises(ValueError):
            ViewParameters().with_page_size(20)

    def test_currency_change_keeps_page(self):
        """Verify switching currency keeps the current page."""
        params = _on_page(3).with_currency(Currency.TARGET)
        assert params.currency == Currency.TARGET
        assert params.page.page_number == 3

    def test_transitions_do_not_mutate(self):
        """Verify transitions return new values."""
        original = _on_page(2)
        original.with_period(Period.MONTHLY)
        assert original.page.page_number == 2
        assert original.period == Period.DAILY


class TestNavigation:
    """Test page navigation controls."""

    def test_go_to_page_clamps(self):
        """Verify page numbers stay within 1..total."""
        assert _on_page(1).go_to_page(9, 4).page.page_number == 4
        assert _on_page(3).go_to_page(0, 4).page.page_number == 1

    def test_go_to_page_with_no_pages(self):
        """Verify a zero page count still lands on page 1."""
        assert _on_page(1).go_to_page(5, 0).page.page_number == 1

    def test_previous_stops_at_first(self):
        """Verify previous on page 1 stays on page 1."""
        assert _on_page(1).previous_page().page.page_number == 1
        assert _on_page(3).previous_page().page.page_number == 2

    def test_next_stops_at_last(self):
        """Verify next on the last page stays there."""
        assert _on_page(2).next_page(3).page.page_number == 3
        assert _on_page(3).next_page(3).page.page_number == 3

    def test_first_and_last(self):
        """Verify jumps to either end keep the page size."""
        assert _on_page(3, 50).first_page().page == PageSpec(1, 50)
        assert _on_page(1, 50).last_page(7).page == PageSpec(7, 50)
