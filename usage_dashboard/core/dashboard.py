"""
Dashboard state, refresh and view assembly.

Refresh fetches usage first, then makes a single exchange-rate lookup
for the most recent date. A failed rate lookup falls back to the last
known rate (or the configured default) and is only logged; a failed
usage fetch propagates as UsageDataError.

The view is rebuilt from the full record set on every call:
aggregate -> sort -> filter -> paginate for the table, plus chart
series and summary metrics.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Union

from .aggregation import Period, UsageRow, aggregate
from .charts import ChartPoint, build_chart_series
from .currency import apply_manual_rate, format_cost, format_rate
from .filtering import filter_records
from .metrics import SummaryMetrics, build_summary, cache_hit_rate
from .pagination import Page, paginate
from .sorting import sort_records
from .view_params import ViewParameters
from usage_dashboard.config.loader import DashboardConfig
from usage_dashboard.storage.exchange_rates import ExchangeRate, ExchangeRateError
from usage_dashboard.storage.models import DailyUsageRecord, UsageReport
from usage_dashboard.storage.repository import UsageRepository

logger = logging.getLogger(__name__)


class RateSource(Protocol):
    def get_rate(self, date: Optional[str] = None) -> ExchangeRate:
        ...


@dataclass(frozen=True)
class DashboardState:
    """Fetched data plus the exchange-rate state derived from it."""
    report: UsageReport
    rate_table: Dict[str, float] = field(default_factory=dict)
    current_rate: float = 1.0
    rate_is_live: bool = False
    refreshed_at: Optional[datetime] = None


def refresh_dashboard(
    repository: UsageRepository,
    rate_source: Optional[RateSource],
    config: DashboardConfig,
    previous: Optional[DashboardState] = None,
) -> DashboardState:
    """Fetch fresh data and build a new state.

    Args:
        repository: Usage data source
        rate_source: Exchange-rate source, or None to skip the lookup
        config: Dashboard configuration
        previous: State from the last refresh, for the last-known rate

    Returns:
        A new DashboardState replacing ``previous`` entirely

    Raises:
        UsageDataError: If usage data cannot be loaded
    """
    report = repository.fetch()
    logger.info("Loaded %d daily usage records", len(report.daily))

    fallback = previous.current_rate if previous else config.currency.default_rate
    rate = fallback
    live = False
    latest = report.latest_date
    if rate_source is not None:
        try:
            rate = rate_source.get_rate(latest.isoformat() if latest else None).rate
            live = True
        except ExchangeRateError as e:
            logger.warning("Using fallback exchange rate %.2f: %s", fallback, e)

    return DashboardState(
        report=report,
        rate_table={record.date_key: rate for record in report.daily},
        current_rate=rate,
        rate_is_live=live,
        refreshed_at=datetime.now(),
    )


def override_rate(state: DashboardState, raw: Union[str, float, None]) -> DashboardState:
    """Apply a manual rate edit; invalid input returns ``state`` unchanged."""
    rate_table, current_rate = apply_manual_rate(state.rate_table, state.current_rate, raw)
    if current_rate == state.current_rate and rate_table == state.rate_table:
        return state
    return replace(state, rate_table=rate_table, current_rate=current_rate, rate_is_live=False)


@dataclass(frozen=True)
class TableRow:
    """Activity table row, already formatted for display."""
    date: str
    cost: str
    tokens: str
    input_tokens: str
    output_tokens: str
    models: str
    cache_efficiency: str
    days: int


@dataclass(frozen=True)
class DashboardView:
    """Everything the presentation layer renders."""
    params: ViewParameters
    chart: List[ChartPoint]
    table: Page[TableRow]
    summary: SummaryMetrics
    rate_label: str


def row_date_label(row: UsageRow, period: Period) -> str:
    if period == Period.MONTHLY:
        return f"{row.date:%b %Y}"
    label = f"{row.date:%b} {row.date.day}, {row.date.year}"
    if period == Period.WEEKLY:
        return f"Week of {label}"
    return label


def build_table_row(
    row: UsageRow,
    params: ViewParameters,
    state: DashboardState,
    config: DashboardConfig,
) -> TableRow:
    models = ", ".join(row.models_used) if isinstance(row, DailyUsageRecord) else ""
    return TableRow(
        date=row_date_label(row, params.period),
        cost=format_cost(
            row.total_cost,
            params.currency,
            row.date_key,
            state.rate_table,
            state.current_rate,
            config.currency.target,
        ),
        tokens=f"{row.total_tokens / 1_000_000:.1f}M",
        input_tokens=f"{row.input_tokens / 1000:,.1f}K",
        output_tokens=f"{row.output_tokens / 1000:,.1f}K",
        models=models,
        cache_efficiency=f"{cache_hit_rate(row.cache_read_tokens, row.input_tokens):.1f}%",
        days=getattr(row, "count", 1),
    )


def build_table_page(
    rows: List[UsageRow],
    params: ViewParameters,
    state: DashboardState,
    config: DashboardConfig,
) -> Page[TableRow]:
    """Sort, filter and paginate ``rows``, then format the visible page."""
    ordered = sort_records(rows, params.sort)
    kept = filter_records(ordered, params.min_cost)
    page = paginate(kept, params.page)
    return replace(
        page,
        items=[build_table_row(row, params, state, config) for row in page.items],
    )


def build_dashboard_view(
    state: DashboardState,
    params: ViewParameters,
    config: DashboardConfig,
) -> DashboardView:
    """Recompute the whole view from ``state`` for ``params``."""
    rows = aggregate(state.report.daily, params.period)
    return DashboardView(
        params=params,
        chart=build_chart_series(
            rows,
            params.period,
            params.currency,
            state.rate_table,
            state.current_rate,
        ),
        table=build_table_page(rows, params, state, config),
        summary=build_summary(state.report, params.period, config.plans),
        rate_label=format_rate(state.current_rate, config.currency.target),
    )
