"""
Chart series for the cost and token visualizations.
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from .aggregation import Period, UsageRow, chronological
from .currency import Currency, convert_cost
from .metrics import TOKENS_PER_MILLION


@dataclass(frozen=True)
class ChartPoint:
    """One x-axis position of the cost and token charts.

    Token series are in millions; ``cost`` is in the selected currency.
    """
    label: str
    date: str
    cost: float
    tokens_m: float
    input_tokens_m: float
    output_tokens_m: float
    cache_tokens_m: float


def chart_label(row: UsageRow, period: Period) -> str:
    """Axis label: ``Mar 4`` for days and weeks, ``Mar 2024`` for months."""
    if period == Period.MONTHLY:
        return f"{row.date:%b %Y}"
    return f"{row.date:%b} {row.date.day}"


def build_chart_series(
    rows: Sequence[UsageRow],
    period: Period,
    currency: Currency = Currency.USD,
    rate_table: Optional[Mapping[str, float]] = None,
    fallback_rate: float = 1.0,
) -> List[ChartPoint]:
    """Map rows to chart points in ascending date order."""
    return [
        ChartPoint(
            label=chart_label(row, period),
            date=row.date_key,
            cost=convert_cost(row.total_cost, currency, row.date_key, rate_table, fallback_rate),
            tokens_m=row.total_tokens / TOKENS_PER_MILLION,
            input_tokens_m=row.input_tokens / TOKENS_PER_MILLION,
            output_tokens_m=row.output_tokens / TOKENS_PER_MILLION,
            cache_tokens_m=(row.cache_creation_tokens + row.cache_read_tokens) / TOKENS_PER_MILLION,
        )
        for row in chronological(rows)
    ]
