"""
Period aggregation of daily usage.

Rolls daily records up into weekly or monthly buckets.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Sequence, Union

from usage_dashboard.storage.models import AggregatedRecord, DailyUsageRecord


class Period(Enum):
    """Aggregation granularity selected for the view."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


UsageRow = Union[DailyUsageRecord, AggregatedRecord]


@dataclass
class _BucketTotals:
    """Running sums for one bucket."""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    count: int = 0

    def add(self, record: DailyUsageRecord) -> None:
        self.input_tokens += record.input_tokens
        self.output_tokens += record.output_tokens
        self.cache_creation_tokens += record.cache_creation_tokens
        self.cache_read_tokens += record.cache_read_tokens
        self.total_tokens += record.total_tokens
        self.total_cost += record.total_cost
        self.count += 1


def week_start(day: date) -> date:
    """Monday on or before ``day``."""
    # weekday(): Monday == 0, Sunday == 6
    return day - timedelta(days=day.weekday())


def month_start(day: date) -> date:
    """First calendar day of the month containing ``day``."""
    return day.replace(day=1)


def bucket_key(day: date, period: Period) -> date:
    """Bucket anchor date for ``day`` under ``period``."""
    if period == Period.WEEKLY:
        return week_start(day)
    if period == Period.MONTHLY:
        return month_start(day)
    return day


def aggregate(
    records: Sequence[DailyUsageRecord],
    period: Period,
) -> List[UsageRow]:
    """Group daily records into period buckets.

    Daily returns the input records unchanged and in input order. Weekly
    and monthly sum every numeric field per bucket and return buckets in
    ascending date order.

    Args:
        records: Daily usage records, in any order
        period: Aggregation period

    Returns:
        New list of records for the period
    """
    if period == Period.DAILY:
        return list(records)

    buckets: Dict[date, _BucketTotals] = {}
    for record in records:
        key = bucket_key(record.date, period)
        buckets.setdefault(key, _BucketTotals()).add(record)

    return [
        AggregatedRecord(
            date=key,
            input_tokens=totals.input_tokens,
            output_tokens=totals.output_tokens,
            cache_creation_tokens=totals.cache_creation_tokens,
            cache_read_tokens=totals.cache_read_tokens,
            total_tokens=totals.total_tokens,
            total_cost=totals.total_cost,
            count=totals.count,
        )
        for key, totals in sorted(buckets.items())
    ]


def chronological(records: Sequence[UsageRow]) -> List[UsageRow]:
    """Return ``records`` ordered by ascending date."""
    return sorted(records, key=lambda r: r.date)
