"""
Deterministic sample usage for exploring the dashboard without ccusage.
"""

from datetime import date, timedelta
from typing import List, Optional

from usage_dashboard.storage.models import (
    DailyUsageRecord,
    ModelBreakdown,
    UsageReport,
    totals_from_records,
)

# (input, output, cache write, cache read, cost) per unit of activity
_MODEL_PROFILES = {
    "claude-sonnet-4-20250514": (12_000, 9_000, 150_000, 1_900_000, 1.10),
    "claude-opus-4-20250514": (3_000, 2_500, 40_000, 450_000, 1.85),
}

# repeating weekly activity multipliers, Monday first; 0 = idle day
_WEEK_SHAPE = (3, 4, 2, 5, 3, 0, 1)


def build_demo_report(days: int = 42, end: Optional[date] = None) -> UsageReport:
    """Build a sample report covering ``days`` days ending on ``end``.

    Idle days are omitted, as the real source does not emit them.
    """
    end = end or date(2025, 6, 30)
    start = end - timedelta(days=days - 1)

    records: List[DailyUsageRecord] = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        units = _WEEK_SHAPE[day.weekday()] * (1 + (offset % 3) / 4)
        if units == 0:
            continue
        records.append(_demo_day(day, units, use_opus=offset % 4 == 0))

    return UsageReport(daily=tuple(records), totals=totals_from_records(records))


def _demo_day(day: date, units: float, use_opus: bool) -> DailyUsageRecord:
    breakdowns = []
    for name, (inp, out, write, read, cost) in _MODEL_PROFILES.items():
        if "opus" in name and not use_opus:
            continue
        breakdowns.append(ModelBreakdown(
            model_name=name,
            input_tokens=int(inp * units),
            output_tokens=int(out * units),
            cache_creation_tokens=int(write * units),
            cache_read_tokens=int(read * units),
            cost=round(cost * units, 4),
        ))

    input_tokens = sum(b.input_tokens for b in breakdowns)
    output_tokens = sum(b.output_tokens for b in breakdowns)
    cache_creation = sum(b.cache_creation_tokens for b in breakdowns)
    cache_read = sum(b.cache_read_tokens for b in breakdowns)
    return DailyUsageRecord(
        date=day,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cache_creation_tokens=cache_creation,
        cache_read_tokens=cache_read,
        total_tokens=input_tokens + output_tokens + cache_creation + cache_read,
        total_cost=sum(b.cost for b in breakdowns),
        models_used=tuple(b.model_name for b in breakdowns),
        model_breakdowns=tuple(breakdowns),
    )
