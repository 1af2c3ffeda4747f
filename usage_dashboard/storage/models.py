"""
Data models for usage records.

Defines the immutable daily records supplied by the usage source and
the rollups derived from them.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

TOKEN_FIELDS = (
    "input_tokens",
    "output_tokens",
    "cache_creation_tokens",
    "cache_read_tokens",
)

# snake_case attribute -> camelCase key emitted by ccusage
_JSON_KEYS = {
    "input_tokens": "inputTokens",
    "output_tokens": "outputTokens",
    "cache_creation_tokens": "cacheCreationTokens",
    "cache_read_tokens": "cacheReadTokens",
    "total_tokens": "totalTokens",
    "total_cost": "totalCost",
}


class UsageDataError(Exception):
    """Raised when usage data cannot be fetched or parsed."""


def _validate_amounts(instance: Any, token_fields: Tuple[str, ...], cost_field: str) -> None:
    """Reject negative token counts and negative or non-finite costs."""
    for name in token_fields:
        if getattr(instance, name) < 0:
            raise ValueError(f"{name} cannot be negative")
    cost = getattr(instance, cost_field)
    if not math.isfinite(cost):
        raise ValueError(f"{cost_field} must be a finite number")
    if cost < 0:
        raise ValueError(f"{cost_field} cannot be negative")


@dataclass(frozen=True)
class ModelBreakdown:
    """Cost and token attribution for one model on one day."""
    model_name: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    cost: float = 0.0

    def __post_init__(self):
        _validate_amounts(self, TOKEN_FIELDS, "cost")

    @property
    def total_tokens(self) -> int:
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )


@dataclass(frozen=True)
class DailyUsageRecord:
    """Immutable usage record for a single calendar date.

    ``total_tokens`` is taken from the producer as-is; it is expected to
    equal the sum of the four token counts.
    """
    date: date
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int
    cache_read_tokens: int
    total_tokens: int
    total_cost: float
    models_used: Tuple[str, ...] = ()
    model_breakdowns: Tuple[ModelBreakdown, ...] = ()

    def __post_init__(self):
        """Validate counts are non-negative and cost is finite and non-negative."""
        _validate_amounts(self, TOKEN_FIELDS + ("total_tokens",), "total_cost")

    @property
    def date_key(self) -> str:
        """ISO date string, used as the exchange-rate table key."""
        return self.date.isoformat()

    @property
    def component_tokens(self) -> int:
        return sum(getattr(self, name) for name in TOKEN_FIELDS)


@dataclass(frozen=True)
class AggregatedRecord:
    """Weekly or monthly rollup of daily records.

    ``date`` is the bucket anchor: the Monday of the week or the first
    day of the month. ``count`` is the number of days folded in.
    """
    date: date
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    count: int = 0

    @property
    def date_key(self) -> str:
        return self.date.isoformat()


@dataclass(frozen=True)
class UsageTotals:
    """Totals block reported by the usage source."""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0

    def __post_init__(self):
        _validate_amounts(self, TOKEN_FIELDS + ("total_tokens",), "total_cost")


@dataclass(frozen=True)
class UsageReport:
    """Daily records plus the source's authoritative totals."""
    daily: Tuple[DailyUsageRecord, ...]
    totals: UsageTotals = field(default_factory=UsageTotals)

    @property
    def latest_date(self) -> Optional[date]:
        if not self.daily:
            return None
        return max(record.date for record in self.daily)


def parse_usage_report(payload: Dict[str, Any]) -> UsageReport:
    """Build a UsageReport from the ``ccusage daily --json`` payload.

    Args:
        payload: Decoded JSON object with ``daily`` and ``totals`` keys

    Returns:
        Parsed UsageReport

    Raises:
        UsageDataError: If the payload is malformed
    """
    if not isinstance(payload, dict):
        raise UsageDataError("Usage payload must be a JSON object")

    daily_data = payload.get("daily")
    if not isinstance(daily_data, list):
        raise UsageDataError("Usage payload missing 'daily' list")

    records: List[DailyUsageRecord] = []
    seen = set()
    for i, item in enumerate(daily_data):
        try:
            record = _parse_daily_record(item)
        except (KeyError, TypeError, ValueError) as e:
            raise UsageDataError(f"Invalid daily record at index {i}: {e}") from e
        if record.date in seen:
            raise UsageDataError(f"Duplicate daily record for {record.date_key}")
        seen.add(record.date)
        records.append(record)

    mismatched = find_token_mismatches(records)
    if mismatched:
        logger.warning(
            "totalTokens differs from the sum of token counts on %d day(s): %s",
            len(mismatched),
            ", ".join(mismatched),
        )
    cost_mismatched = find_cost_mismatches(records)
    if cost_mismatched:
        logger.warning(
            "Per-model costs differ from totalCost on %d day(s): %s",
            len(cost_mismatched),
            ", ".join(cost_mismatched),
        )

    totals_data = payload.get("totals")
    if totals_data is None:
        totals = totals_from_records(records)
    else:
        try:
            totals = UsageTotals(**_numeric_fields(totals_data))
        except (KeyError, TypeError, ValueError) as e:
            raise UsageDataError(f"Invalid totals block: {e}") from e

    return UsageReport(daily=tuple(records), totals=totals)


def totals_from_records(records: List[DailyUsageRecord]) -> UsageTotals:
    """Sum daily records into a totals block."""
    return UsageTotals(
        input_tokens=sum(r.input_tokens for r in records),
        output_tokens=sum(r.output_tokens for r in records),
        cache_creation_tokens=sum(r.cache_creation_tokens for r in records),
        cache_read_tokens=sum(r.cache_read_tokens for r in records),
        total_tokens=sum(r.total_tokens for r in records),
        total_cost=sum(r.total_cost for r in records),
    )


def find_token_mismatches(records: List[DailyUsageRecord]) -> List[str]:
    """Return the dates whose totalTokens disagrees with its components."""
    return [r.date_key for r in records if r.total_tokens != r.component_tokens]


def find_cost_mismatches(records: List[DailyUsageRecord]) -> List[str]:
    """Return the dates whose per-model costs do not add up to totalCost."""
    return [
        r.date_key
        for r in records
        if r.model_breakdowns
        and not math.isclose(
            sum(b.cost for b in r.model_breakdowns),
            r.total_cost,
            rel_tol=1e-6,
            abs_tol=0.005,
        )
    ]


def _as_count(value: Any, key: str) -> int:
    """Token count from JSON; fractional or non-numeric values are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"'{key}' must be a number")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"'{key}' must be a whole number, got {value}")
    return int(value)


def _as_cost(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"'{key}' must be a number")
    return float(value)


def _as_list(value: Any, key: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"'{key}' must be a list")
    return value


def _numeric_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for name, key in _JSON_KEYS.items():
        if name == "total_cost":
            values[name] = _as_cost(data[key], key)
        else:
            values[name] = _as_count(data[key], key)
    return values


def _parse_breakdown(item: Any) -> ModelBreakdown:
    if not isinstance(item, dict):
        raise TypeError("'modelBreakdowns' entries must be objects")
    return ModelBreakdown(
        model_name=str(item["modelName"]),
        input_tokens=_as_count(item.get("inputTokens", 0), "inputTokens"),
        output_tokens=_as_count(item.get("outputTokens", 0), "outputTokens"),
        cache_creation_tokens=_as_count(item.get("cacheCreationTokens", 0), "cacheCreationTokens"),
        cache_read_tokens=_as_count(item.get("cacheReadTokens", 0), "cacheReadTokens"),
        cost=_as_cost(item.get("cost", 0.0), "cost"),
    )


def _parse_daily_record(data: Dict[str, Any]) -> DailyUsageRecord:
    if not isinstance(data, dict):
        raise TypeError("record must be an object")

    breakdowns = tuple(
        _parse_breakdown(item)
        for item in _as_list(data.get("modelBreakdowns"), "modelBreakdowns")
    )
    models = tuple(str(name) for name in _as_list(data.get("modelsUsed"), "modelsUsed"))

    return DailyUsageRecord(
        date=date.fromisoformat(data["date"]),
        models_used=models,
        model_breakdowns=breakdowns,
        **_numeric_fields(data),
    )
