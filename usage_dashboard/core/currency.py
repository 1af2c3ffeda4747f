"""
Currency conversion and cost formatting.

Costs are recorded in USD and converted to the target currency at
display time using a per-date rate table with a scalar fallback rate.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple, Union


class Currency(Enum):
    """Currency selected for display."""
    USD = "usd"
    TARGET = "target"


class DigitGrouping(Enum):
    """Thousands-separator convention for the target currency."""
    WESTERN = "western"  # 1,234,567
    INDIAN = "indian"    # 12,34,567


@dataclass(frozen=True)
class TargetCurrency:
    """The non-USD currency costs can be converted to."""
    code: str = "INR"
    symbol: str = "₹"
    grouping: DigitGrouping = DigitGrouping.INDIAN


DEFAULT_TARGET = TargetCurrency()

RateTable = Dict[str, float]


def is_valid_rate(value: float) -> bool:
    return math.isfinite(value) and value > 0


def rate_for(
    date: Optional[str],
    rate_table: Mapping[str, float],
    fallback_rate: float,
) -> float:
    """Rate for ``date`` from the table, else the fallback rate."""
    if date is not None and date in rate_table:
        return rate_table[date]
    return fallback_rate


def convert_cost(
    amount_usd: float,
    currency: Currency,
    date: Optional[str] = None,
    rate_table: Optional[Mapping[str, float]] = None,
    fallback_rate: float = 1.0,
) -> float:
    """Convert a USD amount to the selected currency without formatting."""
    if currency == Currency.USD:
        return amount_usd
    return amount_usd * rate_for(date, rate_table or {}, fallback_rate)


def format_cost(
    amount_usd: float,
    currency: Currency,
    date: Optional[str] = None,
    rate_table: Optional[Mapping[str, float]] = None,
    fallback_rate: float = 1.0,
    target: TargetCurrency = DEFAULT_TARGET,
) -> str:
    """Format a USD amount for display.

    USD renders with a ``$`` prefix and exactly two decimals. The target
    currency renders the converted amount rounded to a whole number,
    grouped by the target's convention and prefixed with its symbol.

    Args:
        amount_usd: Cost in USD
        currency: Display currency
        date: ISO date used to look up a per-date rate
        rate_table: Per-date USD to target rates
        fallback_rate: Rate used when ``date`` has no table entry
        target: Target currency symbol and grouping

    Returns:
        Display string, e.g. ``$10.00`` or ``₹830``
    """
    if currency == Currency.USD:
        sign = "-" if amount_usd < 0 else ""
        return f"{sign}${abs(amount_usd):,.2f}"

    converted = convert_cost(amount_usd, currency, date, rate_table, fallback_rate)
    return format_target_amount(converted, target)


def format_target_amount(amount: float, target: TargetCurrency = DEFAULT_TARGET) -> str:
    """Format an already converted amount, rounded half up to a whole number."""
    rounded = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if rounded < 0 else ""
    return f"{sign}{target.symbol}{group_digits(abs(rounded), target.grouping)}"


def group_digits(value: int, grouping: DigitGrouping) -> str:
    """Insert thousands separators into a non-negative integer."""
    if grouping == DigitGrouping.WESTERN:
        return f"{value:,}"

    # Indian: last three digits, then pairs
    digits = str(value)
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_rate(rate: float, target: TargetCurrency = DEFAULT_TARGET) -> str:
    """Render the current rate, e.g. ``1 USD = ₹83.00``."""
    return f"1 USD = {target.symbol}{rate:.2f}"


def parse_rate(raw: Union[str, float, None]) -> Optional[float]:
    """Parse a manual rate entry; None unless it is a positive finite number."""
    if raw is None:
        return None
    try:
        value = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        return None
    return value if is_valid_rate(value) else None


def apply_manual_rate(
    rate_table: Mapping[str, float],
    current_rate: float,
    raw: Union[str, float, None],
) -> Tuple[RateTable, float]:
    """Apply a manual override of the fallback rate.

    A valid rate replaces the current rate and every entry of the table,
    so all historical costs use the same manual rate until the next
    refresh. Invalid input leaves both unchanged.

    Returns:
        New (rate_table, current_rate) pair
    """
    new_rate = parse_rate(raw)
    if new_rate is None:
        return dict(rate_table), current_rate
    return {date: new_rate for date in rate_table}, new_rate
