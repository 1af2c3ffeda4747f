"""
Minimum-cost filtering of usage rows.
"""

import math
from typing import List, Optional, Sequence, Union

from .aggregation import UsageRow


def parse_min_cost(raw: Union[str, float, int, None]) -> Optional[float]:
    """Interpret a filter input as a minimum cost.

    Blank, non-numeric and non-finite input means "no filter" and
    returns None rather than raising.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def filter_records(
    records: Sequence[UsageRow],
    min_cost: Optional[float],
) -> List[UsageRow]:
    """Keep rows whose total_cost is at least ``min_cost`` (inclusive)."""
    if min_cost is None:
        return list(records)
    return [r for r in records if r.total_cost >= min_cost]
