"""
Sorting of usage rows for the activity table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

from .aggregation import UsageRow


class SortField(Enum):
    """Columns the activity table can be ordered by."""
    DATE = "date"
    TOTAL_COST = "totalCost"
    INPUT_TOKENS = "inputTokens"
    OUTPUT_TOKENS = "outputTokens"
    CACHE_CREATION_TOKENS = "cacheCreationTokens"
    CACHE_READ_TOKENS = "cacheReadTokens"
    TOTAL_TOKENS = "totalTokens"

    @property
    def attribute(self) -> str:
        return _ATTRIBUTES[self]


_ATTRIBUTES = {
    SortField.DATE: "date",
    SortField.TOTAL_COST: "total_cost",
    SortField.INPUT_TOKENS: "input_tokens",
    SortField.OUTPUT_TOKENS: "output_tokens",
    SortField.CACHE_CREATION_TOKENS: "cache_creation_tokens",
    SortField.CACHE_READ_TOKENS: "cache_read_tokens",
    SortField.TOTAL_TOKENS: "total_tokens",
}


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortSpec:
    """Field and direction for ordering rows."""
    field: SortField = SortField.DATE
    direction: SortDirection = SortDirection.DESC

    def toggle(self, field: SortField) -> "SortSpec":
        """Spec after a click on ``field``.

        The same field flips direction; a different field starts at DESC.
        """
        if field == self.field:
            flipped = (
                SortDirection.ASC
                if self.direction == SortDirection.DESC
                else SortDirection.DESC
            )
            return SortSpec(field=field, direction=flipped)
        return SortSpec(field=field, direction=SortDirection.DESC)


def sort_records(records: Sequence[UsageRow], spec: SortSpec) -> List[UsageRow]:
    """Return a new list of rows ordered by ``spec``.

    Dates compare as calendar dates, every other field numerically.
    Rows equal on the sort field are ordered by date in the same
    direction, so output is deterministic.
    """
    attribute = spec.field.attribute
    reverse = spec.direction == SortDirection.DESC

    if spec.field == SortField.DATE:
        return sorted(records, key=lambda r: r.date, reverse=reverse)
    return sorted(
        records,
        key=lambda r: (getattr(r, attribute), r.date),
        reverse=reverse,
    )
