"""
Derived usage analytics.

Growth, cache efficiency, plan comparison, peak detection and usage
patterns. Every function here is total: degenerate inputs (no records,
zero denominators) produce a defined fallback instead of an exception.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .aggregation import Period, UsageRow, aggregate, chronological
from usage_dashboard.storage.models import DailyUsageRecord, ModelBreakdown, UsageReport

TOKENS_PER_MILLION = 1_000_000
DAYS_PER_MONTH = 30


class GrowthStatus(Enum):
    """Outcome of a period-over-period comparison."""
    INSUFFICIENT_DATA = "insufficient_data"
    NEW_USAGE = "new_usage"
    CHANGE = "change"


COMPARISON_LABELS = {
    Period.DAILY: "from yesterday",
    Period.WEEKLY: "from last week",
    Period.MONTHLY: "from last month",
}


@dataclass(frozen=True)
class GrowthResult:
    """Cost growth of the most recent bucket over the one before it."""
    status: GrowthStatus
    percent: Optional[float] = None
    recent_cost: float = 0.0
    previous_cost: float = 0.0


def period_growth(buckets: Sequence[UsageRow]) -> GrowthResult:
    """Compare the latest bucket's cost with the previous bucket's.

    Buckets are ordered by date first, so daily input need not be sorted.
    """
    if len(buckets) < 2:
        return GrowthResult(status=GrowthStatus.INSUFFICIENT_DATA)

    ordered = chronological(buckets)
    recent = ordered[-1].total_cost
    previous = ordered[-2].total_cost

    if previous == 0:
        if recent > 0:
            return GrowthResult(
                status=GrowthStatus.NEW_USAGE,
                recent_cost=recent,
                previous_cost=previous,
            )
        return GrowthResult(
            status=GrowthStatus.CHANGE,
            percent=0.0,
            recent_cost=recent,
            previous_cost=previous,
        )

    return GrowthResult(
        status=GrowthStatus.CHANGE,
        percent=(recent - previous) / previous * 100,
        recent_cost=recent,
        previous_cost=previous,
    )


class CacheRating(Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    LOW = "Low"


def cache_hit_rate(cache_read_tokens: int, input_tokens: int) -> float:
    """Share of prompt tokens served from cache, in percent (0-100)."""
    denominator = cache_read_tokens + input_tokens
    if denominator == 0:
        return 0.0
    return cache_read_tokens / denominator * 100


def rate_cache_efficiency(hit_rate: float) -> CacheRating:
    if hit_rate >= 80:
        return CacheRating.EXCELLENT
    if hit_rate >= 60:
        return CacheRating.GOOD
    if hit_rate >= 40:
        return CacheRating.AVERAGE
    return CacheRating.LOW


def cost_per_million_tokens(total_cost: float, total_tokens: int) -> Optional[float]:
    """Cost per 1M tokens, or None when no tokens were used."""
    if total_tokens == 0:
        return None
    return total_cost / (total_tokens / TOKENS_PER_MILLION)


def average_daily_cost(total_cost: float, day_count: int) -> float:
    if day_count == 0:
        return 0.0
    return total_cost / day_count


def projected_monthly_cost(total_cost: float, day_count: int) -> float:
    """Flat 30-day extrapolation of the observed average daily cost."""
    return average_daily_cost(total_cost, day_count) * DAYS_PER_MONTH


@dataclass(frozen=True)
class Plan:
    """Fixed-price subscription tier used as a comparison baseline."""
    name: str
    price: float

    def __post_init__(self):
        """Validate the plan has a positive price."""
        if self.price <= 0:
            raise ValueError("plan price must be > 0")


DEFAULT_PLANS: Tuple[Plan, Plan] = (
    Plan(name="Max $100", price=100.0),
    Plan(name="Max $200", price=200.0),
)


class PlanStatus(Enum):
    """Which tier the current spend fits in."""
    WITHIN_FIRST_TIER = "within first tier"
    WITHIN_SECOND_TIER = "within second tier"
    OVER = "over"


@dataclass(frozen=True)
class PlanComparison:
    """Spend measured against one plan's ceiling."""
    plan: Plan
    utilization_percent: float
    saving: float
    overage: float

    @property
    def is_over(self) -> bool:
        return self.overage > 0


def compare_plan(total_cost: float, plan: Plan) -> PlanComparison:
    """Utilization, saving and overage of ``total_cost`` against ``plan``."""
    overage = total_cost - plan.price if total_cost > plan.price else 0.0
    return PlanComparison(
        plan=plan,
        utilization_percent=min(total_cost / plan.price * 100, 100.0),
        saving=max(0.0, plan.price - total_cost),
        overage=overage,
    )


def compare_plans(
    total_cost: float,
    plans: Sequence[Plan] = DEFAULT_PLANS,
) -> List[PlanComparison]:
    return [compare_plan(total_cost, plan) for plan in plans]


def plan_status(
    total_cost: float,
    plans: Tuple[Plan, Plan] = DEFAULT_PLANS,
) -> PlanStatus:
    first, second = plans
    if total_cost <= first.price:
        return PlanStatus.WITHIN_FIRST_TIER
    if total_cost <= second.price:
        return PlanStatus.WITHIN_SECOND_TIER
    return PlanStatus.OVER


class PeakLevel(Enum):
    HIGH_PEAK = "High Peak"
    MODERATE_PEAK = "Moderate Peak"
    LOW = "Low"
    VERY_LOW = "Very Low"


def peak_usage_day(records: Sequence[DailyUsageRecord]) -> Optional[DailyUsageRecord]:
    """Day with the highest cost; earliest date wins a tie."""
    if not records:
        return None
    return max(chronological(records), key=lambda r: r.total_cost)


def least_usage_day(records: Sequence[DailyUsageRecord]) -> Optional[DailyUsageRecord]:
    """Active day with the lowest cost, or None when no day has any cost."""
    active = [r for r in chronological(records) if r.total_cost > 0]
    if not active:
        return None
    return min(active, key=lambda r: r.total_cost)


def classify_peak(cost: float, average: float) -> PeakLevel:
    if average > 0 and cost >= 2 * average:
        return PeakLevel.HIGH_PEAK
    return PeakLevel.MODERATE_PEAK


def classify_least(cost: float, average: float) -> PeakLevel:
    if average > 0 and cost <= 0.25 * average:
        return PeakLevel.VERY_LOW
    return PeakLevel.LOW


class UsagePattern(Enum):
    REGULAR = "Regular"
    MODERATE = "Moderate"
    SPORADIC = "Sporadic"


@dataclass(frozen=True)
class ActivitySummary:
    """Active days over the calendar span of the record set."""
    active_days: int
    total_days: int
    active_ratio: float
    pattern: UsagePattern


def classify_usage_pattern(active_ratio: float) -> UsagePattern:
    if active_ratio > 0.8:
        return UsagePattern.REGULAR
    if active_ratio > 0.5:
        return UsagePattern.MODERATE
    return UsagePattern.SPORADIC


def usage_pattern(records: Sequence[DailyUsageRecord]) -> ActivitySummary:
    """Classify how regularly usage occurs.

    ``total_days`` is the inclusive span from the first to the last
    recorded date; a day is active when it has any cost.
    """
    if not records:
        return ActivitySummary(0, 0, 0.0, UsagePattern.SPORADIC)

    dates = [r.date for r in records]
    total_days = (max(dates) - min(dates)).days + 1
    active_days = sum(1 for r in records if r.total_cost > 0)
    ratio = active_days / total_days
    return ActivitySummary(
        active_days=active_days,
        total_days=total_days,
        active_ratio=ratio,
        pattern=classify_usage_pattern(ratio),
    )


@dataclass(frozen=True)
class ModelCostSummary:
    """Tokens and cost attributed to one model across all days."""
    model_name: str
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int
    cache_read_tokens: int
    cost: float
    share_percent: float

    @property
    def total_tokens(self) -> int:
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )


@dataclass
class _ModelTotals:
    """Running sums for one model."""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    cost: float = 0.0

    def add(self, item: ModelBreakdown) -> None:
        self.input_tokens += item.input_tokens
        self.output_tokens += item.output_tokens
        self.cache_creation_tokens += item.cache_creation_tokens
        self.cache_read_tokens += item.cache_read_tokens
        self.cost += item.cost


def model_cost_breakdown(records: Sequence[DailyUsageRecord]) -> List[ModelCostSummary]:
    """Sum per-model breakdowns across days, highest cost first."""
    sums: Dict[str, _ModelTotals] = {}
    for record in records:
        for item in record.model_breakdowns:
            sums.setdefault(item.model_name, _ModelTotals()).add(item)

    grand_total = sum(totals.cost for totals in sums.values())
    summaries = [
        ModelCostSummary(
            model_name=name,
            input_tokens=totals.input_tokens,
            output_tokens=totals.output_tokens,
            cache_creation_tokens=totals.cache_creation_tokens,
            cache_read_tokens=totals.cache_read_tokens,
            cost=totals.cost,
            share_percent=totals.cost / grand_total * 100 if grand_total else 0.0,
        )
        for name, totals in sums.items()
    ]
    return sorted(summaries, key=lambda s: (-s.cost, s.model_name))


def models_used(records: Sequence[DailyUsageRecord]) -> List[str]:
    names = set()
    for record in records:
        names.update(record.models_used)
        names.update(item.model_name for item in record.model_breakdowns)
    return sorted(names)


def build_recommendations(
    total_cost: float,
    plans: Sequence[Plan],
    hit_rate: float,
    growth: GrowthResult,
) -> List[str]:
    """Plain-language hints derived from the summary figures."""
    tips = []
    if plans and total_cost <= plans[0].price * 0.5:
        tips.append("Excellent! You're well within budget.")
    else:
        for plan in plans:
            if plan.price * 0.8 <= total_cost <= plan.price:
                tips.append(f"Approaching {plan.name} plan limit.")
                break

    if hit_rate >= 80:
        tips.append("Excellent cache utilization!")
    elif hit_rate < 50:
        tips.append("Increase cache usage to reduce costs")

    if growth.status == GrowthStatus.CHANGE and growth.percent is not None and growth.percent > 50:
        tips.append("Usage growing rapidly - monitor budget")
    return tips


@dataclass(frozen=True)
class SummaryMetrics:
    """Every figure shown on the summary cards."""
    period: Period
    total_cost: float
    total_tokens: int
    day_count: int
    average_daily_cost: float
    projected_monthly_cost: float
    cost_per_million_tokens: Optional[float]
    cache_hit_rate: float
    cache_rating: CacheRating
    growth: GrowthResult
    comparison_label: str
    plan_status: PlanStatus
    plan_comparisons: List[PlanComparison]
    peak_day: Optional[DailyUsageRecord]
    peak_level: Optional[PeakLevel]
    least_day: Optional[DailyUsageRecord]
    least_level: Optional[PeakLevel]
    activity: ActivitySummary
    model_breakdown: List[ModelCostSummary] = field(default_factory=list)
    models_used: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def primary_model(self) -> Optional[str]:
        if not self.model_breakdown:
            return None
        return self.model_breakdown[0].model_name


def build_summary(
    report: UsageReport,
    period: Period,
    plans: Tuple[Plan, Plan] = DEFAULT_PLANS,
) -> SummaryMetrics:
    """Compute all summary metrics for the selected period.

    Overall figures come from ``report.totals``; growth compares the last
    two buckets of the selected period.
    """
    totals = report.totals
    daily = list(report.daily)
    day_count = len(daily)

    growth = period_growth(aggregate(daily, period))
    hit_rate = cache_hit_rate(totals.cache_read_tokens, totals.input_tokens)
    average = average_daily_cost(totals.total_cost, day_count)

    peak = peak_usage_day(daily)
    least = least_usage_day(daily)

    return SummaryMetrics(
        period=period,
        total_cost=totals.total_cost,
        total_tokens=totals.total_tokens,
        day_count=day_count,
        average_daily_cost=average,
        projected_monthly_cost=projected_monthly_cost(totals.total_cost, day_count),
        cost_per_million_tokens=cost_per_million_tokens(totals.total_cost, totals.total_tokens),
        cache_hit_rate=hit_rate,
        cache_rating=rate_cache_efficiency(hit_rate),
        growth=growth,
        comparison_label=COMPARISON_LABELS[period],
        plan_status=plan_status(totals.total_cost, plans),
        plan_comparisons=compare_plans(totals.total_cost, plans),
        peak_day=peak,
        peak_level=classify_peak(peak.total_cost, average) if peak else None,
        least_day=least,
        least_level=classify_least(least.total_cost, average) if least else None,
        activity=usage_pattern(daily),
        model_breakdown=model_cost_breakdown(daily),
        models_used=models_used(daily),
        recommendations=build_recommendations(totals.total_cost, plans, hit_rate, growth),
    )
