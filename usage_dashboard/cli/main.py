"""
CLI interface for the usage dashboard.

Renders the dashboard view model in the terminal.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from usage_dashboard.config.loader import DashboardConfig, load_dashboard_config
from usage_dashboard.core.aggregation import Period
from usage_dashboard.core.currency import Currency, format_cost, format_target_amount
from usage_dashboard.core.dashboard import (
    DashboardState,
    DashboardView,
    build_dashboard_view,
    override_rate,
    refresh_dashboard,
)
from usage_dashboard.core.metrics import GrowthResult, GrowthStatus, PlanStatus
from usage_dashboard.core.sorting import SortDirection, SortField, SortSpec
from usage_dashboard.core.view_params import ViewParameters
from usage_dashboard.demo.sample_usage import build_demo_report
from usage_dashboard.storage.exchange_rates import ExchangeRateClient
from usage_dashboard.storage.models import UsageDataError
from usage_dashboard.storage.repository import StaticRepository, get_repository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

BAR_WIDTH = 30

_PLAN_STATUS_LABELS = {
    PlanStatus.WITHIN_FIRST_TIER: "Within Budget",
    PlanStatus.WITHIN_SECOND_TIER: "Moderate Usage",
    PlanStatus.OVER: "Over Budget",
}


@dataclass
class CliOptions:
    """Options shared by every command."""
    config_path: Optional[str] = None
    input_path: Optional[str] = None
    demo: bool = False
    currency: Currency = Currency.USD
    rate: Optional[str] = None


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to YAML configuration file"
    ),
    input_path: Optional[str] = typer.Option(
        None, "--input", "-i", help="Read ccusage JSON output from a file"
    ),
    demo: bool = typer.Option(False, "--demo", help="Use built-in sample data"),
    currency: Currency = typer.Option(
        Currency.USD, "--currency", case_sensitive=False, help="Display currency"
    ),
    rate: Optional[str] = typer.Option(
        None, "--rate", "-r", help="Manual USD exchange rate for the target currency"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Usage dashboard: AI assistant token usage and spend."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliOptions(
        config_path=config,
        input_path=input_path,
        demo=demo,
        currency=currency,
        rate=rate,
    )


def _load(ctx: typer.Context):
    """Load config and refresh the dashboard state, exiting on failure."""
    options: CliOptions = ctx.obj or CliOptions()
    try:
        config = load_dashboard_config(options.config_path)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if options.demo:
        repository = StaticRepository(build_demo_report())
    else:
        repository = get_repository(
            input_path=options.input_path,
            command=config.sources.ccusage_command,
            timeout=config.sources.usage_timeout,
        )

    rate_source = None
    if options.currency == Currency.TARGET and options.rate is None:
        rate_source = ExchangeRateClient(
            url=config.sources.exchange_rate_url,
            currency_code=config.currency.target.code,
            timeout=config.sources.exchange_rate_timeout,
        )

    try:
        state = refresh_dashboard(repository, rate_source, config)
    except UsageDataError as e:
        console.print("\n[bold red]Failed to load usage data[/]")
        console.print(f"{str(e)}")
        console.print("\nCheck that ccusage is installed and has recorded usage, then retry.\n")
        sys.exit(EXIT_CODE_FAIL)

    if options.rate is not None:
        state = override_rate(state, options.rate)
    return options, config, state


def _view(
    options: CliOptions,
    config: DashboardConfig,
    state: DashboardState,
    params: Optional[ViewParameters] = None,
) -> DashboardView:
    params = (params or ViewParameters()).with_currency(options.currency)
    return build_dashboard_view(state, params, config)


def _money(amount: float, options: CliOptions, config: DashboardConfig, state: DashboardState) -> str:
    return format_cost(
        amount,
        options.currency,
        rate_table=state.rate_table,
        fallback_rate=state.current_rate,
        target=config.currency.target,
    )


def _format_growth(growth: GrowthResult, label: str) -> str:
    """Format growth with sign and comparison label."""
    if growth.status == GrowthStatus.INSUFFICIENT_DATA:
        return "Insufficient data"
    if growth.status == GrowthStatus.NEW_USAGE:
        return "New Usage"
    return f"{'+' if growth.percent >= 0 else ''}{growth.percent:,.1f}% {label}"


@app.command()
def summary(
    ctx: typer.Context,
    period: Period = typer.Option(
        Period.MONTHLY, "--period", "-p", case_sensitive=False, help="Growth comparison period"
    ),
):
    """Show headline metrics, plan comparison and insights."""
    options, config, state = _load(ctx)
    view = _view(options, config, state, ViewParameters(period=period))
    metrics = view.summary

    def money(amount: float) -> str:
        return _money(amount, options, config, state)

    console.print("\n[bold]Usage Summary[/bold]")
    console.print("-" * 40)
    if options.currency == Currency.TARGET:
        console.print(f"[dim]{view.rate_label}[/]")

    stats = Table(show_header=True, header_style="bold")
    stats.add_column("Metric")
    stats.add_column("Value", justify="right")
    stats.add_column("Detail")
    stats.add_row(
        "Total Cost",
        money(metrics.total_cost),
        _format_growth(metrics.growth, metrics.comparison_label),
    )
    stats.add_row("Total Tokens", f"{metrics.total_tokens / 1_000_000:.1f}M", "Total usage")
    stats.add_row(
        "Cache Efficiency",
        f"{metrics.cache_hit_rate:.1f}%",
        metrics.cache_rating.value,
    )
    stats.add_row(
        "Active Days",
        str(metrics.activity.active_days),
        f"of {metrics.activity.total_days} days active",
    )
    console.print(stats)

    console.print("\n[bold]Key Metrics[/bold]")
    console.print(f"Avg Daily Cost: {money(metrics.average_daily_cost)}")
    console.print(f"Projected Monthly: {money(metrics.projected_monthly_cost)}")
    if metrics.cost_per_million_tokens is None:
        console.print("Cost per Million Tokens: N/A")
    else:
        console.print(f"Cost per Million Tokens: {money(metrics.cost_per_million_tokens)}")
    console.print(f"Models Used: {len(metrics.models_used)}")
    if metrics.primary_model:
        console.print(f"Primary: {metrics.primary_model}")
    if metrics.peak_day is not None:
        console.print(
            f"Peak Usage Day: {metrics.peak_day.date_key} "
            f"{money(metrics.peak_day.total_cost)} ({metrics.peak_level.value})"
        )
    if metrics.least_day is None:
        console.print("Least Usage Day: No data")
    else:
        console.print(
            f"Least Usage Day: {metrics.least_day.date_key} "
            f"{money(metrics.least_day.total_cost)} ({metrics.least_level.value})"
        )
    console.print(f"Usage Pattern: {metrics.activity.pattern.value}")

    if metrics.recommendations:
        console.print("\n[bold]Recommendations[/bold]")
        for tip in metrics.recommendations:
            console.print(f"- {tip}")
    console.print()
    sys.exit(EXIT_CODE_PASS)


@app.command()
def plans(ctx: typer.Context):
    """Compare total spend with the fixed-price plans."""
    options, config, state = _load(ctx)
    metrics = _view(options, config, state).summary

    def money(amount: float) -> str:
        return _money(amount, options, config, state)

    console.print("\n[bold]Plan Comparison[/bold]")
    console.print("-" * 40)
    console.print(f"Current Usage: {money(metrics.total_cost)}")
    console.print(f"Current Status: {_PLAN_STATUS_LABELS[metrics.plan_status]}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Plan")
    table.add_column("Usage", justify="right")
    table.add_column("Saving / Over", justify="right")
    for comparison in metrics.plan_comparisons:
        if comparison.is_over:
            delta = f"[red]{money(comparison.overage)} over[/]"
        else:
            delta = f"[green]{money(comparison.saving)} saving[/]"
        table.add_row(
            comparison.plan.name,
            f"{comparison.utilization_percent:.1f}%",
            delta,
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def activity(
    ctx: typer.Context,
    period: Period = typer.Option(Period.DAILY, "--period", "-p", case_sensitive=False),
    sort: SortField = typer.Option(SortField.DATE, "--sort", "-s", help="Column to sort by"),
    order: SortDirection = typer.Option(SortDirection.DESC, "--order", "-o", case_sensitive=False),
    min_cost: Optional[str] = typer.Option(
        None, "--min-cost", "-m", help="Hide rows cheaper than this (USD)"
    ),
    page: int = typer.Option(1, "--page", min=1),
    page_size: Optional[int] = typer.Option(None, "--page-size", help="10, 50 or 100"),
):
    """Show the activity table for a period."""
    options, config, state = _load(ctx)
    try:
        params = (
            ViewParameters(period=period, sort=SortSpec(field=sort, direction=order))
            .with_min_cost(min_cost)
            .with_page_size(page_size or config.table.page_size)
        )
    except ValueError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    view = _view(options, config, state, params.go_to_page(page, page))
    if page > view.table.total_pages:
        view = _view(options, config, state, view.params.last_page(view.table.total_pages))

    table_page = view.table
    table = Table(show_header=True, header_style="bold")
    table.add_column("Date")
    table.add_column("Cost", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Input", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Cache Eff.", justify="right")
    if period == Period.DAILY:
        table.add_column("Models")
    else:
        table.add_column("Days", justify="right")

    for row in table_page.items:
        last = row.models if period == Period.DAILY else str(row.days)
        table.add_row(
            row.date,
            row.cost,
            row.tokens,
            row.input_tokens,
            row.output_tokens,
            row.cache_efficiency,
            last,
        )

    console.print(f"\n[bold]{period.value.capitalize()} Activity Details[/bold]")
    if not table_page.items:
        console.print("\n[dim]No data available[/]")
    else:
        console.print(table)
        console.print(
            f"Showing {table_page.start_index}-{table_page.end_index} "
            f"of {table_page.total_items} entries "
            f"(page {table_page.page_number} of {table_page.total_pages})"
        )
    sys.exit(EXIT_CODE_PASS)


@app.command()
def chart(
    ctx: typer.Context,
    period: Period = typer.Option(Period.DAILY, "--period", "-p", case_sensitive=False),
):
    """Show cost and token trends as a bar chart."""
    options, config, state = _load(ctx)
    view = _view(options, config, state, ViewParameters(period=period))

    console.print(f"\n[bold]{period.value.capitalize()} Cost Trend[/bold]")
    if not view.chart:
        console.print("\n[dim]No data available[/]")
        sys.exit(EXIT_CODE_PASS)

    peak = max(point.cost for point in view.chart)
    table = Table(show_header=True, header_style="bold")
    table.add_column("Date")
    table.add_column("Cost", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("")
    for point in view.chart:
        width = int(round(point.cost / peak * BAR_WIDTH)) if peak > 0 else 0
        if options.currency == Currency.TARGET:
            cost = format_target_amount(point.cost, config.currency.target)
        else:
            cost = format_cost(point.cost, Currency.USD)
        table.add_row(point.label, cost, f"{point.tokens_m:.1f}M", "█" * width)
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def models(ctx: typer.Context):
    """Show the per-model cost breakdown."""
    options, config, state = _load(ctx)
    metrics = _view(options, config, state).summary

    console.print("\n[bold]Model Cost Breakdown[/bold]")
    if not metrics.model_breakdown:
        console.print("\n[dim]No per-model data available[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Model")
    table.add_column("Input", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Cache Write", justify="right")
    table.add_column("Cache Read", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Share", justify="right")
    for item in metrics.model_breakdown:
        table.add_row(
            item.model_name,
            f"{item.input_tokens:,}",
            f"{item.output_tokens:,}",
            f"{item.cache_creation_tokens:,}",
            f"{item.cache_read_tokens:,}",
            _money(item.cost, options, config, state),
            f"{item.share_percent:.1f}%",
        )
    console.print(table)
    total = sum(item.cost for item in metrics.model_breakdown)
    console.print(f"Total Model Cost: {_money(total, options, config, state)}")
    sys.exit(EXIT_CODE_PASS)


if __name__ == "__main__":
    app()
