"""Portfolio subcommands."""

import asyncio
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.table import Table

from patrimony.lib.config import PRICE_REFRESH_INTERVAL, Settings, load_settings
from patrimony.lib.errors import HoldingsFileError
from patrimony.models.holding import CATEGORY_LABELS, Holding
from patrimony.models.summary import AllocationBucket, PortfolioSummary, ValuedHolding
from patrimony.services.currency_converter import CurrencyConverter
from patrimony.services.history import build_history
from patrimony.services.holdings_store import load_holdings
from patrimony.services.portfolio_aggregator import PortfolioAggregator
from patrimony.services.price_resolver import PriceResolver
from patrimony.services.scheduler import IntervalScheduler, PriceRefresher

console = Console()

ALLOCATION_VIEWS = ("asset-class", "instrument", "geography")


def settings_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add --currency and --api-key options to a command."""
    func = click.option(
        "--api-key", default=None, envvar="FINNHUB_API_KEY", help="Finnhub API key (optional)"
    )(func)
    func = click.option(
        "--currency", default=None, help="Reporting currency (EUR, USD, GBP, CHF, JPY)"
    )(func)
    return func


def _load_or_exit(holdings_file: str) -> list[Holding]:
    try:
        return load_holdings(holdings_file)
    except HoldingsFileError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        sys.exit(1)


async def evaluate(
    holdings: Sequence[Holding], settings: Settings
) -> tuple[list[ValuedHolding], PortfolioAggregator]:
    """
    Resolve prices and value every holding.

    Args:
        holdings: Holdings snapshot
        settings: Runtime settings

    Returns:
        (valued holdings, aggregator bound to the converter used)
    """
    resolver = PriceResolver(finnhub_api_key=settings.finnhub_api_key)
    converter = CurrencyConverter(resolver, reporting_currency=settings.reporting_currency)

    async with resolver.api_client:
        await converter.ensure_live_rates()
        results = await resolver.resolve_batch(holdings)

    aggregator = PortfolioAggregator(converter)
    return aggregator.value_all(holdings, results), aggregator


def _signed(value: float, text: str) -> str:
    color = "green" if value >= 0 else "red"
    sign = "+" if value > 0 else ""
    return f"[{color}]{sign}{text}[/{color}]"


def render_summary(summary: PortfolioSummary, converter: CurrencyConverter) -> Table:
    """Category table with a total row."""
    table = Table(title="Patrimoine")
    table.add_column("Catégorie", style="cyan")
    table.add_column("Valeur", justify="right", style="magenta")
    table.add_column("Part", justify="right")
    table.add_column("Actifs", justify="right")
    table.add_column("Performance", justify="right")

    for category in summary.categories:
        table.add_row(
            CATEGORY_LABELS[category.category],
            converter.format_value(category.total_value),
            f"{category.percentage_of_total:.1f}%",
            str(category.asset_count),
            _signed(category.performance, f"{category.performance_percent:.2f}%"),
        )

    table.add_section()
    table.add_row(
        "[bold]Total[/bold]",
        f"[bold]{converter.format_value(summary.total_value)}[/bold]",
        "100.0%" if summary.total_value else "0.0%",
        str(sum(c.asset_count for c in summary.categories)),
        _signed(summary.performance, converter.format_value(summary.performance)),
    )
    return table


def render_allocation(
    title: str, buckets: list[AllocationBucket], converter: CurrencyConverter
) -> Table:
    total = sum(b.value for b in buckets)
    table = Table(title=title)
    table.add_column("Groupe", style="cyan")
    table.add_column("Valeur", justify="right", style="magenta")
    table.add_column("Part", justify="right")
    table.add_column("Actifs")

    for bucket in buckets:
        share = bucket.value / total * 100 if total else 0.0
        table.add_row(
            bucket.name,
            converter.format_value(bucket.value),
            f"{share:.1f}%",
            ", ".join(bucket.assets),
        )
    return table


@click.group()
def portfolio() -> None:
    """Value a holdings snapshot."""
    pass


@portfolio.command()
@click.argument("holdings_file", type=click.Path(exists=True, dir_okay=False))
@settings_options
def summary(holdings_file: str, currency: Optional[str], api_key: Optional[str]) -> None:
    """Show totals per category."""
    settings = load_settings(finnhub_api_key=api_key, reporting_currency=currency)
    holdings = _load_or_exit(holdings_file)

    valued, aggregator = asyncio.run(evaluate(holdings, settings))
    console.print(render_summary(aggregator.summarize(valued), aggregator.converter))

    failed = [v for v in valued if v.error is not None]
    if failed:
        console.print(
            f"[yellow]⚠ {len(failed)} price(s) unavailable, stored values used: "
            f"{', '.join(v.holding.name for v in failed)}[/yellow]"
        )


@portfolio.command()
@click.argument("holdings_file", type=click.Path(exists=True, dir_okay=False))
@settings_options
def holdings(holdings_file: str, currency: Optional[str], api_key: Optional[str]) -> None:
    """List holdings with live prices and performance."""
    settings = load_settings(finnhub_api_key=api_key, reporting_currency=currency)
    snapshot = _load_or_exit(holdings_file)

    if not snapshot:
        console.print("[yellow]No holdings found.[/yellow]")
        return

    valued, aggregator = asyncio.run(evaluate(snapshot, settings))
    converter = aggregator.converter

    table = Table(title="Actifs")
    table.add_column("Nom", style="cyan")
    table.add_column("Catégorie")
    table.add_column("Prix", justify="right", style="yellow")
    table.add_column("Valeur", justify="right", style="magenta")
    table.add_column("Performance", justify="right")
    table.add_column("Statut", no_wrap=True)

    for item in valued:
        price = "-"
        if item.current_price is not None:
            price = f"{item.current_price:,.2f} {item.currency}"
        status = item.status
        table.add_row(
            item.holding.name,
            CATEGORY_LABELS[item.category],
            price,
            converter.format_value(item.current_value),
            _signed(item.performance, f"{item.performance_percent:.2f}%"),
            f"[red]{status.value}[/red]" if status is not None else "[green]ok[/green]",
        )

    console.print(table)


@portfolio.command()
@click.argument("holdings_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--by",
    "view",
    type=click.Choice(ALLOCATION_VIEWS),
    default=None,
    help="Single distribution to show (default: all three)",
)
@settings_options
def allocation(
    holdings_file: str, view: Optional[str], currency: Optional[str], api_key: Optional[str]
) -> None:
    """Show allocation by asset class, instrument and geography."""
    settings = load_settings(finnhub_api_key=api_key, reporting_currency=currency)
    snapshot = _load_or_exit(holdings_file)

    valued, aggregator = asyncio.run(evaluate(snapshot, settings))

    distributions = {
        "asset-class": ("Classe d'actifs", aggregator.allocation_by_asset_class),
        "instrument": ("Instruments", aggregator.allocation_by_instrument),
        "geography": ("Géographie (actions)", aggregator.allocation_by_geography),
    }
    for name in [view] if view else ALLOCATION_VIEWS:
        title, distribute = distributions[name]
        buckets = distribute(valued)
        if not buckets:
            console.print(f"[yellow]{title}: nothing to show[/yellow]")
            continue
        console.print(render_allocation(title, buckets, aggregator.converter))


@portfolio.command()
@click.argument("holdings_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--last", "last_days", type=int, default=None, help="Only show the last N days")
@settings_options
def history(
    holdings_file: str, last_days: Optional[int], currency: Optional[str], api_key: Optional[str]
) -> None:
    """Show the estimated patrimony curve, one point per day."""
    settings = load_settings(finnhub_api_key=api_key, reporting_currency=currency)
    snapshot = _load_or_exit(holdings_file)

    valued, aggregator = asyncio.run(evaluate(snapshot, settings))
    points = build_history(valued)
    if last_days:
        points = points[-last_days:]

    table = Table(title="Évolution du patrimoine (estimation)")
    table.add_column("Date", style="cyan")
    table.add_column("Valeur", justify="right", style="magenta")
    for point in points:
        table.add_row(
            point.date.strftime("%Y-%m-%d"), aggregator.converter.format_value(point.value)
        )

    console.print(table)


@portfolio.command()
@click.argument("holdings_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--interval",
    type=float,
    default=PRICE_REFRESH_INTERVAL,
    show_default=True,
    help="Seconds between price refreshes",
)
@click.option("--count", type=int, default=0, help="Stop after N refreshes (0: run until Ctrl+C)")
@settings_options
def watch(
    holdings_file: str,
    interval: float,
    count: int,
    currency: Optional[str],
    api_key: Optional[str],
) -> None:
    """
    Refresh prices periodically and print the summary.

    The holdings file is re-read on every tick; a change to the priced
    tickers or symbols triggers an immediate refresh.
    Press Ctrl+C to stop.
    """
    settings = load_settings(finnhub_api_key=api_key, reporting_currency=currency)
    path = Path(holdings_file)

    async def run() -> None:
        resolver = PriceResolver(finnhub_api_key=settings.finnhub_api_key)
        converter = CurrencyConverter(resolver, reporting_currency=settings.reporting_currency)
        aggregator = PortfolioAggregator(converter)
        scheduler = IntervalScheduler()
        refresher = PriceRefresher(resolver, scheduler, interval=interval)

        scheduler.start()
        try:
            async with resolver.api_client:
                await converter.ensure_live_rates()
                ticks = 0
                while True:
                    try:
                        await refresher.set_holdings(load_holdings(path))
                    except HoldingsFileError as e:
                        console.print(f"[yellow]⚠ {e.message}, keeping last snapshot[/yellow]")

                    valued = aggregator.value_all(refresher.holdings, resolver.results)
                    console.print(render_summary(aggregator.summarize(valued), converter))

                    ticks += 1
                    if count and ticks >= count:
                        break
                    await asyncio.sleep(interval)
        finally:
            refresher.stop()
            scheduler.stop()

    console.print(f"[cyan]Watching {path} (refresh every {interval:g}s)...[/cyan]")
    console.print("[dim]Press Ctrl+C to stop...[/dim]\n")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")


if __name__ == "__main__":
    portfolio()
