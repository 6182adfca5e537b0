"""Quote and symbol search subcommands."""

import asyncio
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from patrimony.lib.api_client import APIClient
from patrimony.lib.config import load_settings
from patrimony.lib.errors import MissingAPIKeyError, get_error_color
from patrimony.models.quote import QuoteResult
from patrimony.services.price_resolver import PriceResolver
from patrimony.services.quote_sources import SymbolSearch

console = Console()


def _print_result(symbol: str, result: QuoteResult) -> None:
    if not result.ok or result.quote is None:
        error = result.error.value if result.error else "unknown"
        console.print(f"[red]✗ {symbol}: {error} {result.error_message or ''}[/red]")
        sys.exit(1)

    quote = result.quote
    console.print(f"[bold cyan]{quote.long_name or quote.symbol}[/bold cyan] ({quote.symbol})")
    console.print(f"├─ Price: {quote.price:,.4f} {quote.currency or 'EUR'}")
    if quote.exchange_name:
        console.print(f"├─ Exchange: {quote.exchange_name} ({quote.exchange_timezone or '-'})")
    if quote.instrument_type:
        console.print(f"├─ Type: {quote.instrument_type}")
    console.print(f"└─ Source: {quote.source}")


@click.group()
def quote() -> None:
    """Look up live prices and symbols."""
    pass


@quote.command()
@click.argument("symbol")
def crypto(symbol: str) -> None:
    """Show the live price of a crypto currency (e.g. BTC)."""
    resolver = PriceResolver()
    _print_result(symbol.upper(), asyncio.run(resolver.get_crypto_price(symbol)))


@quote.command()
@click.argument("ticker")
@click.option(
    "--api-key", default=None, envvar="FINNHUB_API_KEY", help="Finnhub API key (optional)"
)
def stock(ticker: str, api_key: Optional[str]) -> None:
    """Show the live quote of a stock or ETF (e.g. AAPL, MC.PA)."""
    settings = load_settings(finnhub_api_key=api_key)
    resolver = PriceResolver(finnhub_api_key=settings.finnhub_api_key)
    _print_result(ticker.upper(), asyncio.run(resolver.get_stock_price(ticker)))


@quote.command()
@click.argument("query")
@click.option("--crypto", "is_crypto", is_flag=True, help="Search crypto instead of stocks")
@click.option(
    "--api-key", default=None, envvar="FINNHUB_API_KEY", help="Finnhub API key (optional)"
)
def search(query: str, is_crypto: bool, api_key: Optional[str]) -> None:
    """Search symbols by name or ticker."""
    settings = load_settings(finnhub_api_key=api_key)
    searcher = SymbolSearch(APIClient(), settings.finnhub_api_key)

    if not is_crypto and not settings.has_finnhub_key:
        error = MissingAPIKeyError("Finnhub", "FINNHUB_API_KEY")
        color = get_error_color(error)
        console.print(f"[{color}]✗ Stock search unavailable: {error.message}[/{color}]")
        sys.exit(1)

    if is_crypto:
        results = asyncio.run(searcher.search_crypto(query))
    else:
        results = asyncio.run(searcher.search_stocks(query))

    if not results:
        console.print(f"[yellow]No results for '{query}'.[/yellow]")
        return

    table = Table(title=f"Results for '{query}'")
    table.add_column("Symbol", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Type", style="dim")
    for result in results:
        table.add_row(result.symbol, result.name, result.type)
    console.print(table)


@quote.command()
@click.argument("ticker")
@click.option(
    "--api-key", default=None, envvar="FINNHUB_API_KEY", help="Finnhub API key (optional)"
)
def name(ticker: str, api_key: Optional[str]) -> None:
    """Find the display name of a ticker."""
    settings = load_settings(finnhub_api_key=api_key)
    searcher = SymbolSearch(APIClient(), settings.finnhub_api_key)

    display_name = asyncio.run(searcher.get_stock_name(ticker))
    if display_name is None:
        console.print(f"[red]✗ No name found for {ticker.upper()}[/red]")
        sys.exit(1)
    console.print(display_name)


if __name__ == "__main__":
    quote()
