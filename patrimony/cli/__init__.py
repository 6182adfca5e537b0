"""CLI entry point for patrimony."""

import logging
import sys
import traceback

import click
from rich.console import Console

from patrimony import __version__
from patrimony.cli import portfolio, quote
from patrimony.lib.config import load_settings
from patrimony.lib.errors import PatrimonyError, format_error_message, get_error_color
from patrimony.lib.logging_config import setup_logging

console = Console()


@click.group()  # type: ignore[misc]
@click.option("--debug", is_flag=True, help="Enable debug mode")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def main(ctx: click.Context, debug: bool) -> None:
    """Patrimony - Track savings, accounts, stocks, crypto and real estate in EUR."""
    ctx.ensure_object(dict)
    ctx.obj["DEBUG"] = debug

    settings = load_settings()
    setup_logging(logging.DEBUG if debug else logging.WARNING, log_file=settings.log_file)


def handle_exception(
    exc_type: type[BaseException], exc_value: BaseException, exc_traceback: object
) -> None:
    """
    Global exception handler for CLI.

    Formats exceptions with Rich colors and provides user-friendly messages.
    """
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)  # type: ignore[arg-type]
        return

    color = get_error_color(exc_value) if isinstance(exc_value, Exception) else "red"
    message = (
        format_error_message(exc_value) if isinstance(exc_value, Exception) else str(exc_value)
    )

    console.print(f"\n[{color}]✗ Error: {message}[/{color}]\n")

    if not isinstance(exc_value, PatrimonyError):
        console.print("[dim]Unexpected error occurred. Use --debug for full traceback.[/dim]")
    if "--debug" in sys.argv:
        console.print("[dim]Traceback:[/dim]")
        traceback.print_exception(exc_value)

    sys.exit(1)


# Install global exception handler
sys.excepthook = handle_exception


@main.command()  # type: ignore[misc]
def version() -> None:
    """Show version information."""
    click.echo(f"patrimony version {__version__}")


# Register subcommands
main.add_command(portfolio.portfolio)
main.add_command(quote.quote)


if __name__ == "__main__":
    main()
