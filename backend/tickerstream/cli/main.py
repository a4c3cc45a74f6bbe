"""
TickerStream Price Backend - CLI Application
"""
import asyncio
from typing import List

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tickerstream.config import settings
from tickerstream.logger import logger

# Create Typer app
app = typer.Typer(
    name="tickerstream",
    help="TickerStream price backend CLI",
    add_completion=False,
)

console = Console()

# Levels uvicorn accepts; loguru-only levels fall back to info
_UVICORN_LEVELS = {"critical", "error", "warning", "info", "debug", "trace"}


def uvicorn_log_level(level: str) -> str:
    level = level.lower()
    return level if level in _UVICORN_LEVELS else "info"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit")
):
    """
    TickerStream Price Backend CLI

    Streams live crypto ticker prices scraped from browser tabs.
    """
    if version:
        console.print(f"[cyan]{settings.APP_NAME}[/cyan] v{settings.APP_VERSION}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(Panel.fit(
            f"[bold cyan]{settings.APP_NAME}[/bold cyan]\n"
            f"[dim]Version {settings.APP_VERSION}[/dim]\n\n"
            f"[yellow]Use --help to see available commands[/yellow]",
            box=box.ROUNDED,
            border_style="cyan"
        ))


@app.command()
def server(
    host: str = typer.Option(settings.API.host, "--host", "-h", help="Server host"),
    port: int = typer.Option(settings.API.port, "--port", "-p", help="Server port"),
    reload: bool = typer.Option(settings.DEBUG, "--reload", "-r", help="Enable auto-reload")
):
    """
    Start the FastAPI server
    """
    import uvicorn

    console.print(f"[green]Starting server at http://{host}:{port}[/green]")
    console.print(f"[dim]API docs: http://{host}:{port}/docs[/dim]")
    console.print(f"[dim]Price stream: http://{host}:{port}/api/prices/stream[/dim]\n")

    logger.info(f"Starting server via CLI at {host}:{port}")
    uvicorn.run(
        "tickerstream.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=uvicorn_log_level(settings.LOGGER.default_level)
    )


@app.command()
def status():
    """
    Show configuration
    """
    table = Table(title="TickerStream Configuration", box=box.ROUNDED)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Application", settings.APP_NAME)
    table.add_row("Version", settings.APP_VERSION)
    table.add_row("Debug Mode", str(settings.DEBUG))
    table.add_row("Log Level", settings.LOGGER.default_level)
    table.add_row("API Host", f"{settings.API.host}:{settings.API.port}")
    table.add_row("CORS Origins", ", ".join(settings.API.cors_origins))
    table.add_row("Headless Browser", str(settings.BROWSER.headless))
    table.add_row("Launch On Startup", str(settings.BROWSER.launch_on_startup))
    table.add_row("Validation Budget", f"{settings.VALIDATION.validation_total_budget_ms} ms")
    table.add_row("Recovery Backoff", ", ".join(f"{d} ms" for d in settings.RECOVERY.backoff_delays_ms))
    table.add_row("Source", settings.SOURCE.url_template.format(symbol="<SYMBOL>", exchange=settings.SOURCE.exchange))

    console.print(table)
    logger.debug("Status command executed")


@app.command()
def validate(symbol: str = typer.Argument(..., help="Ticker to probe, e.g. BTCUSDT")):
    """
    Run the fast validation probe once against the real site
    """
    from tickerstream.services.price_service import build_price_service

    async def _run():
        service = build_price_service(settings)
        try:
            return await service.supervisor.validator.validate(symbol)
        finally:
            await service.stop()

    try:
        result = asyncio.run(_run())
    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}")
        logger.error(f"Validation command failed: {e}")
        raise typer.Exit(code=1)

    if result.accepted:
        console.print(f"[green]✓[/green] {result.symbol} accepted ({result.evidence}, {result.elapsed_ms} ms)")
    else:
        console.print(f"[red]✗[/red] {result.symbol or symbol}: {result.reason} ({result.evidence}, {result.elapsed_ms} ms)")
        raise typer.Exit(code=1)


@app.command()
def watch(symbols: List[str] = typer.Argument(..., help="Tickers to stream")):
    """
    Track tickers and print live updates until Ctrl+C
    """
    from tickerstream.services.price_service import build_price_service

    async def _run():
        service = build_price_service(settings)
        try:
            if not await service.start():
                console.print(f"[red]✗[/red] Browser not available: {service.supervisor.last_fatal_error}")
                return False
            updates = service.subscribe()
            for symbol in symbols:
                result = await service.add_source(symbol)
                if result.success:
                    console.print(f"[green]✓[/green] {symbol.upper()} tracked")
                else:
                    console.print(f"[red]✗[/red] {symbol}: {result.message}")
            if not service.list_sources():
                return False

            console.print("[dim]Streaming; press Ctrl+C to stop[/dim]")
            async for update in updates:
                color = "red" if update.change.startswith("-") else "green"
                console.print(
                    f"{update.symbol:<12} {update.price:>14} "
                    f"[{color}]{update.change:>10} {update.change_percent:>8}[/{color}]"
                )
            return True
        finally:
            await service.stop()

    try:
        ok = asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")
        return
    if not ok:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
