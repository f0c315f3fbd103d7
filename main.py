"""
mediascope - Main Entry Point

CLI for the mediascope browser automation server.
Runs the MCP server, lists its tools, and performs one-off stream
extraction against a URL.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Load environment (override=True to ensure .env values take precedence)
root_env = Path(__file__).parent / ".env"
if root_env.exists():
    load_dotenv(root_env, override=True)
else:
    load_dotenv(override=True)

app = typer.Typer(
    name="mediascope",
    help="mediascope - browser automation and media discovery over MCP",
)
console = Console()
logger = logging.getLogger("mediascope")


# =========================================================================
# Commands
# =========================================================================


@app.command()
def serve():
    """Start the MCP server on stdio."""
    from mediascope.mcp.__main__ import main as run_server

    run_server()


@app.command()
def tools():
    """List every registered MCP tool."""
    from mediascope.mcp.server import create_mcp_server
    from mediascope.observability.logging_config import configure_logging

    configure_logging(level=logging.WARNING)
    server = create_mcp_server()
    registered = asyncio.run(server.get_tools())

    table = Table(title=f"mediascope - {len(registered)} Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Description", style="white")
    for name, tool in sorted(registered.items()):
        summary = (tool.description or "").strip().splitlines()
        table.add_row(name, summary[0] if summary else "")
    console.print(table)


@app.command()
def extract(
    url: str = typer.Argument(..., help="Page to scan for media streams"),
    best: bool = typer.Option(False, "--best", help="Rank video streams by quality"),
    headless: bool = typer.Option(True, "--headless/--headed", help="Hide the browser window"),
    settle: float = typer.Option(3.0, "--settle", help="Seconds to let players load"),
):
    """Open URL, record its traffic, and list the media streams found."""
    from mediascope.browser.config import BrowserConfig
    from mediascope.browser.session import SessionManager
    from mediascope.exceptions import MediascopeError
    from mediascope.media.extractor import MultiSourceExtractor
    from mediascope.observability.logging_config import configure_logging

    configure_logging(level=logging.WARNING)

    async def _run():
        manager = SessionManager()
        session = await manager.init(BrowserConfig.from_env(headless=headless))
        try:
            manager.recorder.start()
            console.print(f"[cyan]Loading {url}...[/]")
            await session.page.goto(url, wait_until="domcontentloaded")
            await asyncio.sleep(settle)

            extractor = MultiSourceExtractor(
                session.page,
                recorder=manager.recorder,
                evaluator=manager.evaluator,
                notifier=manager.notifier,
                container_classes=session.config.player_container_classes,
            )
            result = await extractor.extract()
        finally:
            await manager.close(force=True)

        streams = result.streams(best_quality=best)
        if not streams:
            console.print("[yellow]No media streams found.[/]")
        else:
            table = Table(title=f"Streams Found: {len(streams)}")
            table.add_column("Type", style="cyan")
            table.add_column("Quality", style="green")
            table.add_column("Method", style="magenta")
            table.add_column("URL", style="white", overflow="fold")
            for stream in streams:
                table.add_row(
                    stream.media_type,
                    stream.quality_label or "-",
                    stream.discovery_method,
                    stream.src,
                )
            console.print(table)

        console.print(
            f"[dim]Frames scanned: {result.frames_scanned}, "
            f"skipped: {result.frames_skipped}[/]"
        )
        for error in result.errors:
            console.print(f"[yellow]⚠ {error}[/]")

    try:
        asyncio.run(_run())
    except MediascopeError as e:
        console.print(Panel(
            f"[red]{e}[/]",
            title=f"⚠ {type(e).__name__}",
            border_style="red",
        ))
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
