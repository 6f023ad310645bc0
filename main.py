"""
AMR Surveillance API Main Entry Point

serve: run the HTTP API; check: validate settings and probe the database
"""
import asyncio

import typer
from sqlalchemy.exc import SQLAlchemyError
from rich.console import Console
from rich.table import Table

from amrdash import __version__
from amrdash.core import (
    ConfigurationError,
    SqlRowSource,
    SurveillanceError,
    close_database,
    get_config,
    get_engine,
    get_logger,
    setup_logging,
)
from amrdash.surveillance.calculations import ANIMAL, HUMAN, USAGE

app = typer.Typer(help="AMR Surveillance API - antimicrobial resistance and use analytics")
console = Console()
logger = get_logger(__name__)


def _load_config():
    try:
        return get_config()
    except ConfigurationError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        console.print("[yellow]Set DATABASE_URL and DATABASE_SERVICE_KEY in the environment or .env[/yellow]")
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address (default from settings)"),
    port: int = typer.Option(None, help="Bind port (default from settings)"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """
    Run the HTTP API with uvicorn
    """
    import uvicorn

    config = _load_config()
    setup_logging(config)

    bind_host = host or config.host
    bind_port = port or config.port
    console.print(
        f"[bold blue]🚀 Starting {config.app_name} v{__version__} on "
        f"http://{bind_host}:{bind_port}{config.api_prefix}[/bold blue]"
    )

    uvicorn.run(
        "amrdash.api.app:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_level=config.log_level.lower(),
    )


@app.command()
def check():
    """
    Validate settings and probe each surveillance table
    """
    config = _load_config()
    setup_logging(config)

    async def _check() -> bool:
        source = SqlRowSource(get_engine(config), config.fetch_timeout)

        table = Table(title="Database probe", show_header=True, header_style="bold magenta")
        table.add_column("Table", style="cyan")
        table.add_column("Status")

        healthy = True
        try:
            for dataset in (HUMAN, ANIMAL, USAGE):
                try:
                    await source.fetch(dataset.table, limit=1, timeout=5.0)
                    table.add_row(dataset.table, "[green]✓ reachable[/green]")
                except (SurveillanceError, SQLAlchemyError) as e:
                    healthy = False
                    table.add_row(dataset.table, f"[red]✗ {e}[/red]")
        finally:
            await close_database()

        console.print(table)
        return healthy

    console.print(f"[bold blue]Checking {config.database_host}...[/bold blue]")
    ok = asyncio.run(_check())

    if ok:
        console.print("[green]✓ All tables reachable[/green]")
    else:
        console.print("[red]✗ Some tables are unavailable[/red]")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show the version
    """
    console.print(f"AMR Surveillance API v{__version__}")


if __name__ == "__main__":
    app()
