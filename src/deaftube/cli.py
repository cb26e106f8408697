"""Command-line interface using Typer."""

import typer
from rich.console import Console
from rich.table import Table

from deaftube import __version__
from deaftube.logging import setup_logging

# Setup logging
setup_logging()

app = typer.Typer(
    name="deaftube",
    help="DeafTube - video sharing for deaf and hard-of-hearing creators",
    add_completion=False,
)

# Subcommand groups
ledger_app = typer.Typer(help="Engagement ledger maintenance commands")
app.add_typer(ledger_app, name="ledger")

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"DeafTube v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """DeafTube - accounts, uploads, likes, comments and subscriptions."""
    pass


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (default from settings)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port (default from settings)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
) -> None:
    """Run the API server."""
    import uvicorn

    from deaftube.config import settings

    uvicorn.run(
        "deaftube.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload or settings.api_reload,
    )


@app.command("init-db")
def init_db() -> None:
    """Create all tables that do not exist yet."""
    from deaftube.db.models import Base
    from deaftube.db.session import engine

    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(1) from e

    console.print(f"[bold green]✓ Created {len(Base.metadata.tables)} tables[/bold green]")


def _drift_table(title: str, drift) -> Table:
    table = Table(title=title)
    table.add_column("Table", style="cyan")
    table.add_column("Row ID", style="dim")
    table.add_column("Column")
    table.add_column("Stored", justify="right")
    table.add_column("Actual", justify="right", style="green")

    for item in drift:
        table.add_row(item.table, item.row_id, item.column, str(item.stored), str(item.actual))
    return table


@ledger_app.command("check")
def ledger_check() -> None:
    """Report counters that disagree with their ledger rows."""
    from deaftube.db.session import get_session_context
    from deaftube.services.integrity import find_drift

    with get_session_context() as session:
        drift = find_drift(session)

    if not drift:
        console.print("[bold green]✓ All counters match their rows[/bold green]")
        return

    console.print(_drift_table("Counter Drift", drift))
    console.print(f"[bold yellow]{len(drift)} counter(s) drifted[/bold yellow]")
    console.print("[dim]Run 'deaftube ledger repair' to fix them[/dim]")
    raise typer.Exit(1)


@ledger_app.command("repair")
def ledger_repair() -> None:
    """Rewrite drifted counters from their ledger rows."""
    from deaftube.db.session import get_session_context
    from deaftube.services.integrity import repair_counters

    with get_session_context() as session:
        repaired = repair_counters(session)

    if not repaired:
        console.print("[bold green]✓ Nothing to repair[/bold green]")
        return

    console.print(_drift_table("Repaired Counters", repaired))
    console.print(f"[bold green]✓ Repaired {len(repaired)} counter(s)[/bold green]")


if __name__ == "__main__":
    app()
