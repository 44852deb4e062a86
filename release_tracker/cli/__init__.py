"""
Command Line Interface for the Release Tracker.
"""

import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from pydantic import TypeAdapter
from pydantic import ValidationError as PayloadError
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..config import get_settings
from ..db.base import get_session_local, init_database
from ..errors import ReleaseTrackerError
from ..logging_config import configure_logging
from ..releases.services import ReleaseQueryService, ReleaseService
from ..tickets.schemas import TicketDescription
from ..tickets.services import TicketService


app = typer.Typer(help="Release Tracker - releases and the tickets they ship")
console = Console()

_descriptions = TypeAdapter(list[TicketDescription])


@app.callback()
def main_callback() -> None:
    configure_logging(get_settings())


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    dev: bool = typer.Option(False, help="Run in development mode with reload"),
):
    """Start the API server."""
    settings = get_settings()
    rprint(Panel.fit("Starting Release Tracker", style="bold blue"))
    uvicorn.run(
        "release_tracker.api:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=dev,
        workers=1 if dev else settings.api_workers,
    )


@app.command("init-db")
def init_db():
    """Create the database tables."""
    init_database()
    console.print("✅ Database initialized")


@app.command("list")
def list_releases(
    service_id: Optional[str] = typer.Option(None, help="Only releases of this service"),
    page: int = typer.Option(1, help="Page number"),
    page_size: Optional[int] = typer.Option(None, help="Releases per page"),
):
    """List releases, newest first."""
    db = get_session_local()()
    try:
        result = ReleaseQueryService(db).list(
            service_id=service_id, page=page, page_size=page_size
        )

        table = Table(title="Releases", show_header=True, header_style="bold magenta")
        table.add_column("Version", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Service")
        table.add_column("Tickets", justify="right")
        table.add_column("Created")

        for release in result.releases:
            table.add_row(
                release.version,
                release.status,
                release.service_id or "-",
                str(len(release.ticket_links)),
                release.created_at.strftime("%Y-%m-%d %H:%M"),
            )

        console.print(table)
        pagination = result.pagination
        console.print(
            f"Page {pagination.page}/{pagination.total_pages} "
            f"({pagination.total} releases)"
        )
    except ReleaseTrackerError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)
    finally:
        db.close()


@app.command()
def show(release_id: str = typer.Argument(..., help="Release version")):
    """Show one release with its tickets."""
    db = get_session_local()()
    try:
        release = ReleaseQueryService(db).get(release_id)
    except ReleaseTrackerError as e:
        console.print(f"❌ {e.message}")
        db.close()
        raise typer.Exit(code=1)

    try:
        rprint(
            Panel.fit(
                f"[bold]{release.version}[/bold]  {release.status}\n"
                f"Released by: {release.released_by or '-'}\n"
                f"Build: {release.build_url or '-'}\n\n"
                f"{release.notes}",
                title="Release",
            )
        )

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Ticket", style="cyan")
        table.add_column("Summary")
        table.add_column("Status", style="green")
        table.add_column("Assignee")
        for ticket in release.tickets:
            table.add_row(ticket.ticket_id, ticket.summary, ticket.status, ticket.assignee)
        console.print(table)
    finally:
        db.close()


@app.command("sync-tickets")
def sync_tickets(
    path: Path = typer.Argument(..., help="JSON file with a list of tickets"),
    actor: Optional[str] = typer.Option(None, help="Recorded in the audit log"),
):
    """Re-ingest tickets exported from the issue tracker."""
    try:
        descriptions = _descriptions.validate_python(json.loads(path.read_text()))
    except (OSError, json.JSONDecodeError, PayloadError) as e:
        console.print(f"❌ Cannot read tickets from {path}: {escape(str(e))}")
        raise typer.Exit(code=1)

    db = get_session_local()()
    try:
        result = TicketService(db).sync(descriptions, actor=actor)
    except ReleaseTrackerError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)
    finally:
        db.close()

    console.print(
        f"✅ {len(result.created)} created, {len(result.updated)} updated"
    )
    for failure in result.failures:
        console.print(f"⚠️  {failure.input.get('ticket_id')}: {failure.error}")
    if result.failures:
        raise typer.Exit(code=1)


@app.command()
def delete(
    release_id: str = typer.Argument(..., help="Release version"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a release. Its tickets are kept."""
    if not yes:
        typer.confirm(f"Delete release {release_id}?", abort=True)

    db = get_session_local()()
    try:
        ReleaseService(db).delete(release_id, actor="cli")
    except ReleaseTrackerError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)
    finally:
        db.close()

    console.print(f"🗑️  Release {release_id} deleted")


@app.command()
def version():
    """Show version information."""
    from .. import __version__
    rprint(Panel.fit(f"Release Tracker v{__version__}", style="bold green"))


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
