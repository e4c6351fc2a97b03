"""
Booking core CLI.

Command-line interface for schema setup, invariant audits and statistics.
"""

import sys
from urllib.parse import urlsplit, urlunsplit

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.orm import sessionmaker

from booking_core import __version__
from booking_core.models import (
    Appointment,
    Business,
    Client,
    Service,
    ServiceAssignment,
    ServiceCategory,
    Staff,
    User,
)
from booking_core.repositories import AppointmentRepository, BaseRepository, ScopedUniquenessEnforcer
from shared.config.logging import setup_logging
from shared.config.settings import get_settings
from shared.infrastructure.db import build_engine, init_schema, session_scope

app = typer.Typer(
    name="booking-core",
    help="Booking core management CLI",
    add_completion=False,
)
console = Console()

ENTITIES = (User, Business, Staff, Client, ServiceCategory, Service, ServiceAssignment, Appointment)

DatabaseUrl = typer.Option(None, "--database-url", help="Overrides DATABASE_URL")


@app.callback()
def main():
    """Booking core management CLI."""
    setup_logging()


def _session_factory(database_url: str | None) -> sessionmaker:
    engine = build_engine(database_url or get_settings().database_url)
    return sessionmaker(bind=engine, autoflush=False)


def _mask_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.password:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@")
    return urlunsplit(parts._replace(netloc=netloc))


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def db_init(database_url: str = DatabaseUrl):
    """Create all tables and partial unique indexes."""
    url = database_url or get_settings().database_url
    console.print(f"[blue]Initializing schema on: {_mask_url(url)}[/blue]")
    engine = build_engine(url)
    init_schema(engine)
    console.print(f"[green]✓ Schema ready ({len(ENTITIES)} entities)[/green]")


@app.command()
def check_invariants(database_url: str = DatabaseUrl):
    """Audit uniqueness rules and scoped-assignment invariants. Exits 1 on violations."""
    factory = _session_factory(database_url)

    table = Table(title="Invariant Violations")
    table.add_column("Entity", style="cyan")
    table.add_column("Rule", style="yellow")
    table.add_column("Values", style="red")
    table.add_column("Rows", style="red")

    violations = 0
    with session_scope(factory) as db:
        for model in ENTITIES:
            for rule, values, count in ScopedUniquenessEnforcer(model).find_violations(db):
                violations += 1
                table.add_row(
                    model.ENTITY_NAME,
                    rule.name,
                    ", ".join(str(v) for v in values),
                    str(count),
                )

    problems = get_settings().validate_production_settings()
    for problem in problems:
        console.print(f"[yellow]Config: {problem}[/yellow]")

    if violations:
        console.print(table)
        console.print(f"[red]✗ {violations} invariant violation(s)[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ All invariants hold[/green]")


@app.command()
def stats(database_url: str = DatabaseUrl):
    """Show live record counts per entity and appointments by status."""
    factory = _session_factory(database_url)

    table = Table(title="Live Records")
    table.add_column("Entity", style="cyan")
    table.add_column("Table", style="blue")
    table.add_column("Count", style="green")

    with session_scope(factory) as db:
        for model in ENTITIES:
            count = BaseRepository(model, db).count()
            table.add_row(model.ENTITY_NAME, model.table_identity(), str(count))
        by_status = AppointmentRepository(db).count_by_status()

    console.print(table)

    if by_status:
        status_table = Table(title="Appointments by Status")
        status_table.add_column("Status", style="cyan")
        status_table.add_column("Count", style="green")
        for status_name, count in sorted(by_status.items()):
            status_table.add_row(status_name, str(count))
        console.print(status_table)


@app.command()
def config():
    """Show the effective configuration and production readiness."""
    settings = get_settings()

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for name, value in settings.model_dump().items():
        if name == "database_url":
            value = _mask_url(value)
        table.add_row(name, str(value))
    console.print(table)

    problems = settings.validate_production_settings()
    if problems:
        for problem in problems:
            console.print(f"[red]✗ {problem}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Configuration valid[/green]")


@app.command()
def version():
    """Show version information."""
    table = Table(title="Booking Core Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("booking-core", __version__)
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
