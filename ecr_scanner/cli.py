"""CLI interface for the ECR scan trigger."""

import asyncio
import logging

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ecr_scanner.config import Settings, load_settings
from ecr_scanner.log_config import configure_logging
from ecr_scanner.metrics.server import MetricsServerError
from ecr_scanner.registry.base_gateway import RegistryConfigurationError, RegistryError
from ecr_scanner.registry.ecr_gateway import EcrGateway
from ecr_scanner.scanner.scheduler import CronScheduler, ScheduleError
from ecr_scanner.service import build_service, run_once, run_service

app = typer.Typer(
    name="ecr-scanner",
    help="Periodically request AWS ECR image scans and expose scan counters",
)

console = Console()
logger = logging.getLogger("ecr_scanner")


def _read_settings() -> Settings:
    try:
        return load_settings()
    except ValidationError as e:
        console.print(f"[red]Error:[/red] invalid configuration\n{escape(str(e))}")
        raise typer.Exit(1)


def _load() -> Settings:
    """Load settings and set up logging before anything else is logged."""
    settings = _read_settings()
    configure_logging(settings.log_format, settings.log_level)

    # NOTE: settings must never carry secrets, they are logged verbatim
    logger.info("reconciled configuration", extra={"config": settings.dotted()})
    return settings


@app.command()
def serve() -> None:
    """Run the cron scheduler and the metrics endpoint until interrupted."""
    settings = _load()

    try:
        service = build_service(settings)
    except RegistryConfigurationError as e:
        logger.critical("failed to load AWS configuration", extra={"err": str(e)})
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except ScheduleError as e:
        logger.critical("failed to initialize cron scheduler", extra={"err": str(e)})
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    try:
        asyncio.run(run_service(service))
    except MetricsServerError as e:
        logger.critical("webserver failed", extra={"err": str(e)})
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command("scan-once")
def scan_once() -> None:
    """Run a single reconciliation cycle and print a summary."""
    settings = _load()

    try:
        gateway = EcrGateway.from_environment(
            region=settings.aws_region,
            registry_id=settings.aws_registry_id,
        )
    except RegistryConfigurationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    try:
        result, _ = asyncio.run(run_once(gateway, settings))
    except RegistryError as e:
        console.print(f"[red]Cycle aborted:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    summary_table = Table(title="Scan Request Summary")
    summary_table.add_column("Metric", style="cyan")
    summary_table.add_column("Count", justify="right", style="magenta")

    summary_table.add_row("Repositories", str(result.repositories))
    summary_table.add_row("Images", str(result.images))
    summary_table.add_row("Requested", f"[green]{result.requested}[/green]")
    summary_table.add_row("Rate limited", f"[yellow]{result.rate_limited}[/yellow]")
    summary_table.add_row("Failed", f"[red]{result.failed}[/red]")
    summary_table.add_row("Duration", f"{result.duration_seconds:.1f}s")

    console.print(summary_table)

    if result.failed_repositories:
        console.print(f"\n[yellow]Repositories not fully listed ({len(result.failed_repositories)}):[/yellow]")
        for name, error in result.failed_repositories.items():
            console.print(f"  [dim]{name}:[/dim] {escape(error[:80])}")

    # Show failures if any
    if result.failures:
        console.print(f"\n[yellow]Failed scan requests ({len(result.failures)}):[/yellow]")
        for ref, error in list(result.failures.items())[:5]:
            console.print(f"  [dim]{ref}:[/dim] {escape(error[:80])}")
        if len(result.failures) > 5:
            console.print(f"  [dim]... and {len(result.failures) - 5} more[/dim]")


@app.command()
def config() -> None:
    """Show the reconciled configuration."""
    settings = _read_settings()

    table = Table(title="Configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="magenta")

    for key, value in sorted(settings.dotted().items()):
        table.add_row(key, "" if value is None else str(value))

    console.print(table)


@app.command()
def schedule(
    count: int = typer.Option(5, "--count", "-n", min=1, help="Number of fire times to show"),
) -> None:
    """Show the next fire times of the configured cron schedule."""
    settings = _read_settings()

    try:
        scheduler = CronScheduler(settings.cron_schedule, job=lambda: asyncio.sleep(0))
    except ScheduleError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(f"[bold]{settings.cron_schedule}[/bold] (UTC)")
    for fire_at in scheduler.upcoming(count):
        console.print(f"  {fire_at.isoformat()}")


if __name__ == "__main__":
    app()
