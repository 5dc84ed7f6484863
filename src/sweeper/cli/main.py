"""Main CLI entry point using Typer."""

import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import typer
from rich.console import Console
from rich.table import Table

from ..aws.client import create_session
from ..aws.resources import register_aws_resources
from ..config import DEFAULT_MAX_RETRIES, DEFAULT_WORKERS, RunConfig
from ..errors import ConfigError, OrderingError
from ..models.resource import ResourceDescriptor
from ..utils.logging import setup_logging
from ..wipe.catalog import ResourceCatalog
from ..wipe.engine import Sweeper

logger = logging.getLogger(__name__)

HARD_FAILURE_EXIT_CODE = 3

app = typer.Typer(
    name="sweeper",
    help="Delete AWS resources via a YAML or JSON filter document.",
    add_completion=False,
)

# Report goes to stdout; prompts and diagnostics go to stderr
console = Console(stderr=True)


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    typer.echo(f"aws-sweeper version {__version__}")
    typer.echo(f"Python {sys.version.split()[0]}")
    typer.echo(f"boto3 {boto3.__version__}")


def confirm_deletion(resources: Sequence[ResourceDescriptor]) -> bool:
    """Show every resource about to be deleted and ask once for confirmation."""
    table = Table(title=f"{len(resources)} resource(s) will be deleted, in this order")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("ID")
    table.add_column("Name")

    for index, resource in enumerate(resources, start=1):
        table.add_row(str(index), resource.resource_type, resource.resource_id, resource.name)

    console.print(table, markup=False)

    try:
        return typer.confirm("Do you really want to delete these resources?", default=False, err=True)
    except typer.Abort:
        return False


@app.command()
def wipe(
    filter_path: Path = typer.Argument(..., help="Filter document (YAML or JSON)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Don't delete anything, just show what would happen"),
    force: bool = typer.Option(False, "--force", "-f", help="Start deleting without asking for confirmation"),
    output: str = typer.Option("string", "--output", "-o", help="Output format: string, json or yaml"),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="AWS region (overrides config/env settings)"),
    max_retries: int = typer.Option(
        DEFAULT_MAX_RETRIES, "--max-retries", help="Maximum number of times an AWS API request is executed"
    ),
    workers: int = typer.Option(DEFAULT_WORKERS, "--workers", help="Number of concurrent deletions"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
):
    """Delete the resources matched by FILTER_PATH, dependents first."""
    setup_logging(level="ERROR" if quiet else ("DEBUG" if verbose else "INFO"), verbose=verbose)

    try:
        config = RunConfig.from_options(
            filter_path=filter_path,
            dry_run=dry_run,
            force_delete=force,
            output_format=output,
            region=region,
            profile=profile,
            max_retries=max_retries,
            workers=workers,
        )
    except ConfigError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(code=2)

    session = create_session(profile_name=config.profile, region_name=config.region)
    logger.info(f"Using region: {session.region_name}")

    try:
        catalog = ResourceCatalog()
        register_aws_resources(
            catalog,
            session=session,
            region=session.region_name,
            max_retries=config.max_retries,
        )
        report = Sweeper(catalog, config, confirm=confirm_deletion).run()
    except OrderingError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(code=HARD_FAILURE_EXIT_CODE)

    if report.error:
        console.print(f"Error: {report.error}", style="red", markup=False)
        raise typer.Exit(code=report.exit_code)

    for warning in report.warnings:
        console.print(f"Warning: {warning}", style="yellow", markup=False)

    typer.echo(report.render(config.output_format).rstrip("\n"))
    raise typer.Exit(code=report.exit_code)


def cli_main():
    """Console script entry point."""
    app()


if __name__ == "__main__":
    cli_main()
