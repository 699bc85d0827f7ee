#!/usr/bin/env python3
"""
Visit geolocation re-attribution - command line entry point.

Re-attributes logged visits (and their conversions) in a date range to the
location currently resolved for their IP address.

Usage:
    python -m geoattribution.main attribute 2012-01-01,2013-01-01
    python -m geoattribution.main attribute 2012-01-01,2013-01-01 10 geoip2 --segment-limit 500 -v
    python -m geoattribution.main providers
    python -m geoattribution.main init-db
"""

import sys
from pathlib import Path

import click
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from geoattribution.attribution import AttributionPipeline
from geoattribution.config import settings
from geoattribution.database import get_session, init_db
from geoattribution.dates import InvalidDateRangeError, parse_date_range
from geoattribution.fetcher import RawLogFetcher
from geoattribution.location import (
    VisitorGeolocator,
    available_providers,
    get_current_provider,
    get_provider_by_id,
)
from geoattribution.updater import RawLogUpdater
from geoattribution.utils.logging import setup_logging


console = Console(soft_wrap=True, highlight=False)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write logs to this file (default from LOG_FILE)",
)
def cli(debug, log_file):
    """Visit geolocation re-attribution"""
    if debug or log_file:
        setup_logging(level="DEBUG" if debug else None, log_file=log_file)


@cli.command()
@click.argument("dates_range")
@click.argument("percent_step", required=False, default=None)
@click.argument("provider", required=False, default=None)
@click.option(
    "--segment-limit",
    type=click.IntRange(min=1),
    default=None,
    help="Number of visits to process at a time (default from PAGE_SIZE, 1000).",
)
@click.option("-v", "--verbose", is_flag=True, help="Print every skipped visit and write decision")
def attribute(dates_range: str, percent_step, provider, segment_limit, verbose: bool):
    """
    Re-attribute visits in DATES_RANGE with their current location.

    DATES_RANGE is "FROM,TO", e.g. 2012-01-01,2013-01-01 (TO excluded).
    PERCENT_STEP sets how often progress is printed (every N percent).
    PROVIDER is a location provider id; if empty or unknown, the configured
    provider is used.
    """
    try:
        start, end = parse_date_range(dates_range)
    except InvalidDateRangeError as e:
        raise click.BadParameter(str(e), param_hint="DATES_RANGE")

    selected = get_provider_by_id(provider)
    if provider and selected is None:
        logger.warning(f"Unknown location provider '{provider}', using the configured provider")
    geolocator = VisitorGeolocator(selected)

    if percent_step is None:
        percent_step = settings.pipeline.percent_step
    page_size = segment_limit or settings.pipeline.page_size

    try:
        with get_session() as session:
            pipeline = AttributionPipeline(
                RawLogFetcher(session),
                RawLogUpdater(session),
                geolocator,
                console=console,
                percent_step=percent_step,
                verbose=verbose,
            )
            pipeline.run(start, end, page_size=page_size)
    except SQLAlchemyError as e:
        console.print(f"[red]Re-attribution aborted: {escape(str(e))}[/red]")
        logger.exception("Re-attribution aborted")
        sys.exit(1)
    finally:
        geolocator.close()


@cli.command()
def providers():
    """List location providers."""
    current_id = get_current_provider().id

    table = Table()
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Available")
    table.add_column("Configured")

    for provider in available_providers():
        table.add_row(
            provider.id,
            provider.title,
            "[green]yes[/green]" if provider.is_available() else "[red]no[/red]",
            "*" if provider.id == current_id else "",
        )

    console.print(table)


@cli.command("init-db")
@click.option("--drop", is_flag=True, help="Drop existing log tables first (USE WITH CAUTION!)")
def init_db_command(drop: bool):
    """Create the visit and conversion log tables."""
    init_db(drop=drop)
    console.print("[green]Log tables ready[/green]")


if __name__ == "__main__":
    cli()
