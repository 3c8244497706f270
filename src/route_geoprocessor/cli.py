"""
Command line interface for the route geoprocessor.

Usage:
    route-geoprocessor ingest route.gpx --source-url https://example.com/r/1 --tag gravel
    route-geoprocessor recompute 42
    route-geoprocessor recompute-all
    route-geoprocessor reprocess
    route-geoprocessor worker
"""

import asyncio
import sys
from typing import Optional, Tuple

import click
from dotenv import load_dotenv

from route_geoprocessor.config.logging import setup_logging
from route_geoprocessor.config.settings import settings
from route_geoprocessor.exceptions import RouteProcessingError
from route_geoprocessor.ingestion import IngestionCoordinator
from route_geoprocessor.models import RouteSubmission
from route_geoprocessor.scheduler import ReprocessingScheduler
from route_geoprocessor.storage.json_store import JsonRouteStore


@click.group()
@click.option("--store", "store_path", default=None, help="Path to the JSON route store.")
@click.option("--log-level", default=None, help="Logging level (default from LOG_LEVEL).")
@click.pass_context
def cli(ctx: click.Context, store_path: Optional[str], log_level: Optional[str]):
    """Ingest GPX routes and enrich them with Valhalla attribution."""
    load_dotenv()
    setup_logging(log_level or settings.LOG_LEVEL)
    ctx.obj = JsonRouteStore(store_path or settings.ROUTE_STORE_PATH)


@cli.command()
@click.argument("gpx_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--source-url", required=True, help="Unique URL the route was taken from.")
@click.option("--title", default=None, help="Route title.")
@click.option("--tag", "tags", multiple=True, help="Tag to attach (repeatable).")
@click.option("--with-attribution", is_flag=True, help="Call Valhalla during ingestion.")
@click.pass_obj
def ingest(
    store: JsonRouteStore,
    gpx_file: str,
    source_url: str,
    title: Optional[str],
    tags: Tuple[str, ...],
    with_attribution: bool,
):
    """Create or update a route from a GPX file."""
    with open(gpx_file, "r", encoding="utf-8") as f:
        gpx_content = f.read()

    submission = RouteSubmission(
        source_url=source_url, gpx_content=gpx_content, title=title, tags=list(tags)
    )
    coordinator = IngestionCoordinator(store)
    try:
        result = asyncio.run(coordinator.ingest(submission, use_attribution=with_attribution))
    except RouteProcessingError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result.created:
        click.echo(f"Created route {result.route_id}")
    else:
        click.echo(f"Updated route {result.route_id} (gpx changed: {result.gpx_changed})")


@cli.command()
@click.argument("route_id", type=int)
@click.option("--skip-attribution", is_flag=True, help="Only recompute geometry and elevation.")
@click.pass_obj
def recompute(store: JsonRouteStore, route_id: int, skip_attribution: bool):
    """Recompute one route, including attribution."""
    coordinator = IngestionCoordinator(store)
    try:
        route = asyncio.run(
            coordinator.recompute_route(route_id, use_attribution=not skip_attribution)
        )
    except (RouteProcessingError, LookupError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    segments = "none" if route.segments is None else len(route.segments)
    click.echo(f"Recomputed route {route.id}: segments={segments}")


@cli.command("recompute-all")
@click.pass_obj
def recompute_all(store: JsonRouteStore):
    """Recompute geometry and elevation for every route (no attribution)."""
    summary = asyncio.run(IngestionCoordinator(store).recompute_all())
    click.echo(f"Recomputed {summary.success_count} routes, {summary.error_count} errors")


@cli.command()
@click.pass_obj
def reprocess(store: JsonRouteStore):
    """Run one background attribution pass now."""
    report = asyncio.run(ReprocessingScheduler(store).run_once())
    click.echo(
        f"Candidates: {report.candidates}, "
        f"succeeded: {len(report.succeeded)}, failed: {len(report.failed)}"
    )


@cli.command()
@click.pass_obj
def worker(store: JsonRouteStore):
    """Run the periodic attribution backfill until interrupted."""
    click.echo("Starting reprocessing worker...")
    try:
        asyncio.run(ReprocessingScheduler(store).run_forever())
    except KeyboardInterrupt:
        click.echo("Worker stopped.")


if __name__ == "__main__":
    cli()
