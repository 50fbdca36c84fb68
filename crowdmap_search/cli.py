import asyncio
import logging
import sys

import click

from .clients import (
    ReportsClient,
    SiteCatalogClient,
    WeatherClient,
    create_search_sources,
)
from .config import get_app_config
from .data_models.config import AppConfig
from .data_models.search import SearchState
from .data_models.sites import CrowdLevel, Report, Site, WeatherData
from .engine import SearchEngine
from .exceptions import (
    AccessTokenValidationError,
    ConfigurationError,
    InvalidAccessTokenError,
    ReportSubmissionError,
)
from .utils import format_location, validate_access_token
from .version import __version__


def _load_config(ctx: click.Context) -> AppConfig:
    try:
        return get_app_config()
    except ConfigurationError as e:
        click.echo(str(e), err=True)
        ctx.exit(1)


async def _run_search(
    config: AppConfig, query: str, debounce_ms: int, min_length: int
) -> SearchState:
    search_catalog, search_geocode = create_search_sources(config)
    engine = SearchEngine(
        search_catalog,
        search_geocode,
        debounce_ms=debounce_ms,
        min_search_length=min_length,
    )
    engine.perform_search(query)
    return await engine.wait_until_idle()


def _echo_results(state: SearchState) -> None:
    results = state.results
    if results.is_empty:
        click.echo("No results found.")
        return

    if results.sites:
        click.echo("Live Trip Sites")
        for site in results.sites:
            line = f"  {site.name} [{site.crowd_level.value}]"
            if site.description:
                line += f" - {site.description}"
            click.echo(line)

    if results.locations:
        click.echo("Locations")
        for location in results.locations:
            click.echo(
                f"  {location.text}: {location.place_name} "
                f"({format_location(location.location)})"
            )


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """CrowdMap search CLI - search sites and places, report crowd levels."""
    logging.basicConfig(level=logging.INFO)


@cli.command()
@click.argument("query")
@click.option("--debounce-ms", type=int, default=None, help="Debounce quiet period.")
@click.option("--min-length", type=int, default=None, help="Minimum query length.")
@click.option(
    "--skip-token-validation",
    is_flag=True,
    default=False,
    help="Skip the validation of the MAPBOX_ACCESS_TOKEN at startup.",
)
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    debounce_ms: int | None,
    min_length: int | None,
    *,
    skip_token_validation: bool,
) -> None:
    """Search the site catalog and the geocoder for QUERY."""
    config = _load_config(ctx)

    if config.mapbox_access_token and not skip_token_validation:
        try:
            asyncio.run(validate_access_token(config.mapbox_access_token))
        except (InvalidAccessTokenError, AccessTokenValidationError) as e:
            click.echo(str(e), err=True)
            sys.stderr.flush()
            ctx.exit(1)

    try:
        state = asyncio.run(
            _run_search(
                config,
                query,
                config.debounce_ms if debounce_ms is None else debounce_ms,
                config.min_search_length if min_length is None else min_length,
            )
        )
    except (ConfigurationError, ValueError) as e:
        click.echo(str(e), err=True)
        ctx.exit(1)
    except OSError as e:
        click.echo(f"Cannot read site catalog: {e}", err=True)
        ctx.exit(1)

    _echo_results(state)


async def _save_report(
    config: AppConfig,
    site_id: str,
    level: str,
    content: str | None,
    report_id: str | None,
    user_id: str | None,
) -> Report:
    if report_id is None and user_id:
        catalog = SiteCatalogClient(config.catalog_url, config.catalog_api_key)
        existing = await catalog.get_user_report(site_id, user_id)
        if existing is not None:
            report_id = existing.id

    client = ReportsClient(config.reports_api_url)
    if report_id:
        return await client.update_report(report_id, level, content)
    return await client.submit_report(site_id, level, content)


@cli.command()
@click.argument("site_id")
@click.argument(
    "level", type=click.Choice([level.value for level in CrowdLevel])
)
@click.option("--content", default=None, help="Optional comment.")
@click.option("--report-id", default=None, help="Update this report instead.")
@click.option(
    "--user-id",
    default=None,
    help="Update this user's existing report for the site, if any (needs CATALOG_URL).",
)
@click.pass_context
def report(
    ctx: click.Context,
    site_id: str,
    level: str,
    content: str | None,
    report_id: str | None,
    user_id: str | None,
) -> None:
    """Submit (or update) a crowd LEVEL report for SITE_ID."""
    config = _load_config(ctx)
    if not config.reports_api_url:
        click.echo("REPORTS_API_URL environment variable is required", err=True)
        ctx.exit(1)
    if user_id and not report_id and not config.catalog_url:
        click.echo("CATALOG_URL environment variable is required", err=True)
        ctx.exit(1)

    try:
        saved = asyncio.run(
            _save_report(config, site_id, level, content, report_id, user_id)
        )
    except ReportSubmissionError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    click.echo(f"Report {saved.id} saved: {saved.crowd_level.value}")


async def _fetch_site_details(
    config: AppConfig, site_id: str
) -> tuple[Site | None, WeatherData | None]:
    catalog = SiteCatalogClient(config.catalog_url, config.catalog_api_key)
    found = await catalog.get_site(site_id)
    if found is None or not config.weather_api_key:
        return found, None
    weather = await WeatherClient(config.weather_api_key).get_weather(found.location)
    return found, weather


@cli.command()
@click.argument("site_id")
@click.pass_context
def site(ctx: click.Context, site_id: str) -> None:
    """Show SITE_ID with its crowd level and, if configured, the current weather."""
    config = _load_config(ctx)
    if not config.catalog_url:
        click.echo("CATALOG_URL environment variable is required", err=True)
        ctx.exit(1)

    found, weather = asyncio.run(_fetch_site_details(config, site_id))
    if found is None:
        click.echo(f"Site {site_id} not found.", err=True)
        ctx.exit(1)

    click.echo(f"{found.name} [{found.crowd_level.value}]")
    if found.description:
        click.echo(f"  {found.description}")
    click.echo(f"  {format_location(found.location)}")
    if weather is not None:
        click.echo(
            f"  Weather: {weather.temperature}°C, {weather.condition}, "
            f"humidity {weather.humidity}%, wind {weather.wind_speed} km/h"
        )


@cli.command()
@click.argument("site_id")
@click.pass_context
def reports(ctx: click.Context, site_id: str) -> None:
    """List the crowd reports of SITE_ID, newest first."""
    config = _load_config(ctx)
    if not config.catalog_url:
        click.echo("CATALOG_URL environment variable is required", err=True)
        ctx.exit(1)

    catalog = SiteCatalogClient(config.catalog_url, config.catalog_api_key)
    site_reports = asyncio.run(catalog.fetch_reports(site_id))
    if not site_reports:
        click.echo("No reports yet.")
        return
    for site_report in site_reports:
        line = f"  {site_report.created_at or '-'} [{site_report.crowd_level.value}]"
        if site_report.content:
            line += f" {site_report.content}"
        click.echo(line)


def main() -> None:
    """Main entry point for the CLI."""
    cli()
