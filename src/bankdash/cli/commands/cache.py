"""Connector metadata cache commands for BankDash CLI."""

import logging

import typer

from ...bootstrap import create_api, create_metadata_cache
from ...cache import JsonFileCacheStore
from ...errors import AggregationApiError
from ..session import load_settings

app = typer.Typer(help="Manage the connector metadata cache", no_args_is_help=True)
logger = logging.getLogger(__name__)


@app.command("show")
def show_cache() -> None:
    """Show what the persisted connector cache contains."""
    settings = load_settings()
    entry = JsonFileCacheStore(settings.cache.path).load()

    print("\n📦 Connector cache")
    print(f"   File: {settings.cache.path}")
    if entry is None:
        print("   Empty\n")
        return

    api = create_api(settings)
    cache = create_metadata_cache(settings, api)
    valid = cache.is_valid(entry, api.domain)
    print(f"   Domain:     {entry.domain}")
    print(f"   Fetched at: {entry.timestamp:%Y-%m-%d %H:%M:%S} UTC")
    print(f"   Connectors: {len(entry.data)}")
    print(f"   Valid:      {'yes' if valid else 'no (expired or other domain)'}")
    print()


@app.command("refresh")
def refresh_cache() -> None:
    """Fetch the connector catalog again, replacing the cache."""
    settings = load_settings()
    api = create_api(settings)
    cache = create_metadata_cache(settings, api)
    try:
        connectors = cache.force_refresh(api.domain)
    except AggregationApiError as e:
        logger.error(f"❌ Failed to refresh connector cache: {e}")
        raise typer.Exit(1) from e
    logger.info(f"✅ Cached {len(connectors)} connectors")


@app.command("clear")
def clear_cache() -> None:
    """Delete the persisted connector cache."""
    settings = load_settings()
    api = create_api(settings)
    create_metadata_cache(settings, api).clear()
    logger.info(f"✅ Cleared connector cache at {settings.cache.path}")
