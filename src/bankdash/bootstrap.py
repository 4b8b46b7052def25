"""Wiring of the API, connector cache and orchestrator from settings."""

import logging
from datetime import timedelta

from .api import AggregationApi, MockAggregationApi, PowensClient
from .cache import JsonFileCacheStore, MetadataCache
from .config import BankDashSettings, get_settings
from .sync import SyncOrchestrator

logger = logging.getLogger(__name__)


def create_api(settings: BankDashSettings) -> AggregationApi:
    """Build the API client for the configured mode."""
    if settings.api.mode == "mock":
        logger.debug("Using mock aggregation API")
        return MockAggregationApi()

    logger.debug(f"Using aggregation API at {settings.api.url}")
    return PowensClient(
        api_url=settings.api.url,
        user_id=settings.api.user_id,
        bearer_token=settings.api.bearer_token,
        timeout=settings.api.timeout_seconds,
    )


def create_metadata_cache(
    settings: BankDashSettings, api: AggregationApi
) -> MetadataCache:
    return MetadataCache(
        fetch_catalog=api.fetch_connector_catalog,
        store=JsonFileCacheStore(settings.cache.path),
        ttl=timedelta(hours=settings.cache.ttl_hours),
    )


def create_orchestrator(settings: BankDashSettings | None = None) -> SyncOrchestrator:
    """Build a ready-to-use orchestrator for the current profile.

    Args:
        settings: Settings to use. Defaults to the current profile's settings.

    Returns:
        SyncOrchestrator: Orchestrator with an empty snapshot; call ``refresh``
        to load connections.
    """
    if settings is None:
        settings = get_settings()

    api = create_api(settings)
    return SyncOrchestrator(
        api=api,
        metadata_cache=create_metadata_cache(settings, api),
        sync_timeout=settings.sync.timeout_seconds,
        max_workers=settings.sync.max_workers,
    )
