"""Connector metadata caching."""

from .metadata_cache import (
    DEFAULT_TTL,
    ConnectorInfo,
    MetadataCache,
    describe_connector,
    fallback_connector_name,
)
from .store import CacheStore, InMemoryCacheStore, JsonFileCacheStore

__all__ = [
    "DEFAULT_TTL",
    "CacheStore",
    "ConnectorInfo",
    "InMemoryCacheStore",
    "JsonFileCacheStore",
    "MetadataCache",
    "describe_connector",
    "fallback_connector_name",
]
