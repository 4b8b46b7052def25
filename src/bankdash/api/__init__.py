"""Aggregation API port and its implementations."""

from .base import AggregationApi
from .client import PowensClient
from .mock import MockAggregationApi

__all__ = ["AggregationApi", "MockAggregationApi", "PowensClient"]
