"""Shared setup for CLI commands."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import typer

from ..bootstrap import create_orchestrator
from ..config import BankDashSettings, get_settings
from ..errors import AggregationApiError
from ..sync import SyncOrchestrator

logger = logging.getLogger(__name__)


def load_settings() -> BankDashSettings:
    """Settings for the active profile, exiting with code 1 when invalid."""
    try:
        return get_settings()
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e


@contextmanager
def orchestrator_session(load: bool = True) -> Iterator[SyncOrchestrator]:
    """Yield an orchestrator, optionally with connections already loaded."""
    settings = load_settings()
    with create_orchestrator(settings) as orchestrator:
        if load:
            try:
                orchestrator.refresh()
            except AggregationApiError as e:
                logger.error(f"❌ Failed to load connections: {e}")
                raise typer.Exit(1) from e
        yield orchestrator
