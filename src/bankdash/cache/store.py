"""Persistence for the connector metadata cache.

A store holds exactly one ``CacheEntry`` and is only written by
``MetadataCache``.
"""

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from ..schemas import CacheEntry

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Single-key storage for the persisted connector catalog."""

    def load(self) -> CacheEntry | None:
        """Return the stored entry, or None if absent or unreadable."""

    def save(self, entry: CacheEntry) -> None:
        """Replace the stored entry."""

    def clear(self) -> None:
        """Remove the stored entry."""


class InMemoryCacheStore:
    """Process-local store, mostly for tests and short-lived sessions."""

    def __init__(self, entry: CacheEntry | None = None):
        self._entry = entry
        self._lock = threading.Lock()

    def load(self) -> CacheEntry | None:
        with self._lock:
            return self._entry

    def save(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entry = entry

    def clear(self) -> None:
        with self._lock:
            self._entry = None


class JsonFileCacheStore:
    """Stores the cache entry as a JSON document on disk.

    Writes go to a temporary file in the same directory which is then renamed
    over the target, so readers never see a partially written document.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> CacheEntry | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Could not read connector cache {self.path}: {e}")
            return None

        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding corrupt connector cache {self.path}: {e}")
            self.clear()
            return None

    def save(self, entry: CacheEntry) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(entry.model_dump_json())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
