"""
response_analyzer.cache - Persistent TTL cache for LLM completions.

Entries are keyed by a request fingerprint (model, system prompt, max tokens,
prompt) and stored one JSON file per entry, named by the SHA-256 of the
fingerprint. Expiry is checked lazily on read.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import BaseModel

from response_analyzer.exceptions import CacheIOError
from response_analyzer.io import read_json, write_json

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)


class CacheEntry(BaseModel):
    """A cached completion."""

    key: str
    value: str
    created_at: datetime
    expires_at: datetime


@dataclass
class CacheStats:
    """Counters for cache activity in this process."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    expired: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


def make_fingerprint(model: str, system_prompt: str, max_tokens: int, prompt: str) -> str:
    """Deterministic fingerprint for a completion request.

    The inputs are serialized as a JSON array so that field boundaries
    cannot collide, then hashed.
    """
    payload = json.dumps([model, system_prompt, max_tokens, prompt], ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def hash_key(key: str) -> str:
    """File-safe name for a cache key."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


class CompletionCache:
    """Thread-safe completion cache with optional on-disk persistence."""

    def __init__(
        self,
        cache_dir: Path | str = ".cache",
        ttl: timedelta = DEFAULT_TTL,
        persisted: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self.persisted = persisted
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.stats = CacheStats()

        if self.persisted:
            try:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(
                    "Cannot use cache directory %s, caching in memory only: %s",
                    self.cache_dir,
                    e,
                )
                self.persisted = False
            else:
                self._load_entries()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _entry_path(self, hashed_key: str) -> Path:
        return self.cache_dir / f"{hashed_key}.json"

    def get(self, key: str) -> tuple[str, bool]:
        """Look up a cached value.

        Args:
            key: Request fingerprint

        Returns:
            (value, found). Expired entries are reported as not found.
        """
        hashed = hash_key(key)
        with self._lock:
            entry = self._entries.get(hashed)
            if entry is None:
                self.stats.misses += 1
                return "", False

            if self._clock() > entry.expires_at:
                del self._entries[hashed]
                self.stats.expired += 1
                self.stats.misses += 1
                expired = True
            else:
                self.stats.hits += 1
                expired = False

        if expired:
            logger.debug("Cache entry expired: %s", hashed[:12])
            if self.persisted:
                threading.Thread(
                    target=self._remove_file,
                    args=(self._entry_path(hashed),),
                    daemon=True,
                ).start()
            return "", False

        logger.debug("Cache hit: %s", hashed[:12])
        return entry.value, True

    def set(self, key: str, value: str) -> None:
        """Store a value, resetting its expiry from now.

        The in-memory entry is always stored. If persistence fails the
        error is raised afterwards so the caller can report it.

        Raises:
            CacheIOError: If the entry could not be written to disk
        """
        hashed = hash_key(key)
        now = self._clock()
        entry = CacheEntry(key=key, value=value, created_at=now, expires_at=now + self.ttl)

        with self._lock:
            self._entries[hashed] = entry
            self.stats.writes += 1

        if self.persisted:
            path = self._entry_path(hashed)
            try:
                write_json(path, entry.model_dump(mode="json"), indent=None)
            except (OSError, TypeError, ValueError) as e:
                raise CacheIOError(f"Failed to persist cache entry {path.name}: {e}") from e

        logger.debug("Cache set: %s", hashed[:12])

    def clear(self) -> None:
        """Remove all entries from memory and disk.

        Raises:
            CacheIOError: If the cache directory could not be listed
        """
        with self._lock:
            self._entries = {}

        if self.persisted and self.cache_dir.exists():
            try:
                files = list(self.cache_dir.glob("*.json"))
            except OSError as e:
                raise CacheIOError(f"Failed to list cache files: {e}") from e
            for path in files:
                self._remove_file(path)

        logger.info("Cache cleared")

    def _remove_file(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove cache file %s: %s", path, e)

    def _load_entries(self) -> None:
        """Load persisted entries, discarding expired or unreadable ones."""
        logger.debug("Loading cached entries from %s", self.cache_dir)
        now = self._clock()
        loaded: dict[str, CacheEntry] = {}

        for path in sorted(self.cache_dir.glob("*.json")):
            try:
                entry = CacheEntry.model_validate(read_json(path))
            except (OSError, ValueError) as e:
                logger.warning("Skipping unreadable cache file %s: %s", path.name, e)
                continue

            if now > entry.expires_at:
                logger.debug("Removing expired cache file %s", path.name)
                self._remove_file(path)
                continue

            loaded[hash_key(entry.key)] = entry

        with self._lock:
            self._entries.update(loaded)

        logger.info("Loaded %d cached entries", len(loaded))
