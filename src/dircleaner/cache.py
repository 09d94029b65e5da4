"""Time-bounded, file-backed cache of directory size measurements."""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from pydantic import ValidationError

from dircleaner.config import MAX_CACHE_AGE, TARGET_DIR_TO_REMOVE
from dircleaner.errors import InvalidKeyError, LoadFailure, PersistFailure
from dircleaner.models import CacheEntry, SizeInfo

if TYPE_CHECKING:
    from dircleaner.config import CleanerConfig

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocalCache:
    """Mapping of absolute directory path to its last measured size."""

    def __init__(
        self,
        cache_path: Path,
        working_dir: Path,
        target_dir: str = TARGET_DIR_TO_REMOVE,
        *,
        max_cache_age: float = MAX_CACHE_AGE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Create an empty cache. Nothing is read until load() is called.

        Args:
            cache_path: JSON file backing the cache.
            working_dir: Directory that relative keys are resolved against.
            target_dir: Target directory name, part of the key context.

        Keyword Args:
            max_cache_age: Seconds an entry stays valid. Defaults to 300.
            clock: Returns the current time as an aware datetime.
        """
        self.cache_path = Path(cache_path)
        self.working_dir = Path(working_dir)
        self.target_dir = target_dir
        self.max_cache_age = timedelta(seconds=max_cache_age)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._dirty = False

    @classmethod
    def from_config(cls, config: CleanerConfig, **kwargs) -> LocalCache:
        """Build a cache for the given configuration."""
        return cls(
            config.cache_path,
            config.working_dir,
            config.target_dir,
            max_cache_age=config.max_cache_age,
            **kwargs,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def dirty(self) -> bool:
        """True when entries changed since the last successful save."""
        return self._dirty

    def get_key(self, key: str) -> str:
        """Resolve a logical key to the absolute path it is stored under."""
        if not key or not isinstance(key, str) or "\x00" in key:
            raise InvalidKeyError(f"Invalid cache key: {key!r}")
        return str(Path(self.working_dir, self.target_dir, key).resolve())

    def _is_fresh(self, entry: CacheEntry, now: datetime) -> bool:
        saved = entry.saved
        if saved.tzinfo is None:
            saved = saved.replace(tzinfo=timezone.utc)
        return now - saved < self.max_cache_age

    def get(self, key: str) -> SizeInfo | None:
        """Return the stored size for key, or None if missing or stale."""
        resolved = self.get_key(key)
        with self._lock:
            entry = self._entries.get(resolved)
        if entry is None or not self._is_fresh(entry, self._clock()):
            return None
        return entry.value

    def set(self, key: str, value: SizeInfo) -> None:
        """Store value under key, stamped with the current time."""
        resolved = self.get_key(key)
        entry = CacheEntry(key=resolved, saved=self._clock(), value=value)
        with self._lock:
            self._entries[resolved] = entry
            self._dirty = True

    def remove(self, key: str) -> bool:
        """Drop the entry for key. Returns False if there was none."""
        resolved = self.get_key(key)
        with self._lock:
            removed = self._entries.pop(resolved, None) is not None
            if removed:
                self._dirty = True
        return removed

    def has(self, key: str) -> bool:
        """Whether an entry is present, fresh or not."""
        resolved = self.get_key(key)
        with self._lock:
            return resolved in self._entries

    def clear(self) -> None:
        """Drop every entry in memory. The file is untouched until save()."""
        with self._lock:
            self._entries.clear()
            self._dirty = True

    def cleanup_expired_entries(self) -> int:
        """Remove entries that are no longer fresh and return how many."""
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if not self._is_fresh(entry, now)
            ]
            for key in expired:
                del self._entries[key]
            if expired:
                self._dirty = True
        logger.debug("Removed %s expired cache entries", len(expired))
        return len(expired)

    def load(
        self,
        working_dir: Path | None = None,
        target_dir: str | None = None,
        cache_path: Path | None = None,
        *,
        strict: bool = False,
    ) -> None:
        """
        Re-derive the key context and read the backing file.

        A missing file leaves the cache empty. An unreadable or corrupt file is
        logged and leaves the cache empty, unless strict is set, in which case
        LoadFailure is raised. Malformed entries are skipped individually.
        """
        if working_dir is not None:
            self.working_dir = Path(working_dir)
        if target_dir is not None:
            self.target_dir = target_dir
        if cache_path is not None:
            self.cache_path = Path(cache_path)

        with self._lock:
            self._entries = {}
            self._dirty = False

        if not self.cache_path.exists():
            logger.debug("No cache file at %s", self.cache_path)
            return

        try:
            with open(self.cache_path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            if strict:
                raise LoadFailure(f"Could not read cache {self.cache_path}: {e}") from e
            logger.warning("Ignoring unreadable cache file %s: %s", self.cache_path, e)
            return

        if not isinstance(data, dict):
            if strict:
                raise LoadFailure(f"Cache {self.cache_path} is not a JSON object")
            logger.warning("Ignoring cache file %s: not a JSON object", self.cache_path)
            return

        entries = {}
        for key, raw in data.items():
            if not isinstance(raw, dict):
                logger.warning("Skipping malformed cache entry %s", key)
                continue
            try:
                entries[key] = CacheEntry.model_validate({**raw, "key": key})
            except ValidationError as e:
                logger.warning("Skipping malformed cache entry %s: %s", key, e)

        with self._lock:
            self._entries = entries
        logger.debug("Loaded %s cache entries from %s", len(entries), self.cache_path)

    def save(self, *, strict: bool = False) -> bool:
        """
        Write the whole table to the backing file.

        Returns True on success. Failures are logged and return False, or raise
        PersistFailure when strict is set. Only one write runs at a time.
        """
        with self._save_lock:
            with self._lock:
                snapshot = {
                    key: entry.model_dump(mode="json", by_alias=True)
                    for key, entry in self._entries.items()
                }
                self._dirty = False
            try:
                self.cache_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.cache_path, "w") as f:
                    json.dump(snapshot, f, indent=2)
            except OSError as e:
                with self._lock:
                    self._dirty = True
                if strict:
                    raise PersistFailure(f"Could not write cache {self.cache_path}: {e}") from e
                logger.error("Error saving cache to %s: %s", self.cache_path, e)
                return False

        logger.debug("Saved %s cache entries to %s", len(snapshot), self.cache_path)
        return True
