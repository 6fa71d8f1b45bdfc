"""Cache of the last fetched issue/PR collections, keyed by repository.

Freshness policy (defaults, configurable):

- younger than ``fresh_for`` (5 min): served as-is
- younger than ``usable_for`` (30 min): served, refresh scheduled in background
- older: refresh synchronously, entry kept as fallback

Entries are never deleted by age; only ``clear`` or a newer ``put`` replaces
them.

The coordinator calls these methods from executor threads. Each write
(including the read it depends on) holds ``_lock``, so two puts can not
interleave between the out-of-order check and the write. Storage
``OSError`` surfaces as ``CacheWriteFailed``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from .errors import CacheWriteFailed
from .models import CacheEntry, IssueRecord
from .storage import KeyedStorage

logger = logging.getLogger(__name__)

DEFAULT_FRESH_FOR = timedelta(minutes=5)
DEFAULT_USABLE_FOR = timedelta(minutes=30)


class Freshness(str, Enum):
    ABSENT = "absent"
    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def repository_key(owner: str, repo: str) -> str:
    return f"githubIssues_{owner}_{repo}"


class CacheStore:
    def __init__(
        self,
        storage: KeyedStorage,
        *,
        fresh_for: timedelta = DEFAULT_FRESH_FOR,
        usable_for: timedelta = DEFAULT_USABLE_FOR,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if fresh_for > usable_for:
            raise ValueError("fresh_for must not exceed usable_for")
        self.storage = storage
        self.fresh_for = fresh_for
        self.usable_for = usable_for
        self._clock = clock
        self._lock = threading.RLock()

    def now(self) -> datetime:
        return self._clock()

    @contextmanager
    def _writing(self, key: str) -> Iterator[None]:
        with self._lock:
            try:
                yield
            except OSError as exc:
                raise CacheWriteFailed(f"could not write cache entry {key}: {exc}") from exc

    def get(self, key: str) -> CacheEntry | None:
        raw = self.storage.read(key)
        if raw is None:
            return None
        try:
            return CacheEntry.from_payload(key, raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Discarding malformed cache entry %s: %s", key, exc)
            return None

    def put(
        self,
        key: str,
        issues: Sequence[IssueRecord],
        pull_requests: Sequence[IssueRecord],
        fetched_at: datetime | None = None,
    ) -> bool:
        """Store a new entry unless the stored one is strictly newer.

        ``fetched_at`` should be the time the fetch *started*; a slow fetch
        that finishes after a faster, later one is then rejected instead of
        overwriting fresher data.
        """
        stamp = fetched_at or self.now()
        with self._writing(key):
            current = self.get(key)
            if current is not None and current.fetched_at > stamp:
                logger.info(
                    "Discarding out-of-order cache write for %s (%s older than stored %s)",
                    key,
                    stamp.isoformat(),
                    current.fetched_at.isoformat(),
                )
                return False
            entry = CacheEntry(
                repository_key=key,
                fetched_at=stamp,
                issues=list(issues),
                pull_requests=list(pull_requests),
            )
            self.storage.write(key, entry.to_payload())
        return True

    def replace(self, entry: CacheEntry) -> None:
        """Write back an in-place edit of an entry, keeping its timestamp."""
        with self._writing(entry.repository_key):
            self.storage.write(entry.repository_key, entry.to_payload())

    def patch_record(self, key: str, number: int | str, **fields: Any) -> bool:
        """Set ``fields`` on one cached record; False when it is not cached."""
        with self._writing(key):
            entry = self.get(key)
            record = entry.find(number) if entry is not None else None
            if entry is None or record is None:
                return False
            for name, value in fields.items():
                setattr(record, name, value)
            self.storage.write(key, entry.to_payload())
        return True

    def clear(self, key: str) -> None:
        with self._writing(key):
            self.storage.erase(key)

    def age(self, entry: CacheEntry, now: datetime | None = None) -> timedelta:
        return (now or self.now()) - entry.fetched_at

    def freshness(self, entry: CacheEntry | None, now: datetime | None = None) -> Freshness:
        if entry is None:
            return Freshness.ABSENT
        age = self.age(entry, now)
        if age < self.fresh_for:
            return Freshness.FRESH
        if age < self.usable_for:
            return Freshness.STALE
        return Freshness.EXPIRED


__all__ = [
    "CacheStore",
    "DEFAULT_FRESH_FOR",
    "DEFAULT_USABLE_FOR",
    "Freshness",
    "repository_key",
    "utcnow",
]
