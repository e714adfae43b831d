"""Single-slot digest cache for the consumer.

The cache holds exactly one entry: the last successfully fetched digest and
the time it was fetched. Entries are only ever replaced as a whole, never
deleted; an expired entry remains available as a stale fallback.

Freshness is a pure function of (entry, now, ttl) so it can be tested with
fixed clocks.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Protocol

from models.digest import parse_timestamp
from storage import write_json_atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached digest.

    Attributes:
        payload: The fetched digest document, verbatim
        fetched_at: When the digest was fetched (UTC-aware)
    """

    payload: dict[str, Any]
    fetched_at: datetime

    def age(self, now: datetime) -> timedelta:
        return now - self.fetched_at

    def to_dict(self) -> dict[str, Any]:
        return {"payload": self.payload, "fetchedAt": self.fetched_at.isoformat()}

    @classmethod
    def from_dict(cls, data: Any) -> "CacheEntry | None":
        """Rebuild an entry from its serialized form, or None if malformed."""
        if not isinstance(data, dict) or not isinstance(data.get("payload"), dict):
            return None
        fetched_at = parse_timestamp(str(data.get("fetchedAt") or ""))
        if fetched_at is None or fetched_at.tzinfo is None:
            return None
        return cls(payload=data["payload"], fetched_at=fetched_at)


def is_fresh(entry: CacheEntry | None, now: datetime, ttl: timedelta) -> bool:
    """True if entry exists and is younger than ttl."""
    if entry is None:
        return False
    return entry.age(now) < ttl


class DigestCache(Protocol):
    """Storage for the consumer's single cache slot."""

    def get(self) -> CacheEntry | None: ...

    def put(self, entry: CacheEntry) -> None: ...


class MemoryCache:
    """In-process cache slot."""

    def __init__(self, entry: CacheEntry | None = None):
        self._entry = entry

    def get(self) -> CacheEntry | None:
        return self._entry

    def put(self, entry: CacheEntry) -> None:
        self._entry = entry


class FileCache:
    """Cache slot persisted as a JSON file.

    The file is replaced atomically on every put. A missing or corrupt
    file reads as an empty slot.
    """

    def __init__(self, path: Path):
        self.path = path

    def get(self) -> CacheEntry | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Cache unreadable, ignoring | path=%s error=%s", self.path, e)
            return None
        entry = CacheEntry.from_dict(data)
        if entry is None:
            logger.warning("Cache malformed, ignoring | path=%s", self.path)
        return entry

    def put(self, entry: CacheEntry) -> None:
        write_json_atomic(self.path, entry.to_dict())
        logger.debug("Cache updated | path=%s fetched_at=%s", self.path, entry.fetched_at.isoformat())
