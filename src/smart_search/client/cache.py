"""Persisted statistics cache for offline confidence estimation."""
from __future__ import annotations

import json
import os
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import structlog
from pydantic import ValidationError

from smart_search.models.statistics import Statistics

logger = structlog.get_logger(__name__)

DEFAULT_TTL_HOURS = 24.0
MS_PER_HOUR = 60 * 60 * 1000


@dataclass
class CachedStatistics:
    """Statistics loaded from disk with their age."""
    statistics: Statistics
    timestamp_ms: int
    age_ms: int
    is_stale: bool


def age_text(age_ms: int) -> str:
    """Human-readable age, e.g. "2 hours ago"."""
    minutes = age_ms // 60_000
    hours = age_ms // 3_600_000
    days = hours // 24
    if days > 0:
        return "1 day ago" if days == 1 else f"{days} days ago"
    if hours > 0:
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    if minutes > 0:
        return "1 minute ago" if minutes == 1 else f"{minutes} minutes ago"
    return "just now"


class StatisticsCache:
    """File-backed statistics cache with its own TTL.

    Stale entries stay on disk; callers decide whether stale data is
    acceptable (it is when offline or when the network fetch failed).
    """

    def __init__(
        self,
        path: Path | str,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path)
        self.ttl_hours = ttl_hours
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _write(self, payload: dict) -> None:
        """Replace the cache file through a fsynced temp file in the same directory."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=self.path.name + ".", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def save(self, statistics: Statistics, ttl_hours: float | None = None) -> bool:
        """Persist statistics; returns False if the write failed."""
        payload = {
            "data": statistics.to_wire(),
            "timestamp": self._now_ms(),
            "ttl_hours": ttl_hours or self.ttl_hours,
        }
        try:
            self._write(payload)
        except OSError as e:
            logger.warning("statistics_cache.save_failed", path=str(self.path), error=str(e))
            return False
        logger.debug("statistics_cache.saved", path=str(self.path))
        return True

    def _read(self) -> dict | None:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("statistics_cache.read_failed", path=str(self.path), error=str(e))
            return None
        return payload if isinstance(payload, dict) else None

    def _ttl_ms(self, payload: dict) -> float:
        return float(payload.get("ttl_hours") or DEFAULT_TTL_HOURS) * MS_PER_HOUR

    def load(self, allow_stale: bool = False) -> CachedStatistics | None:
        """Load cached statistics.

        Args:
            allow_stale: Return entries older than their TTL as well

        Returns:
            CachedStatistics, or None when missing, unreadable or expired
        """
        payload = self._read()
        if payload is None:
            return None
        try:
            timestamp = int(payload["timestamp"])
            ttl_ms = self._ttl_ms(payload)
            statistics = Statistics.from_wire(payload["data"])
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.warning("statistics_cache.corrupt", path=str(self.path), error=str(e))
            return None

        age = self._now_ms() - timestamp
        stale = age > ttl_ms
        if stale and not allow_stale:
            logger.info("statistics_cache.expired", age_hours=round(age / MS_PER_HOUR))
            return None

        return CachedStatistics(
            statistics=statistics,
            timestamp_ms=timestamp,
            age_ms=age,
            is_stale=stale,
        )

    def has_cached(self) -> bool:
        return self.path.exists()

    def is_stale(self) -> bool:
        """True when nothing usable is cached or the entry is past its TTL."""
        payload = self._read()
        if payload is None:
            return True
        try:
            return self._now_ms() - int(payload["timestamp"]) > self._ttl_ms(payload)
        except (KeyError, TypeError, ValueError):
            return True

    def clear(self) -> bool:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("statistics_cache.clear_failed", path=str(self.path), error=str(e))
            return False
        return True
