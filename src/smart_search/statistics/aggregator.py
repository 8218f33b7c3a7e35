"""Population statistics aggregator with an in-memory TTL cache.

Statistics feed client-side confidence estimation: total record count,
per-region counts, name frequency tables, average group size and filter
effectiveness factors.

One aggregator instance holds one cached snapshot. Refreshes run under a
lock and publish a fully built snapshot or nothing at all.
"""
from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from smart_search.config import CONFIG, SearchConfig
from smart_search.exceptions import StatisticsUnavailableError
from smart_search.models.statistics import (
    DEFAULT_AVERAGE_GROUP_SIZE,
    DEFAULT_FIRSTNAME_FREQUENCY,
    DEFAULT_KEY,
    DEFAULT_REGION_FACTOR,
    DEFAULT_SURNAME_FREQUENCY,
    FACTOR_GROUP,
    FACTOR_ORGANIZATION,
    FACTOR_PARTIAL_IDENTIFIER,
    FACTOR_PARTIAL_PHONE,
    FACTOR_REGION,
    FACTOR_SUBREGION,
    GROUP_FACTOR,
    ORGANIZATION_FACTOR,
    PARTIAL_IDENTIFIER_FACTOR,
    PARTIAL_PHONE_FACTOR,
    SUBREGION_FACTOR,
    Statistics,
    StatisticsSnapshot,
)

if TYPE_CHECKING:
    from smart_search.sources.base import RecordSource

logger = structlog.get_logger(__name__)


def _round_half_up(value: float, places: int = 0) -> float:
    scale = 10 ** places
    return math.floor(value * scale + 0.5) / scale


class StatisticsAggregator:
    """Computes and caches population statistics from a record source.

    Refresh triggers:
    - no snapshot yet
    - snapshot older than the TTL
    - explicit ``force_refresh``

    On failure the last good snapshot keeps being served; with no prior
    snapshot the fixed default statistics are served instead.
    """

    def __init__(
        self,
        source: RecordSource,
        config: SearchConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.source = source
        self.config = config or CONFIG
        self._clock = clock
        self._lock = threading.RLock()
        self._snapshot: Statistics | None = None
        self._computed_at: float | None = None

    # =========================================
    # Public API
    # =========================================

    def get_statistics(self, force_refresh: bool = False) -> StatisticsSnapshot:
        """Current statistics plus cache age and staleness."""
        with self._lock:
            if force_refresh:
                statistics = self.refresh()
            else:
                statistics = self.current()
            return StatisticsSnapshot(
                statistics=statistics,
                cache_age_ms=self.cache_age_ms(),
                is_stale=self.is_stale(),
            )

    def current(self) -> Statistics:
        """Cached statistics, refreshed first when missing or stale."""
        with self._lock:
            if self._snapshot is None or self.is_stale():
                logger.info("statistics.cache_miss", stale=self._snapshot is not None)
                return self.refresh()
            return self._snapshot

    def refresh(self) -> Statistics:
        """Recompute statistics, bypassing the cache."""
        with self._lock:
            start = time.perf_counter()
            try:
                statistics = self.compute()
            except StatisticsUnavailableError as e:
                logger.error("statistics.refresh_failed", error=str(e), has_previous=self._snapshot is not None)
                if self._snapshot is None:
                    # Served but not timestamped, so the next read retries
                    self._snapshot = Statistics.default()
                return self._snapshot

            self._snapshot = statistics
            self._computed_at = self._clock()
            logger.info(
                "statistics.refreshed",
                total_records=statistics.total_records,
                regions=len(statistics.region_counts),
                elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return statistics

    def is_stale(self) -> bool:
        if self._computed_at is None:
            return True
        return (self._clock() - self._computed_at) > self.config.statistics_ttl_seconds

    def cache_age_ms(self) -> int:
        """Age of the cached snapshot in ms, or -1 if never computed."""
        if self._computed_at is None:
            return -1
        return int((self._clock() - self._computed_at) * 1000)

    # =========================================
    # Computation
    # =========================================

    def compute(self) -> Statistics:
        """Build a fresh snapshot from the record source.

        Everything is accumulated locally and only assembled into a
        Statistics object once every step has succeeded.

        Raises:
            StatisticsUnavailableError: Any step failed
        """
        try:
            total = self.source.count()
            if total == 0:
                logger.warning("statistics.empty_registry")
                return Statistics.default()

            region_counts = {v.name: v.count for v in self.source.count_by("region_code")}
            surname_frequency = self._name_frequency("last_name", total, DEFAULT_SURNAME_FREQUENCY)
            firstname_frequency = self._name_frequency(
                "first_name", total, DEFAULT_FIRSTNAME_FREQUENCY
            )
            average_group_size = self._average_group_size()
            factors = self._effectiveness_factors(total, region_counts)
        except StatisticsUnavailableError:
            raise
        except Exception as e:
            raise StatisticsUnavailableError(f"Statistics computation failed: {e}") from e

        return Statistics(
            total_records=total,
            region_counts=region_counts,
            surname_frequency=surname_frequency,
            firstname_frequency=firstname_frequency,
            average_group_size=average_group_size,
            effectiveness_factors=factors,
        )

    def _name_frequency(self, field_name: str, total: int, default: float) -> dict[str, float]:
        """Top-N lower-cased names as count/total, 4 decimals, plus ``_default``."""
        frequencies: dict[str, float] = {}
        for value in self.source.count_by(
            field_name, lowercase=True, order_by="count", limit=self.config.top_name_count
        ):
            frequencies[value.name] = _round_half_up(value.count / total, 4)
        frequencies[DEFAULT_KEY] = default
        return frequencies

    def _average_group_size(self) -> int:
        sizes = [v.count for v in self.source.count_by("group_name")]
        if not sizes:
            return DEFAULT_AVERAGE_GROUP_SIZE
        return int(_round_half_up(sum(sizes) / len(sizes)))

    def _effectiveness_factors(self, total: int, region_counts: dict[str, int]) -> dict[str, float]:
        """How much each filter type typically narrows a result set.

        Only the region factor is computed; the rest are tuned constants.
        """
        if region_counts:
            average_region = sum(region_counts.values()) // len(region_counts)
            region_factor = _round_half_up(1.0 - average_region / max(total, 1), 2)
        else:
            region_factor = DEFAULT_REGION_FACTOR

        return {
            FACTOR_GROUP: GROUP_FACTOR,
            FACTOR_REGION: region_factor,
            FACTOR_PARTIAL_IDENTIFIER: PARTIAL_IDENTIFIER_FACTOR,
            FACTOR_PARTIAL_PHONE: PARTIAL_PHONE_FACTOR,
            FACTOR_SUBREGION: SUBREGION_FACTOR,
            FACTOR_ORGANIZATION: ORGANIZATION_FACTOR,
        }
