"""Statistics loading for the client: network first, persisted cache as fallback."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog

from smart_search.client.api_client import SearchApiClient
from smart_search.client.cache import StatisticsCache, age_text
from smart_search.client.estimator import ConfidenceEstimator
from smart_search.exceptions import StatisticsFetchError
from smart_search.models.statistics import Statistics

logger = structlog.get_logger(__name__)


@dataclass
class StatisticsLoadResult:
    """Outcome of one load attempt."""
    statistics: Statistics | None = None
    from_cache: bool = False
    is_stale: bool = False
    cache_age_ms: int | None = None
    error: str | None = None

    @property
    def loaded(self) -> bool:
        return self.statistics is not None

    def describe(self) -> str:
        if self.statistics is None:
            return f"Statistics unavailable: {self.error or 'unknown error'}"
        if not self.from_cache:
            return "Statistics loaded from server"
        age = age_text(self.cache_age_ms or 0)
        return f"Using cached statistics from {age}" + (" (stale)" if self.is_stale else "")


class StatisticsLoader:
    """Loads statistics into a ConfidenceEstimator once per session.

    Order:
    1. Offline: persisted cache, stale accepted
    2. Fresh persisted cache: no network call
    3. Network fetch, persisted on success
    4. Network failure: persisted cache, stale accepted
    """

    def __init__(
        self,
        api_client: SearchApiClient,
        cache: StatisticsCache,
        estimator: ConfidenceEstimator,
    ) -> None:
        self.api_client = api_client
        self.cache = cache
        self.estimator = estimator
        self._lock = asyncio.Lock()
        self._result: StatisticsLoadResult | None = None

    @property
    def loaded(self) -> bool:
        return self._result is not None and self._result.loaded

    async def load(self, online: bool = True, force: bool = False) -> StatisticsLoadResult:
        """Load statistics unless already loaded this session.

        Args:
            online: False skips the network entirely
            force: Ignore session state and the fresh persisted cache
        """
        async with self._lock:
            if self.loaded and not force:
                return self._result

            if not online:
                result = self._from_cache(allow_stale=True, error="Offline and no cached statistics")
            else:
                result = None if force else self._from_cache(allow_stale=False)
                if result is None or not result.loaded:
                    result = await self._from_network()

            self._result = result
            return result

    def _from_cache(self, allow_stale: bool, error: str | None = None) -> StatisticsLoadResult | None:
        cached = self.cache.load(allow_stale=allow_stale)
        if cached is None:
            return StatisticsLoadResult(error=error) if error else None
        self.estimator.set_statistics(
            cached.statistics, from_cache=True, cache_timestamp_ms=cached.timestamp_ms
        )
        logger.info("statistics_loader.cache_hit", stale=cached.is_stale, age_ms=cached.age_ms)
        return StatisticsLoadResult(
            statistics=cached.statistics,
            from_cache=True,
            is_stale=cached.is_stale,
            cache_age_ms=cached.age_ms,
        )

    async def _from_network(self) -> StatisticsLoadResult:
        try:
            statistics = await self.api_client.fetch_statistics()
        except StatisticsFetchError as e:
            logger.warning("statistics_loader.fetch_failed", error=str(e))
            fallback = self._from_cache(allow_stale=True)
            if fallback is not None:
                fallback.error = str(e)
                return fallback
            return StatisticsLoadResult(error=str(e))

        self.cache.save(statistics)
        self.estimator.set_statistics(statistics, from_cache=False)
        return StatisticsLoadResult(statistics=statistics)
