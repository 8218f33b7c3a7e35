"""Tests for the statistics aggregator and its snapshot cache."""

import threading
import time
from unittest.mock import patch

import pytest

from smart_search.exceptions import RecordSourceError
from smart_search.models.statistics import (
    DEFAULT_FACTORS,
    SEED_SURNAME_FREQUENCY,
    Statistics,
)
from smart_search.statistics import StatisticsAggregator


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestCompute:
    """Statistics derived from the seeded index."""

    def test_totals_and_regions(self, source):
        stats = StatisticsAggregator(source).compute()
        assert stats.total_records == 5
        assert stats.region_counts == {"BER": 2, "MSU": 2, "LRB": 1}
        assert stats.version == "1.0"

    def test_name_frequencies_lowercased(self, source):
        stats = StatisticsAggregator(source).compute()
        assert stats.surname_frequency["mohapi"] == 0.4
        assert stats.surname_frequency["sello"] == 0.2
        assert stats.surname_frequency["_default"] == 0.0002
        assert stats.firstname_frequency["mamosa"] == 0.4
        assert stats.firstname_frequency["_default"] == 0.0003

    def test_average_group_size_rounds_half_up(self, source):
        # Groups of 2, 2 and 1
        assert StatisticsAggregator(source).compute().average_group_size == 2

    def test_effectiveness_factors(self, source):
        factors = StatisticsAggregator(source).compute().effectiveness_factors
        # Average region holds 5 // 3 == 1 of 5 records
        assert factors["region"] == 0.8
        assert factors["group"] == 0.85
        assert factors["partial_identifier"] == 0.92
        assert factors["partial_phone"] == 0.90
        assert factors["subregion"] == 0.55
        assert factors["organization"] == 0.45

    def test_top_name_count_limits_table(self, source):
        from smart_search.config import SearchConfig

        stats = StatisticsAggregator(source, SearchConfig(top_name_count=1)).compute()
        assert set(stats.surname_frequency) == {"mohapi", "_default"}

    def test_empty_registry_returns_defaults(self, empty_source):
        stats = StatisticsAggregator(empty_source).compute()
        assert stats.total_records == 0
        assert stats.region_counts == {}
        assert stats.surname_frequency == SEED_SURNAME_FREQUENCY
        assert stats.firstname_frequency["thabo"] == 0.025
        assert stats.average_group_size == 100
        assert stats.effectiveness_factors == DEFAULT_FACTORS


class TestCaching:
    """TTL cache, forced refresh and failure fallback."""

    def test_second_read_served_from_cache(self, source, clock):
        aggregator = StatisticsAggregator(source, clock=clock)
        with patch.object(source, "count", wraps=source.count) as count:
            first = aggregator.current()
            second = aggregator.current()
        assert first is second
        assert count.call_count == 1

    def test_snapshot_metadata(self, source, clock):
        aggregator = StatisticsAggregator(source, clock=clock)
        assert aggregator.cache_age_ms() == -1
        assert aggregator.is_stale()

        snapshot = aggregator.get_statistics()
        assert snapshot.cache_age_ms == 0
        assert not snapshot.is_stale

        clock.advance(90)
        assert aggregator.get_statistics().cache_age_ms == 90_000

    def test_stale_snapshot_recomputed(self, source, clock):
        aggregator = StatisticsAggregator(source, clock=clock)
        first = aggregator.current()
        clock.advance(24 * 60 * 60 + 1)
        assert aggregator.is_stale()
        second = aggregator.current()
        assert second is not first
        assert aggregator.cache_age_ms() == 0

    def test_force_refresh(self, source, clock):
        aggregator = StatisticsAggregator(source, clock=clock)
        aggregator.current()
        source.upsert_many([{"id": "6", "first_name": "Palesa", "last_name": "Letsie", "region_code": "BER"}])

        assert aggregator.current().total_records == 5
        snapshot = aggregator.get_statistics(force_refresh=True)
        assert snapshot.statistics.total_records == 6
        assert snapshot.statistics.region_counts["BER"] == 3

    def test_failure_keeps_last_good_snapshot(self, source, clock):
        aggregator = StatisticsAggregator(source, clock=clock)
        good = aggregator.current()

        with patch.object(source, "count", side_effect=RecordSourceError("gone")):
            served = aggregator.refresh()

        assert served is good
        assert served.total_records == 5

    def test_failure_without_snapshot_serves_defaults(self, source, clock):
        aggregator = StatisticsAggregator(source, clock=clock)

        with patch.object(source, "count_by", side_effect=RecordSourceError("gone")):
            snapshot = aggregator.get_statistics()

        assert snapshot.statistics.total_records == 0
        assert snapshot.statistics.effectiveness_factors == DEFAULT_FACTORS
        assert snapshot.cache_age_ms == -1
        assert snapshot.is_stale

        # Next read retries and succeeds
        assert aggregator.current().total_records == 5


class TestWireFormat:
    """Statistics serialization."""

    def test_round_trip(self, source):
        stats = StatisticsAggregator(source).compute()
        payload = stats.to_wire()

        assert payload["totalRecords"] == 5
        assert payload["regionCounts"] == {"BER": 2, "MSU": 2, "LRB": 1}
        assert "generatedAt" in payload
        assert "effectivenessFactors" in payload
        assert Statistics.from_wire(payload).to_wire() == payload

    def test_snapshot_envelope(self, source, clock):
        payload = StatisticsAggregator(source, clock=clock).get_statistics().to_wire()
        assert payload["success"] is True
        assert payload["cacheAgeMs"] == 0
        assert payload["isStale"] is False
        assert payload["statistics"]["version"] == "1.0"

    def test_factor_falls_back_to_default(self):
        stats = Statistics(effectiveness_factors={"group": 0})
        assert stats.factor("group") == 0.85
        assert stats.factor("subregion") == 0.55


class TestConcurrency:
    """Refreshes from many threads publish whole snapshots only."""

    def test_concurrent_refresh_and_reads(self, source, clock):
        aggregator = StatisticsAggregator(source, clock=clock)
        original = source.count_by
        active = []
        overlap = []
        guard = threading.Lock()

        def slow_count_by(*args, **kwargs):
            with guard:
                active.append(1)
                overlap.append(len(active))
            try:
                time.sleep(0.005)
                return original(*args, **kwargs)
            finally:
                with guard:
                    active.pop()

        seen = []
        errors = []

        def worker(index):
            try:
                if index % 2:
                    seen.append(aggregator.get_statistics(force_refresh=True).statistics)
                else:
                    seen.append(aggregator.current())
            except Exception as e:
                errors.append(e)

        with patch.object(source, "count_by", side_effect=slow_count_by):
            threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert errors == []
        assert len(seen) == 8
        assert max(overlap) == 1
        for stats in seen:
            assert stats.total_records == 5
            assert stats.region_counts == {"BER": 2, "MSU": 2, "LRB": 1}
            assert stats.surname_frequency["mohapi"] == 0.4
            assert stats.average_group_size == 2
            assert set(stats.effectiveness_factors) == set(DEFAULT_FACTORS)

    def test_failed_refresh_never_replaces_snapshot_mid_read(self, source, clock):
        aggregator = StatisticsAggregator(source, clock=clock)
        good = aggregator.current()
        calls = {"n": 0}
        original = source.count_by

        def fail_late(*args, **kwargs):
            calls["n"] += 1
            # Region counts succeed, the name tables fail
            if calls["n"] > 1:
                raise RecordSourceError("gone")
            return original(*args, **kwargs)

        with patch.object(source, "count_by", side_effect=fail_late):
            served = aggregator.get_statistics(force_refresh=True).statistics

        assert served is good
        assert aggregator.current() is good
