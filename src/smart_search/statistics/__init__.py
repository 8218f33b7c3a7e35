"""Population statistics aggregation."""

from .aggregator import StatisticsAggregator

__all__ = ["StatisticsAggregator"]
