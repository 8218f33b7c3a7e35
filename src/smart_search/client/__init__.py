"""Client-side statistics loading, caching and confidence estimation."""

from .api_client import SearchApiClient
from .cache import CachedStatistics, StatisticsCache, age_text
from .estimator import ConfidenceEstimator, confidence_level, confidence_text
from .loader import StatisticsLoader, StatisticsLoadResult

__all__ = [
    "SearchApiClient",
    "CachedStatistics",
    "StatisticsCache",
    "age_text",
    "ConfidenceEstimator",
    "confidence_level",
    "confidence_text",
    "StatisticsLoader",
    "StatisticsLoadResult",
]
