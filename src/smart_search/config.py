from __future__ import annotations

import os
from dataclasses import dataclass

from smart_search.exceptions import ConfigurationError


def _f(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _i(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class SearchConfig:
    # Minimum lengths before a field counts toward validation/confidence
    identifier_min_length: int = 4
    phone_min_length: int = 8
    name_min_length: int = 2

    # Orchestrator caps
    max_raw_results: int = 50
    max_return_results: int = 20
    autocomplete_limit: int = 50
    subregion_autocomplete_limit: int = 100

    # Statistics
    statistics_ttl_seconds: int = 24 * 60 * 60
    top_name_count: int = 100
    client_cache_ttl_hours: float = 24.0

    # Client network timeouts (seconds)
    statistics_timeout: float = 10.0
    search_timeout: float = 30.0

    def __post_init__(self) -> None:
        for name in (
            "identifier_min_length",
            "phone_min_length",
            "name_min_length",
            "max_raw_results",
            "max_return_results",
            "autocomplete_limit",
            "subregion_autocomplete_limit",
            "statistics_ttl_seconds",
            "top_name_count",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if self.max_raw_results < self.max_return_results:
            raise ConfigurationError(
                "max_raw_results must be >= max_return_results "
                f"({self.max_raw_results} < {self.max_return_results})"
            )
        for name in ("client_cache_ttl_hours", "statistics_timeout", "search_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be > 0")

    @classmethod
    def from_env(cls) -> SearchConfig:
        """Build a config from SMART_SEARCH_* environment variables."""
        return cls(
            identifier_min_length=_i("SMART_SEARCH_IDENTIFIER_MIN_LENGTH", 4),
            phone_min_length=_i("SMART_SEARCH_PHONE_MIN_LENGTH", 8),
            name_min_length=_i("SMART_SEARCH_NAME_MIN_LENGTH", 2),
            max_raw_results=_i("SMART_SEARCH_MAX_RAW_RESULTS", 50),
            max_return_results=_i("SMART_SEARCH_MAX_RETURN_RESULTS", 20),
            autocomplete_limit=_i("SMART_SEARCH_AUTOCOMPLETE_LIMIT", 50),
            subregion_autocomplete_limit=_i("SMART_SEARCH_SUBREGION_AUTOCOMPLETE_LIMIT", 100),
            statistics_ttl_seconds=_i("SMART_SEARCH_STATISTICS_TTL_SECONDS", 24 * 60 * 60),
            top_name_count=_i("SMART_SEARCH_TOP_NAME_COUNT", 100),
            client_cache_ttl_hours=_f("SMART_SEARCH_CLIENT_CACHE_TTL_HOURS", 24.0),
            statistics_timeout=_f("SMART_SEARCH_STATISTICS_TIMEOUT", 10.0),
            search_timeout=_f("SMART_SEARCH_SEARCH_TIMEOUT", 30.0),
        )


CONFIG = SearchConfig()
