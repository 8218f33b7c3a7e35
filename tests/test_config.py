"""Tests for SearchConfig."""

import pytest
from structlog.testing import capture_logs

from smart_search.config import SearchConfig
from smart_search.exceptions import ConfigurationError
from smart_search.logging import configure_logging, get_logger
from smart_search.models import SearchCriteria


class TestSearchConfig:
    """Defaults, validation and environment overrides."""

    def test_defaults(self):
        config = SearchConfig()
        assert config.identifier_min_length == 4
        assert config.phone_min_length == 8
        assert config.name_min_length == 2
        assert config.max_raw_results == 50
        assert config.max_return_results == 20
        assert config.statistics_ttl_seconds == 86400
        assert config.statistics_timeout == 10.0
        assert config.search_timeout == 30.0

    def test_frozen(self):
        config = SearchConfig()
        with pytest.raises(AttributeError):
            config.max_raw_results = 10

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"identifier_min_length": 0},
            {"phone_min_length": -1},
            {"max_return_results": 0},
            {"max_raw_results": 10, "max_return_results": 20},
            {"statistics_timeout": 0},
            {"client_cache_ttl_hours": -1},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            SearchConfig(**kwargs)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            SearchConfig(top_name_count=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SMART_SEARCH_PHONE_MIN_LENGTH", "9")
        monkeypatch.setenv("SMART_SEARCH_SEARCH_TIMEOUT", "5.5")
        config = SearchConfig.from_env()
        assert config.phone_min_length == 9
        assert config.search_timeout == 5.5

    def test_from_env_ignores_malformed(self, monkeypatch):
        monkeypatch.setenv("SMART_SEARCH_MAX_RAW_RESULTS", "many")
        assert SearchConfig.from_env().max_raw_results == 50


class TestSearchCriteria:
    """Criteria model helpers."""

    @pytest.mark.parametrize(("limit", "expected"), [(None, 20), (0, 1), (5, 5), (100, 20)])
    def test_limit_clamped(self, limit, expected):
        assert SearchCriteria(name="x", limit=limit).limit == expected

    def test_blank_fields_are_not_criteria(self):
        assert not SearchCriteria(name=" ", group="").has_criteria()
        assert SearchCriteria(subregion="Qeme").has_criteria()

    def test_camel_case_aliases(self):
        criteria = SearchCriteria.model_validate({"regionCode": "BER", "partialPhone": "5800"})
        assert criteria.region_code == "BER"
        assert criteria.partial_phone == "5800"
        assert criteria.has_region()
        assert not criteria.has_exact_match_field()


class TestLogging:
    """Structlog helpers."""

    def test_get_logger_emits_events(self):
        with capture_logs() as logs:
            get_logger("smart_search.tests").error("lookup.failed", record_id="1")
        assert logs == [{"event": "lookup.failed", "record_id": "1", "log_level": "error"}]

    def test_configure_logging_filters_below_level(self):
        configure_logging(level="WARNING", json=False)
        try:
            with capture_logs() as logs:
                log = get_logger("smart_search.tests.filtered")
                log.info("statistics.refreshed")
                log.warning("statistics_cache.corrupt")
            assert [entry["event"] for entry in logs] == ["statistics_cache.corrupt"]
        finally:
            configure_logging()
