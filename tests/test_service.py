"""Tests for the API-boundary service facade."""

from unittest.mock import patch

import pytest

from smart_search.exceptions import RecordSourceError
from smart_search.service import SmartSearchService, parse_criteria


@pytest.fixture
def service(source):
    return SmartSearchService(source)


class TestParseCriteria:
    """Request body parsing."""

    def test_nested_criteria_with_limit(self):
        criteria = parse_criteria({"criteria": {"name": "Thabo", "regionCode": "BER"}, "limit": 3})
        assert criteria.name == "Thabo"
        assert criteria.region_code == "BER"
        assert criteria.limit == 3

    def test_flat_body(self):
        criteria = parse_criteria({"partialIdentifier": "4455", "group": "Ha Foso"})
        assert criteria.partial_identifier == "4455"
        assert criteria.group == "Ha Foso"
        assert criteria.limit == 20


class TestSearch:
    """Search responses and error envelopes."""

    def test_exact_identifier(self, service):
        response = service.search({"criteria": {"identifier": "TEST001"}})

        assert response["success"] is True
        assert response["resultType"] == "EXACT_IDENTIFIER_MATCH"
        assert response["totalCount"] == 1
        record = response["records"][0]
        assert record["relevanceScore"] == 100
        assert record["identifier"] == "TEST001"
        assert record["identifierMasked"] == "...T001"
        assert "namePhonetic" not in record

    def test_criteria_search(self, service):
        response = service.search({"criteria": {"name": "Mohape", "regionCode": "BER"}})
        assert response["resultType"] == "CRITERIA_MATCH"
        assert response["records"][0]["lastName"] == "Mohapi"
        assert response["records"][0]["relevanceScore"] == 65
        assert isinstance(response["searchTime"], int)

    def test_empty_result_has_suggestions(self, service):
        response = service.search({"criteria": {"identifier": "NOPE999"}})
        assert response["success"] is True
        assert response["resultType"] == "NO_RESULTS"
        assert "Try a broader search term" in response["suggestions"]

    @pytest.mark.parametrize(
        "body",
        [None, {}, {"criteria": {}}, {"criteria": {"name": "  "}}, "text", {"criteria": {"partialPhone": "n/a"}}],
    )
    def test_invalid_criteria_is_400(self, service, body):
        response = service.search(body)
        assert response["success"] is False
        assert response["statusCode"] == 400
        assert response["error"]

    @pytest.mark.parametrize("limit", ["lots", [1], {}])
    def test_malformed_limit_is_400(self, service, limit):
        response = service.search({"criteria": {"name": "Thabo", "regionCode": "BER"}, "limit": limit})
        assert response["success"] is False
        assert response["statusCode"] == 400

    def test_source_failure_is_an_envelope(self, service, source):
        with patch.object(source, "find", side_effect=RecordSourceError("disk I/O error")):
            response = service.search({"criteria": {"name": "Thabo", "regionCode": "BER"}})

        assert response["success"] is False
        assert "statusCode" not in response
        assert response["error"].startswith("Search failed")
        assert response["records"] == []

    def test_single_field_endpoints(self, service):
        assert service.search_by_identifier("test003")["records"][0]["id"] == "3"
        assert service.search_by_phone("62 22 33 33")["records"][0]["id"] == "4"
        assert service.search_by_phone("")["statusCode"] == 400


class TestLookupAndAutocomplete:
    """Record lookup and autocomplete responses."""

    def test_lookup(self, service):
        response = service.lookup("4")
        assert response["success"] is True
        assert response["record"]["lastName"] == "Sello"
        assert response["record"]["phoneMasked"] == "...3333"

    def test_lookup_missing_is_404(self, service):
        response = service.lookup("nope")
        assert response == {"success": False, "error": "Record not found", "statusCode": 404}

    def test_lookup_source_failure_is_500(self, service, source):
        with patch.object(source, "get", side_effect=RecordSourceError("gone")):
            response = service.lookup("1")
        assert response["statusCode"] == 500

    def test_autocomplete(self, service):
        response = service.autocomplete("group", region="MSU")
        assert response["values"] == [{"name": "Ha Foso", "count": 2}]

    def test_autocomplete_unknown_field(self, service):
        assert service.autocomplete("village")["statusCode"] == 400


class TestStatistics:
    """Statistics endpoint."""

    def test_statistics_envelope(self, service):
        response = service.statistics()
        assert response["success"] is True
        assert response["statistics"]["totalRecords"] == 5
        assert response["isStale"] is False
        assert response["cacheAgeMs"] >= 0

    def test_empty_registry(self, empty_source):
        response = SmartSearchService(empty_source).statistics()
        stats = response["statistics"]
        assert stats["totalRecords"] == 0
        assert stats["averageGroupSize"] == 100
        assert stats["surnameFrequency"]["mohapi"] == 0.02
