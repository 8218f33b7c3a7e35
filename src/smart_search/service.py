"""API-boundary facade.

Turns request payloads into orchestrator/aggregator calls and every
outcome, failures included, into a JSON-ready response dict. Nothing
raised below this layer escapes it.
"""
from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from smart_search.config import CONFIG, SearchConfig
from smart_search.exceptions import InvalidCriteriaError, RecordSourceError
from smart_search.logging import get_logger
from smart_search.models.criteria import SearchCriteria
from smart_search.search.orchestrator import AutocompleteField, SearchOrchestrator
from smart_search.sources.base import RecordSource
from smart_search.statistics.aggregator import StatisticsAggregator

logger = get_logger(__name__)


def error_response(message: str, status_code: int) -> dict[str, Any]:
    return {"success": False, "error": message, "statusCode": status_code}


def parse_criteria(body: dict[str, Any] | None) -> SearchCriteria:
    """Build criteria from ``{"criteria": {...}, "limit": n}`` or a flat body.

    Raises:
        InvalidCriteriaError: Body missing or not an object
        ValidationError: Field values of the wrong type
    """
    if not isinstance(body, dict):
        raise InvalidCriteriaError("Request body must be a JSON object")
    fields = body.get("criteria", body)
    if not isinstance(fields, dict):
        raise InvalidCriteriaError("criteria must be a JSON object")
    fields = dict(fields)
    if body.get("limit") is not None:
        fields["limit"] = body["limit"]
    return SearchCriteria.model_validate(fields)


class SmartSearchService:
    """One orchestrator and one statistics aggregator over a record source."""

    def __init__(
        self,
        source: RecordSource,
        config: SearchConfig | None = None,
        aggregator: StatisticsAggregator | None = None,
    ) -> None:
        self.config = config or CONFIG
        self.orchestrator = SearchOrchestrator(source, self.config)
        self.aggregator = aggregator or StatisticsAggregator(source, self.config)

    def search(self, body: dict[str, Any] | None) -> dict[str, Any]:
        try:
            criteria = parse_criteria(body)
            return self.orchestrator.search(criteria).to_wire()
        except InvalidCriteriaError as e:
            return error_response(str(e), e.status_code)
        except ValidationError as e:
            return error_response(f"Invalid criteria: {e.error_count()} field error(s)", 400)

    def search_by_identifier(self, identifier: str | None) -> dict[str, Any]:
        try:
            return self.orchestrator.search_by_identifier(identifier).to_wire()
        except InvalidCriteriaError as e:
            return error_response(str(e), e.status_code)

    def search_by_phone(self, phone: str | None) -> dict[str, Any]:
        try:
            return self.orchestrator.search_by_phone(phone).to_wire()
        except InvalidCriteriaError as e:
            return error_response(str(e), e.status_code)

    def lookup(self, record_id: str | None) -> dict[str, Any]:
        try:
            record = self.orchestrator.lookup(record_id)
        except RecordSourceError as e:
            logger.error("lookup.failed", record_id=record_id, error=str(e))
            return error_response(f"Lookup failed: {e}", 500)
        if record is None:
            return error_response("Record not found", 404)
        return {"success": True, "record": record.model_dump(by_alias=True, exclude={"name_phonetic"})}

    def autocomplete(
        self,
        field_type: str,
        region: str | None = None,
        query: str | None = None,
    ) -> dict[str, Any]:
        try:
            field = AutocompleteField(field_type)
        except ValueError:
            return error_response(f"Unknown autocomplete field: {field_type}", 400)
        try:
            values = self.orchestrator.list_autocomplete_values(field, region, query)
        except RecordSourceError as e:
            logger.error("autocomplete.failed", field=field.value, error=str(e))
            return error_response(f"Autocomplete failed: {e}", 500)
        return {"success": True, "values": [v.model_dump() for v in values]}

    def statistics(self, force_refresh: bool = False) -> dict[str, Any]:
        return self.aggregator.get_statistics(force_refresh=force_refresh).to_wire()
