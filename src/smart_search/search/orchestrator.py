"""Search orchestrator: exact-match fast path or filtered fuzzy path.

Flow for one call:
    NoCriteria -> ExactPath | CriteriaPath -> Scored -> Returned

The orchestrator holds no mutable state between calls, so any number of
searches may run concurrently against the same instance.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from smart_search.config import CONFIG, SearchConfig
from smart_search.exceptions import InvalidCriteriaError
from smart_search.matching.phonetic import (
    BASE_SCORE,
    EXACT_SCORE,
    combined_relevance,
    name_relevance,
    normalize_name,
    normalize_phone,
    search_phonetic,
)
from smart_search.models.criteria import SearchCriteria, is_present
from smart_search.models.record import CandidateRecord, ScoredResult
from smart_search.models.result import AutocompleteValue, SearchResult, SearchResultType
from smart_search.sources.base import MatchOp, Predicate, RecordQuery

if TYPE_CHECKING:
    from smart_search.sources.base import RecordSource

logger = structlog.get_logger(__name__)


class AutocompleteField(str, Enum):
    """Fields that offer value suggestions."""
    GROUP = "group"
    SUBREGION = "subregion"
    ORGANIZATION = "organization"


def _same(a: str | None, b: str | None) -> bool:
    return a is not None and b is not None and a.strip().lower() == b.strip().lower()


def _region_clause(values: list[str]) -> tuple[Predicate, ...]:
    """Match any supplied region value against either region representation."""
    predicates: list[Predicate] = []
    for value in values:
        predicates.append(Predicate("region_code", MatchOp.IEQUALS, value))
        predicates.append(Predicate("region_name", MatchOp.IEQUALS, value))
    return tuple(predicates)


class SearchOrchestrator:
    """
    Resolves registry records from search criteria.

    Responsibilities:
    - Reject criteria with no populated field before touching the source
    - Exact identifier/phone lookups, scored 100
    - Filtered candidate fetch, fuzzy scoring and ranking
    - Autocomplete values and single-record lookup

    Record-source failures during a search are reported on the result
    envelope (``success=False``) and never raised to the caller.
    """

    def __init__(self, source: RecordSource, config: SearchConfig | None = None) -> None:
        """Initialize the orchestrator.

        Args:
            source: Record source to query
            config: Limits and thresholds; defaults to the process config
        """
        self.source = source
        self.config = config or CONFIG

    # =========================================
    # Search entry points
    # =========================================

    def search(self, criteria: SearchCriteria | None) -> SearchResult:
        """Dispatch a search to the exact path or the criteria path.

        Args:
            criteria: Search criteria; at least one field must be populated

        Returns:
            SearchResult envelope (check ``success``)

        Raises:
            InvalidCriteriaError: No field populated, or a digit-free phone value
        """
        if criteria is None or not criteria.has_criteria():
            raise InvalidCriteriaError("No search criteria provided")

        if is_present(criteria.identifier):
            return self.search_by_identifier(criteria.identifier)
        if is_present(criteria.phone):
            return self.search_by_phone(criteria.phone)
        if is_present(criteria.partial_phone) and not normalize_phone(criteria.partial_phone):
            raise InvalidCriteriaError("Partial phone must contain digits")
        return self._timed(lambda: self._search_by_criteria(criteria), path="criteria")

    def search_by_identifier(self, identifier: str | None) -> SearchResult:
        """Exact, case-insensitive identifier lookup."""
        if not is_present(identifier):
            raise InvalidCriteriaError("Identifier is required")
        query = RecordQuery(limit=self.config.max_raw_results).where(
            Predicate("identifier", MatchOp.IEQUALS, identifier.strip())
        )
        return self._timed(
            lambda: self._exact(query, SearchResultType.EXACT_IDENTIFIER_MATCH),
            path="identifier",
        )

    def search_by_phone(self, phone: str | None) -> SearchResult:
        """Exact lookup on the digits-only phone number."""
        if not is_present(phone):
            raise InvalidCriteriaError("Phone number is required")
        digits = normalize_phone(phone)
        if not digits:
            raise InvalidCriteriaError("Phone number must contain digits")
        query = RecordQuery(limit=self.config.max_raw_results).where(
            Predicate("phone_normalized", MatchOp.EQUALS, digits)
        )
        return self._timed(
            lambda: self._exact(query, SearchResultType.EXACT_PHONE_MATCH),
            path="phone",
        )

    def lookup(self, record_id: str | None) -> CandidateRecord | None:
        """Fetch a single record by index id; ``None`` when not found."""
        if not is_present(record_id):
            return None
        return self.source.get(record_id.strip())

    def list_autocomplete_values(
        self,
        field_type: AutocompleteField | str,
        region_filter: str | None = None,
        query: str | None = None,
    ) -> list[AutocompleteValue]:
        """Distinct values with record counts for a location/organization field.

        Args:
            field_type: group, subregion or organization
            region_filter: Optional region code or name to restrict to
            query: Optional text; prefix match for groups, substring otherwise

        Returns:
            Values ordered by count (groups, organizations) or name (subregions)
        """
        field_type = AutocompleteField(field_type)
        record_query = RecordQuery()
        if is_present(region_filter):
            record_query.where(*_region_clause([region_filter.strip()]))

        if field_type == AutocompleteField.GROUP:
            if is_present(query):
                record_query.where(Predicate("group_name", MatchOp.PREFIX, query.strip()))
            return self.source.count_by(
                "group_name", record_query, order_by="count", limit=self.config.autocomplete_limit
            )

        if field_type == AutocompleteField.SUBREGION:
            if is_present(query):
                record_query.where(Predicate("subregion", MatchOp.CONTAINS, query.strip()))
            return self.source.count_by(
                "subregion",
                record_query,
                order_by="name",
                limit=self.config.subregion_autocomplete_limit,
            )

        if is_present(query):
            record_query.where(Predicate("organization", MatchOp.CONTAINS, query.strip()))
        return self.source.count_by(
            "organization", record_query, order_by="count", limit=self.config.autocomplete_limit
        )

    # =========================================
    # Scoring
    # =========================================

    def score(self, record: CandidateRecord, criteria: SearchCriteria) -> int:
        """Relevance of one candidate for the caller's criteria (0-100)."""
        name_score = BASE_SCORE
        if is_present(criteria.name):
            name_score = name_relevance(
                criteria.name,
                record.first_name,
                record.last_name,
                record.name_phonetic,
            )

        region_match = any(
            _same(value, record.region_code) or _same(value, record.region_name)
            for value in criteria.region_values()
        )
        # Any location finer than region earns the larger bonus
        subregion_match = (
            is_present(criteria.group) and _same(criteria.group, record.group)
        ) or (is_present(criteria.subregion) and _same(criteria.subregion, record.subregion))

        return combined_relevance(name_score, region_match, subregion_match)

    def score_and_rank(
        self, records: list[CandidateRecord], criteria: SearchCriteria
    ) -> list[ScoredResult]:
        """Score every candidate and sort descending; ties keep fetch order."""
        scored = [
            ScoredResult(record=record, relevance_score=self.score(record, criteria))
            for record in records
        ]
        # sorted() is stable, so equal scores stay in fetch order
        return sorted(scored, key=lambda r: r.relevance_score, reverse=True)

    # =========================================
    # Internals
    # =========================================

    def _exact(self, query: RecordQuery, match_type: SearchResultType) -> SearchResult:
        records = self.source.find(query)
        results = [ScoredResult(record=r, relevance_score=EXACT_SCORE) for r in records]
        return SearchResult(
            result_type=match_type if results else SearchResultType.NO_RESULTS,
            total_count=len(results),
            records=results,
        )

    def _build_criteria_query(self, criteria: SearchCriteria) -> RecordQuery:
        query = RecordQuery(limit=self.config.max_raw_results)

        regions = criteria.region_values()
        if regions:
            query.where(*_region_clause(regions))

        if is_present(criteria.group):
            query.where(Predicate("group_name", MatchOp.IEQUALS, criteria.group.strip()))

        if is_present(criteria.subregion):
            query.where(Predicate("subregion", MatchOp.IEQUALS, criteria.subregion.strip()))

        if is_present(criteria.partial_identifier):
            query.where(
                Predicate("identifier", MatchOp.CONTAINS, criteria.partial_identifier.strip())
            )

        if is_present(criteria.partial_phone):
            query.where(
                Predicate("phone_normalized", MatchOp.CONTAINS, normalize_phone(criteria.partial_phone))
            )

        if is_present(criteria.organization):
            query.where(
                Predicate("organization", MatchOp.IEQUALS, criteria.organization.strip())
            )

        if is_present(criteria.name):
            query.where(
                Predicate("search_name", MatchOp.CONTAINS, normalize_name(criteria.name)),
                Predicate("name_phonetic", MatchOp.CONTAINS, search_phonetic(criteria.name)),
            )

        return query

    def _search_by_criteria(self, criteria: SearchCriteria) -> SearchResult:
        raw = self.source.find(self._build_criteria_query(criteria))
        ranked = self.score_and_rank(raw, criteria)

        limit = min(criteria.limit, self.config.max_return_results)
        ranked = ranked[:limit]

        return SearchResult(
            result_type=SearchResultType.CRITERIA_MATCH if ranked else SearchResultType.NO_RESULTS,
            total_count=len(raw),
            records=ranked,
        )

    def _timed(self, run, path: str) -> SearchResult:
        start = time.perf_counter()
        try:
            result = run()
        except InvalidCriteriaError:
            raise
        except Exception as e:
            # Source failures stop here; callers read success/error_message
            logger.error("search.failed", path=path, error=str(e))
            result = SearchResult.failure(f"Search failed: {e}")
        result.search_time_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "search.completed",
            path=path,
            success=result.success,
            result_type=result.result_type.value,
            total_count=result.total_count,
            returned=len(result.records),
            elapsed_ms=round(result.search_time_ms, 2),
        )
        return result
