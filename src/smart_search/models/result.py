"""Search result envelope."""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from .record import ScoredResult

NO_RESULT_SUGGESTIONS = [
    "Try a broader search term",
    "Check the spelling of the name",
    "Try a different group",
    "Search by identifier or phone instead",
]


class SearchResultType(str, Enum):
    """Which path produced a result."""
    EXACT_IDENTIFIER_MATCH = "EXACT_IDENTIFIER_MATCH"
    EXACT_PHONE_MATCH = "EXACT_PHONE_MATCH"
    CRITERIA_MATCH = "CRITERIA_MATCH"
    NO_RESULTS = "NO_RESULTS"


class SearchResult(BaseModel):
    """Envelope returned by every search call.

    Callers must check ``success``; record-source failures are reported
    here rather than raised.
    """

    model_config = {"populate_by_name": True, "alias_generator": to_camel}

    success: bool = True
    result_type: SearchResultType = SearchResultType.NO_RESULTS
    total_count: int = Field(default=0, description="Raw candidate count before truncation")
    records: list[ScoredResult] = Field(default_factory=list)
    search_time_ms: float = 0.0
    error_message: str | None = None

    @classmethod
    def failure(cls, message: str) -> SearchResult:
        return cls(success=False, error_message=message)

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "resultType": self.result_type.value,
            "totalCount": self.total_count,
            "records": [r.to_wire() for r in self.records],
            "searchTime": round(self.search_time_ms),
        }
        if self.error_message:
            payload["error"] = self.error_message
        if self.success and not self.records:
            payload["suggestions"] = list(NO_RESULT_SUGGESTIONS)
        return payload

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> SearchResult:
        """Parse a wire payload produced by ``to_wire``."""
        records = []
        for item in payload.get("records", []):
            item = dict(item)
            score = item.pop("relevanceScore", 0)
            records.append(ScoredResult(record=item, relevance_score=score))
        return cls(
            success=payload.get("success", False),
            result_type=SearchResultType(payload.get("resultType", SearchResultType.NO_RESULTS.value)),
            total_count=payload.get("totalCount", 0),
            records=records,
            search_time_ms=payload.get("searchTime", 0),
            error_message=payload.get("error"),
        )


class AutocompleteValue(BaseModel):
    """A distinct field value and how many records carry it."""

    name: str
    count: int
