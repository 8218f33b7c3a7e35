"""Pydantic data models."""

from .criteria import HARD_MAX_RESULTS, SearchCriteria
from .record import CandidateRecord, ScoredResult, mask_identifier, mask_phone
from .result import AutocompleteValue, SearchResult, SearchResultType
from .statistics import Statistics, StatisticsSnapshot
from .validation import ValidationCategory, ValidationResult

__all__ = [
    "HARD_MAX_RESULTS",
    "SearchCriteria",
    "CandidateRecord",
    "ScoredResult",
    "mask_identifier",
    "mask_phone",
    "AutocompleteValue",
    "SearchResult",
    "SearchResultType",
    "Statistics",
    "StatisticsSnapshot",
    "ValidationCategory",
    "ValidationResult",
]
