"""Client-side confidence estimation and criteria validation.

Works entirely from a Statistics snapshot, so it keeps working offline
once statistics have been loaded (fresh or stale).

Confidence model:
    expected = total_records
    expected = region_count            (region given)
    expected = min(expected, 2 * average_group_size)   (group given)
    expected *= min(1, prod(freq(token) * 20))         (name given)
    expected *= 1 - factor             (each partial identifier/phone,
                                        subregion, organization)
    confidence = 100 at <= 20 expected, 0 at >= 1000, linear between
"""
from __future__ import annotations

import math
from datetime import datetime

import structlog

from smart_search.config import CONFIG, SearchConfig
from smart_search.matching.phonetic import normalize_phone
from smart_search.models.criteria import SearchCriteria, is_present
from smart_search.models.statistics import (
    DEFAULT_KEY,
    DEFAULT_SURNAME_FREQUENCY,
    FACTOR_ORGANIZATION,
    FACTOR_PARTIAL_IDENTIFIER,
    FACTOR_PARTIAL_PHONE,
    FACTOR_SUBREGION,
    Statistics,
)
from smart_search.models.validation import ValidationCategory, ValidationResult

logger = structlog.get_logger(__name__)

NEUTRAL_CONFIDENCE = 50
MAX_CONFIDENCE = 100

# Expected-result thresholds of the linear confidence ramp
CONFIDENT_RESULTS = 20
HOPELESS_RESULTS = 1000

# Fallback average group size when statistics carry none
FALLBACK_GROUP_SIZE = 150
NAME_FREQUENCY_SCALE = 20

HIGH_CONFIDENCE = 70
MEDIUM_CONFIDENCE = 40

MSG_EXACT_IDENTIFIER = "Exact identifier match search"
MSG_EXACT_PHONE = "Exact phone match search"
MSG_NO_CRITERIA = "Enter search criteria"
MSG_NAME_ONLY = "Please add region or group"
MSG_NEEDS_NAME_OR_ID = "Please add name or ID"
MSG_READY = "Ready to search"
MSG_BROAD = "Results may be broad. Consider adding group."
MSG_ADD_NAME = "Consider adding name for better results"
MSG_ADD_MORE = "Add more criteria for better results"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def confidence_level(confidence: int) -> str:
    """Bucket a confidence value: ``high``, ``medium`` or ``low``."""
    if confidence >= HIGH_CONFIDENCE:
        return "high"
    if confidence >= MEDIUM_CONFIDENCE:
        return "medium"
    return "low"


def confidence_text(confidence: int) -> str:
    """Short label for display next to the search button."""
    return {
        "high": MSG_READY,
        "medium": MSG_ADD_MORE,
        "low": "Please add criteria",
    }[confidence_level(confidence)]


def confidence_from_expected(expected: float) -> int:
    if expected <= CONFIDENT_RESULTS:
        return MAX_CONFIDENCE
    if expected >= HOPELESS_RESULTS:
        return 0
    span = HOPELESS_RESULTS - CONFIDENT_RESULTS
    value = MAX_CONFIDENCE * (HOPELESS_RESULTS - expected) / span
    return max(0, min(MAX_CONFIDENCE, _round_half_up(value)))


class ConfidenceEstimator:
    """Estimates result specificity and validates criteria before searching.

    Holds the statistics snapshot it works from plus where it came from
    (live fetch or persisted cache).
    """

    def __init__(self, config: SearchConfig | None = None) -> None:
        self.config = config or CONFIG
        self.statistics: Statistics | None = None
        self.loaded_at: datetime | None = None
        self.from_cache = False
        self.cache_timestamp_ms: int | None = None

    def set_statistics(
        self,
        statistics: Statistics,
        from_cache: bool = False,
        cache_timestamp_ms: int | None = None,
    ) -> None:
        self.statistics = statistics
        self.loaded_at = datetime.now()
        self.from_cache = from_cache
        self.cache_timestamp_ms = cache_timestamp_ms if from_cache else None
        logger.info(
            "estimator.statistics_set",
            total_records=statistics.total_records,
            from_cache=from_cache,
        )

    def has_statistics(self) -> bool:
        return self.statistics is not None

    # =========================================
    # Field sufficiency helpers
    # =========================================

    def _has_name(self, criteria: SearchCriteria) -> bool:
        return is_present(criteria.name) and len(criteria.name.strip()) >= self.config.name_min_length

    def _has_partial_identifier(self, criteria: SearchCriteria) -> bool:
        return (
            is_present(criteria.partial_identifier)
            and len(criteria.partial_identifier.strip()) >= self.config.identifier_min_length
        )

    def _has_partial_phone(self, criteria: SearchCriteria) -> bool:
        return len(normalize_phone(criteria.partial_phone)) >= self.config.phone_min_length

    def _has_exact_identifier(self, criteria: SearchCriteria) -> bool:
        return (
            is_present(criteria.identifier)
            and len(criteria.identifier.strip()) >= self.config.identifier_min_length
        )

    def _has_exact_phone(self, criteria: SearchCriteria) -> bool:
        return len(normalize_phone(criteria.phone)) >= self.config.phone_min_length

    # =========================================
    # Estimation
    # =========================================

    def expected_results(self, criteria: SearchCriteria) -> float | None:
        """Estimated number of matching records, or None without statistics."""
        stats = self.statistics
        if stats is None:
            return None

        total = stats.total_records or 1
        expected = float(total)

        if criteria.has_region():
            expected = float(self._region_count(stats, criteria.region_values()) or total // 10)

        if is_present(criteria.group):
            group_size = stats.average_group_size or FALLBACK_GROUP_SIZE
            expected = min(expected, group_size * 2)

        if is_present(criteria.name):
            expected *= min(1.0, self._name_multiplier(stats, criteria.name))

        if self._has_partial_identifier(criteria):
            expected *= 1 - stats.factor(FACTOR_PARTIAL_IDENTIFIER)
        if self._has_partial_phone(criteria):
            expected *= 1 - stats.factor(FACTOR_PARTIAL_PHONE)
        if is_present(criteria.subregion):
            expected *= 1 - stats.factor(FACTOR_SUBREGION)
        if is_present(criteria.organization):
            expected *= 1 - stats.factor(FACTOR_ORGANIZATION)

        return expected

    @staticmethod
    def _region_count(stats: Statistics, values: list[str]) -> int:
        counts = {k.lower(): v for k, v in stats.region_counts.items()}
        for value in values:
            count = counts.get(value.lower())
            if count:
                return count
        return 0

    def _name_multiplier(self, stats: Statistics, name: str) -> float:
        multiplier = 1.0
        for part in name.lower().split():
            if len(part) < self.config.name_min_length:
                continue
            freq = (
                stats.surname_frequency.get(part)
                or stats.firstname_frequency.get(part)
                or stats.surname_frequency.get(DEFAULT_KEY)
                or DEFAULT_SURNAME_FREQUENCY
            )
            multiplier *= freq * NAME_FREQUENCY_SCALE
        return multiplier

    def estimate_confidence(self, criteria: SearchCriteria) -> int:
        """Confidence (0-100) that the criteria will find the intended record.

        Returns 50 when no statistics are loaded and 100 for a usable
        identifier or phone number.
        """
        if self.statistics is None:
            return NEUTRAL_CONFIDENCE
        if self._has_exact_identifier(criteria) or self._has_exact_phone(criteria):
            return MAX_CONFIDENCE
        return confidence_from_expected(self.expected_results(criteria))

    # =========================================
    # Validation
    # =========================================

    def validate_criteria(self, criteria: SearchCriteria) -> ValidationResult:
        """Classify criteria sufficiency; first matching rule wins."""
        if self._has_exact_identifier(criteria):
            return ValidationResult(
                category=ValidationCategory.EXACT_MATCH, message=MSG_EXACT_IDENTIFIER, can_search=True
            )
        if self._has_exact_phone(criteria):
            return ValidationResult(
                category=ValidationCategory.EXACT_MATCH, message=MSG_EXACT_PHONE, can_search=True
            )

        has_name = self._has_name(criteria)
        has_region = criteria.has_region()
        has_group = is_present(criteria.group)
        has_pid = self._has_partial_identifier(criteria)
        has_pphone = self._has_partial_phone(criteria)
        has_subregion = is_present(criteria.subregion)
        has_org = is_present(criteria.organization)

        if not any((has_name, has_region, has_group, has_pid, has_pphone, has_subregion, has_org)):
            return _rejected(MSG_NO_CRITERIA)

        if has_name and not any((has_region, has_group, has_pid, has_pphone, has_subregion, has_org)):
            return _rejected(MSG_NAME_ONLY)

        if (has_region or has_group) and not (has_name or has_pid or has_pphone):
            return _rejected(MSG_NEEDS_NAME_OR_ID)

        if has_name and (
            has_group or has_pid or has_pphone or has_subregion or (has_org and has_region)
        ):
            return ValidationResult(
                category=ValidationCategory.ACCEPTABLE, message=MSG_READY, can_search=True
            )

        if has_name and has_region:
            return _warning(MSG_BROAD)

        if has_pid and not has_name:
            return _warning(MSG_ADD_NAME)

        return _warning(MSG_ADD_MORE)


def _rejected(message: str) -> ValidationResult:
    return ValidationResult(category=ValidationCategory.REJECTED, message=message, can_search=False)


def _warning(message: str) -> ValidationResult:
    return ValidationResult(category=ValidationCategory.WARNING, message=message, can_search=True)
