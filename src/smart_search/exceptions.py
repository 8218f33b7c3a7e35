"""Error taxonomy for search, statistics and client-side loading."""
from __future__ import annotations

from dataclasses import dataclass


class SmartSearchError(Exception):
    """Base class for all Smart Search errors."""


class ConfigurationError(SmartSearchError, ValueError):
    """Raised when a SearchConfig value is out of range."""


@dataclass
class InvalidCriteriaError(SmartSearchError):
    """Raised before any record-source call when criteria cannot be dispatched.

    Maps to a 400-equivalent at the API boundary.
    """

    reason: str = "No search criteria provided"
    status_code: int = 400

    def __str__(self) -> str:  # pragma: no cover - human readable
        return self.reason


class RecordSourceError(SmartSearchError):
    """Raised by a record source when a query cannot be executed."""


class StatisticsUnavailableError(SmartSearchError):
    """Raised while computing statistics; never escapes the aggregator."""


@dataclass
class StatisticsFetchError(SmartSearchError):
    """Client-side statistics fetch failure (network, timeout, bad payload)."""

    reason: str
    status_code: int | None = None

    def __str__(self) -> str:  # pragma: no cover - human readable
        if self.status_code is not None:
            return f"{self.reason} (status={self.status_code})"
        return self.reason


@dataclass
class RemoteSearchError(SmartSearchError):
    """A search request to the server could not complete.

    ``retryable`` is set for timeouts and transport failures.
    """

    reason: str
    status_code: int | None = None
    retryable: bool = True

    def __str__(self) -> str:  # pragma: no cover - human readable
        return self.reason
