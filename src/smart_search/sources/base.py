"""Base interface for registry record sources."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.record import CandidateRecord
    from ..models.result import AutocompleteValue


# Queryable fields of the search index
INDEX_FIELDS: frozenset[str] = frozenset([
    "id",
    "identifier",
    "phone",
    "phone_normalized",
    "first_name",
    "last_name",
    "search_name",
    "name_phonetic",
    "region_code",
    "region_name",
    "subregion",
    "group_name",
    "organization",
])


class MatchOp(str, Enum):
    """Predicate operators a record source must support."""
    EQUALS = "equals"
    IEQUALS = "iequals"  # case-insensitive equality
    CONTAINS = "contains"
    PREFIX = "prefix"


@dataclass(frozen=True)
class Predicate:
    """A single field test, e.g. ``region_code IEQUALS 'ber'``."""
    field: str
    op: MatchOp
    value: str

    def __post_init__(self) -> None:
        if self.field not in INDEX_FIELDS:
            raise ValueError(f"Unknown index field: {self.field}")


@dataclass
class RecordQuery:
    """Conjunction of clauses; each clause is a disjunction of predicates."""
    clauses: list[tuple[Predicate, ...]] = field(default_factory=list)
    limit: int | None = None

    def where(self, *alternatives: Predicate) -> RecordQuery:
        """Add an AND-clause satisfied when any alternative matches."""
        if alternatives:
            self.clauses.append(tuple(alternatives))
        return self

    @property
    def is_empty(self) -> bool:
        return not self.clauses


class RecordSource(ABC):
    """Abstract registry record source.

    Implementations raise ``RecordSourceError`` when a query cannot run.
    """

    name: str = "base"

    @abstractmethod
    def find(self, query: RecordQuery) -> list[CandidateRecord]:
        """Return rows matching every clause, in stable fetch order, up to ``query.limit``."""

    @abstractmethod
    def get(self, record_id: str) -> CandidateRecord | None:
        """Return one record by its index id."""

    @abstractmethod
    def count(self, query: RecordQuery | None = None) -> int:
        """Count rows, optionally restricted by a query."""

    @abstractmethod
    def count_by(
        self,
        field_name: str,
        query: RecordQuery | None = None,
        lowercase: bool = False,
        order_by: str = "count",
        limit: int | None = None,
    ) -> list[AutocompleteValue]:
        """Count non-empty values of a field.

        Args:
            field_name: Index field to group on
            query: Optional restriction applied before grouping
            lowercase: Group on the lower-cased value
            order_by: ``"count"`` (descending) or ``"name"`` (ascending)
            limit: Maximum number of groups; ``None`` for all
        """
