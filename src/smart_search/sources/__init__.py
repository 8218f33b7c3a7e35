"""Record sources backing the search orchestrator and statistics aggregator."""

from .base import INDEX_FIELDS, MatchOp, Predicate, RecordQuery, RecordSource
from .sqlite_store import SQLiteRecordSource, index_row

__all__ = [
    "INDEX_FIELDS",
    "MatchOp",
    "Predicate",
    "RecordQuery",
    "RecordSource",
    "SQLiteRecordSource",
    "index_row",
]
