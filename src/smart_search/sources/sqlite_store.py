"""SQLite search index used as the registry record source."""
from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog

from ..exceptions import RecordSourceError
from ..matching.phonetic import full_name_phonetic, normalize_name, normalize_phone
from ..models.record import CandidateRecord
from ..models.result import AutocompleteValue
from .base import INDEX_FIELDS, MatchOp, Predicate, RecordQuery, RecordSource

logger = structlog.get_logger(__name__)

TABLE = "record_index"

SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    id TEXT PRIMARY KEY,
    identifier TEXT,
    phone TEXT,
    phone_normalized TEXT,
    first_name TEXT,
    last_name TEXT,
    gender TEXT,
    birth_date TEXT,
    region_code TEXT,
    region_name TEXT,
    subregion TEXT,
    group_name TEXT,
    organization TEXT,
    search_name TEXT,
    name_phonetic TEXT,
    source_reference TEXT
);

CREATE INDEX IF NOT EXISTS idx_record_identifier ON {TABLE}(identifier);
CREATE INDEX IF NOT EXISTS idx_record_phone ON {TABLE}(phone_normalized);
CREATE INDEX IF NOT EXISTS idx_record_region ON {TABLE}(region_code);
CREATE INDEX IF NOT EXISTS idx_record_group ON {TABLE}(group_name);
CREATE INDEX IF NOT EXISTS idx_record_search_name ON {TABLE}(search_name);
"""

COLUMNS = (
    "id",
    "identifier",
    "phone",
    "phone_normalized",
    "first_name",
    "last_name",
    "gender",
    "birth_date",
    "region_code",
    "region_name",
    "subregion",
    "group_name",
    "organization",
    "search_name",
    "name_phonetic",
    "source_reference",
)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _compile_predicate(predicate: Predicate) -> tuple[str, str]:
    column = predicate.field
    if predicate.op == MatchOp.EQUALS:
        return f"{column} = ?", predicate.value
    if predicate.op == MatchOp.IEQUALS:
        return f"LOWER({column}) = LOWER(?)", predicate.value
    if predicate.op == MatchOp.CONTAINS:
        return f"{column} LIKE ? ESCAPE '\\'", f"%{_escape_like(predicate.value)}%"
    if predicate.op == MatchOp.PREFIX:
        return f"{column} LIKE ? ESCAPE '\\'", f"{_escape_like(predicate.value)}%"
    raise ValueError(f"Unsupported operator: {predicate.op}")


def compile_where(query: RecordQuery | None) -> tuple[str, list[Any]]:
    """Render a RecordQuery as a parameterized WHERE fragment."""
    if query is None or query.is_empty:
        return "1=1", []
    parts: list[str] = []
    params: list[Any] = []
    for clause in query.clauses:
        rendered = []
        for predicate in clause:
            sql, param = _compile_predicate(predicate)
            rendered.append(sql)
            params.append(param)
        parts.append("(" + " OR ".join(rendered) + ")")
    return " AND ".join(parts), params


def index_row(record: Mapping[str, Any]) -> dict[str, Any]:
    """Derive the searchable columns for one raw registry record."""
    first = record.get("first_name")
    last = record.get("last_name")
    phone = record.get("phone")
    row = {column: record.get(column) for column in COLUMNS}
    row["id"] = str(record["id"])
    row["group_name"] = record.get("group_name", record.get("group"))
    row["phone_normalized"] = normalize_phone(phone) or None
    row["search_name"] = normalize_name(f"{first or ''} {last or ''}")
    row["name_phonetic"] = full_name_phonetic(first, last)
    return row


class SQLiteRecordSource(RecordSource):
    """Read-mostly record source over a denormalized SQLite index.

    A connection is opened per call so concurrent searches on worker
    threads never share a cursor.
    """

    name = "sqlite"

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _get_conn(self):
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise RecordSourceError(f"Cannot open record index: {e}") from e
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout=5000;")
        try:
            yield conn
        except sqlite3.Error as e:
            raise RecordSourceError(str(e)) from e
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._get_conn() as conn:
            conn.executescript(SCHEMA)

    # =========================================
    # Writes (index population)
    # =========================================

    def upsert_many(self, records: Iterable[Mapping[str, Any]]) -> int:
        """Insert or replace raw registry records; returns the number written."""
        rows = [index_row(r) for r in records]
        if not rows:
            return 0
        placeholders = ", ".join("?" for _ in COLUMNS)
        sql = f"INSERT OR REPLACE INTO {TABLE} ({', '.join(COLUMNS)}) VALUES ({placeholders})"
        with self._get_conn() as conn:
            conn.executemany(sql, [tuple(row[c] for c in COLUMNS) for row in rows])
            conn.commit()
        logger.info("record_index.upserted", count=len(rows))
        return len(rows)

    # =========================================
    # Reads
    # =========================================

    def find(self, query: RecordQuery) -> list[CandidateRecord]:
        where, params = compile_where(query)
        sql = f"SELECT * FROM {TABLE} WHERE {where} ORDER BY rowid"
        if query.limit is not None:
            sql += " LIMIT ?"
            params.append(query.limit)
        with self._get_conn() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [CandidateRecord.from_row(dict(row)) for row in rows]

    def get(self, record_id: str) -> CandidateRecord | None:
        with self._get_conn() as conn:
            row = conn.execute(f"SELECT * FROM {TABLE} WHERE id = ?", (record_id,)).fetchone()
        return CandidateRecord.from_row(dict(row)) if row else None

    def count(self, query: RecordQuery | None = None) -> int:
        where, params = compile_where(query)
        with self._get_conn() as conn:
            row = conn.execute(f"SELECT COUNT(*) FROM {TABLE} WHERE {where}", params).fetchone()
        return int(row[0]) if row else 0

    def count_by(
        self,
        field_name: str,
        query: RecordQuery | None = None,
        lowercase: bool = False,
        order_by: str = "count",
        limit: int | None = None,
    ) -> list[AutocompleteValue]:
        if field_name not in INDEX_FIELDS:
            raise ValueError(f"Unknown index field: {field_name}")
        value_expr = f"LOWER({field_name})" if lowercase else field_name
        where, params = compile_where(query)
        order = "cnt DESC, value ASC" if order_by == "count" else "value ASC"
        sql = (
            f"SELECT {value_expr} AS value, COUNT(*) AS cnt FROM {TABLE} "
            f"WHERE {field_name} IS NOT NULL AND {field_name} != '' AND {where} "
            f"GROUP BY {value_expr} ORDER BY {order}"
        )
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        with self._get_conn() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [AutocompleteValue(name=row["value"], count=row["cnt"]) for row in rows]
