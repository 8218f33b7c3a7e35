"""Shared fixtures: a small seeded SQLite search index."""
import json
from pathlib import Path

import pytest

from smart_search.sources.sqlite_store import SQLiteRecordSource

SEED_RECORDS = [
    {
        "id": "1",
        "identifier": "TEST001",
        "first_name": "Mamosa",
        "last_name": "Motlomelo",
        "gender": "F",
        "birth_date": "1984-03-02",
        "phone": "123456789",
        "region_code": "BER",
        "region_name": "Berea",
        "subregion": "Makhoarane",
        "group": "Ha Matala",
        "organization": "Berea Farmers Coop",
    },
    {
        "id": "2",
        "identifier": "TEST002",
        "first_name": "Thabo",
        "last_name": "Mohapi",
        "gender": "M",
        "phone": "+266 5800 1111",
        "region_code": "BER",
        "region_name": "Berea",
        "subregion": "Makhoarane",
        "group": "Ha Matala",
        "organization": "Berea Farmers Coop",
    },
    {
        "id": "3",
        "identifier": "TEST003",
        "first_name": "Mamosa",
        "last_name": "Mohapi",
        "gender": "F",
        "phone": "5800 2222",
        "region_code": "MSU",
        "region_name": "Maseru",
        "subregion": "Qeme",
        "group": "Ha Foso",
    },
    {
        "id": "4",
        "identifier": "LS-44556",
        "first_name": "Lerato",
        "last_name": "Sello",
        "gender": "F",
        "phone": "62223333",
        "region_code": "MSU",
        "region_name": "Maseru",
        "subregion": "Qeme",
        "group": "Ha Foso",
        "organization": "Maseru Dairy",
    },
    {
        "id": "5",
        "identifier": "TEST005",
        "first_name": "Rupert",
        "last_name": "Mokoena",
        "gender": "M",
        "region_code": "LRB",
        "region_name": "Leribe",
        "subregion": "Hlotse",
        "group": "Ha Mokoena",
    },
]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "index.db"


@pytest.fixture
def empty_source(db_path: Path) -> SQLiteRecordSource:
    return SQLiteRecordSource(db_path)


@pytest.fixture
def source(empty_source: SQLiteRecordSource) -> SQLiteRecordSource:
    """Search index seeded with five registry records."""
    empty_source.upsert_many(SEED_RECORDS)
    return empty_source


@pytest.fixture
def seed_file(tmp_path: Path) -> Path:
    """The seed records as a JSON lines import file."""
    path = tmp_path / "records.jsonl"
    path.write_text("\n".join(json.dumps(r) for r in SEED_RECORDS) + "\n")
    return path
