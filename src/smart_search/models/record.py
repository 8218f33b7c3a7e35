"""Candidate record models returned by a record source."""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

VISIBLE_TAIL = 4
MASK_PREFIX = "..."


def mask_identifier(identifier: str | None) -> str | None:
    """Show only the last 4 characters of an identifier."""
    if identifier is None or len(identifier) <= VISIBLE_TAIL:
        return identifier
    return MASK_PREFIX + identifier[-VISIBLE_TAIL:]


def mask_phone(phone: str | None) -> str | None:
    """Show only the last 4 digits of a phone number."""
    if phone is None or len(phone) <= VISIBLE_TAIL:
        return phone
    digits = re.sub(r"[^0-9]", "", phone)
    if len(digits) <= VISIBLE_TAIL:
        return phone
    return MASK_PREFIX + digits[-VISIBLE_TAIL:]


class CandidateRecord(BaseModel):
    """Immutable snapshot of one registry record.

    Full identifier and phone always travel with their masked counterparts
    so an authorized caller can store the full value and display the mask.
    """

    model_config = {"populate_by_name": True, "alias_generator": to_camel, "frozen": True}

    id: str
    identifier: str | None = None
    identifier_masked: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    gender: str | None = None
    birth_date: str | None = None
    phone: str | None = None
    phone_masked: str | None = None
    region_code: str | None = None
    region_name: str | None = None
    subregion: str | None = None
    group: str | None = None
    organization: str | None = None
    name_phonetic: str | None = Field(default=None, description="Precomputed 'F### L###' code")
    source_reference: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> CandidateRecord:
        """Build a record from a search-index row, deriving masked values."""
        identifier = row.get("identifier")
        phone = row.get("phone")
        birth_date = row.get("birth_date")
        return cls(
            id=str(row["id"]),
            identifier=identifier,
            identifier_masked=mask_identifier(identifier),
            first_name=row.get("first_name"),
            last_name=row.get("last_name"),
            gender=row.get("gender"),
            birth_date=str(birth_date) if birth_date is not None else None,
            phone=phone,
            phone_masked=mask_phone(phone),
            region_code=row.get("region_code"),
            region_name=row.get("region_name"),
            subregion=row.get("subregion"),
            group=row.get("group_name"),
            organization=row.get("organization"),
            name_phonetic=row.get("name_phonetic"),
            source_reference=row.get("source_reference"),
        )

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class ScoredResult(BaseModel):
    """A candidate with its relevance score for one query."""

    model_config = {"populate_by_name": True, "alias_generator": to_camel}

    record: CandidateRecord
    relevance_score: int = Field(ge=0, le=100)

    def to_wire(self) -> dict[str, Any]:
        """Flat JSON payload: record attributes plus relevanceScore."""
        payload = self.record.model_dump(by_alias=True, exclude={"name_phonetic"})
        payload["relevanceScore"] = self.relevance_score
        return payload
