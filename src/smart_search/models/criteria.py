"""Search criteria model."""
from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

# Hard ceiling on returned results, regardless of what a caller asks for
HARD_MAX_RESULTS = 20


def is_present(value: str | None) -> bool:
    return value is not None and bool(value.strip())


class SearchCriteria(BaseModel):
    """Partial, possibly noisy input describing the record being looked for."""

    model_config = {"populate_by_name": True, "alias_generator": to_camel}

    identifier: str | None = Field(default=None, description="Full registry identifier")
    phone: str | None = Field(default=None, description="Full phone number, any formatting")
    name: str | None = Field(default=None, description="Free-text name, one or more tokens")
    region_code: str | None = Field(default=None)
    region_name: str | None = Field(default=None, description="Alternative region representation")
    subregion: str | None = Field(default=None, description="Community council or similar")
    group: str | None = Field(default=None, description="Smallest stable location (village)")
    partial_identifier: str | None = Field(default=None)
    partial_phone: str | None = Field(default=None)
    organization: str | None = Field(default=None, description="Cooperative or similar")
    limit: int = Field(default=HARD_MAX_RESULTS, description="Result cap, clamped to the hard maximum")

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, value: object) -> int:
        if value is None:
            return HARD_MAX_RESULTS
        try:
            limit = int(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"limit must be an integer, got {value!r}") from e
        return max(1, min(limit, HARD_MAX_RESULTS))

    def has_exact_match_field(self) -> bool:
        """True iff an identifier or phone is present."""
        return is_present(self.identifier) or is_present(self.phone)

    def has_region(self) -> bool:
        return is_present(self.region_code) or is_present(self.region_name)

    def has_criteria(self) -> bool:
        """True if at least one searchable field is populated."""
        return any(
            is_present(value)
            for value in (
                self.identifier,
                self.phone,
                self.name,
                self.region_code,
                self.region_name,
                self.subregion,
                self.group,
                self.partial_identifier,
                self.partial_phone,
                self.organization,
            )
        )

    def region_values(self) -> list[str]:
        """Trimmed region representations supplied by the caller."""
        return [v.strip() for v in (self.region_code, self.region_name) if is_present(v)]
