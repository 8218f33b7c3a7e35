"""Population statistics shared by the server aggregator and client estimator."""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

STATISTICS_VERSION = "1.0"

DEFAULT_KEY = "_default"
DEFAULT_SURNAME_FREQUENCY = 0.0002
DEFAULT_FIRSTNAME_FREQUENCY = 0.0003
DEFAULT_AVERAGE_GROUP_SIZE = 100

# Effectiveness factor keys
FACTOR_GROUP = "group"
FACTOR_REGION = "region"
FACTOR_PARTIAL_IDENTIFIER = "partial_identifier"
FACTOR_PARTIAL_PHONE = "partial_phone"
FACTOR_SUBREGION = "subregion"
FACTOR_ORGANIZATION = "organization"

# Tuned constants; group is fixed because per-group counts are too sparse
GROUP_FACTOR = 0.85
DEFAULT_REGION_FACTOR = 0.12
PARTIAL_IDENTIFIER_FACTOR = 0.92
PARTIAL_PHONE_FACTOR = 0.90
SUBREGION_FACTOR = 0.55
ORGANIZATION_FACTOR = 0.45

DEFAULT_FACTORS: dict[str, float] = {
    FACTOR_GROUP: GROUP_FACTOR,
    FACTOR_REGION: DEFAULT_REGION_FACTOR,
    FACTOR_PARTIAL_IDENTIFIER: PARTIAL_IDENTIFIER_FACTOR,
    FACTOR_PARTIAL_PHONE: PARTIAL_PHONE_FACTOR,
    FACTOR_SUBREGION: SUBREGION_FACTOR,
    FACTOR_ORGANIZATION: ORGANIZATION_FACTOR,
}

# Seed tables used when the registry is empty or unreachable
SEED_SURNAME_FREQUENCY: dict[str, float] = {
    "mohapi": 0.02,
    "sello": 0.019,
    "mohale": 0.015,
    "mokoena": 0.014,
    "letsie": 0.013,
    DEFAULT_KEY: DEFAULT_SURNAME_FREQUENCY,
}

SEED_FIRSTNAME_FREQUENCY: dict[str, float] = {
    "thabo": 0.025,
    "lerato": 0.02,
    "mamosa": 0.015,
    "nthabiseng": 0.012,
    DEFAULT_KEY: DEFAULT_FIRSTNAME_FREQUENCY,
}


class Statistics(BaseModel):
    """Versioned population snapshot.

    Replaced wholesale on refresh; never partially updated.
    """

    model_config = {"populate_by_name": True, "alias_generator": to_camel, "frozen": True}

    version: str = STATISTICS_VERSION
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    total_records: int = 0
    region_counts: dict[str, int] = Field(default_factory=dict)
    surname_frequency: dict[str, float] = Field(default_factory=dict)
    firstname_frequency: dict[str, float] = Field(default_factory=dict)
    average_group_size: int = DEFAULT_AVERAGE_GROUP_SIZE
    effectiveness_factors: dict[str, float] = Field(default_factory=dict)

    @classmethod
    def default(cls) -> Statistics:
        """Fixed fallback snapshot for an empty or failing registry."""
        return cls(
            total_records=0,
            region_counts={},
            surname_frequency=dict(SEED_SURNAME_FREQUENCY),
            firstname_frequency=dict(SEED_FIRSTNAME_FREQUENCY),
            average_group_size=DEFAULT_AVERAGE_GROUP_SIZE,
            effectiveness_factors=dict(DEFAULT_FACTORS),
        )

    def factor(self, key: str) -> float:
        """Effectiveness factor with the tuned default as fallback."""
        value = self.effectiveness_factors.get(key)
        return value if value else DEFAULT_FACTORS[key]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> Statistics:
        return cls.model_validate(payload)


class StatisticsSnapshot(BaseModel):
    """Statistics plus cache metadata, as served to clients."""

    model_config = {"populate_by_name": True, "alias_generator": to_camel}

    statistics: Statistics
    cache_age_ms: int = Field(description="-1 when never computed")
    is_stale: bool

    def to_wire(self) -> dict[str, Any]:
        return {
            "success": True,
            "statistics": self.statistics.to_wire(),
            "cacheAgeMs": self.cache_age_ms,
            "isStale": self.is_stale,
        }
