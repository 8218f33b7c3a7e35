"""Criteria validation result."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class ValidationCategory(str, Enum):
    """Outcome category of a criteria-sufficiency check."""
    EXACT_MATCH = "exact_match"
    ACCEPTABLE = "acceptable"
    WARNING = "warning"
    REJECTED = "rejected"


class ValidationResult(BaseModel):
    model_config = {"populate_by_name": True, "alias_generator": to_camel, "frozen": True}

    category: ValidationCategory
    message: str
    can_search: bool
