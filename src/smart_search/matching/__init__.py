"""Phonetic and edit-distance name matching."""

from .phonetic import (
    EMPTY_CODE,
    combined_relevance,
    edit_distance,
    full_name_phonetic,
    name_relevance,
    normalize_name,
    normalize_phone,
    phonetic_code,
    search_phonetic,
)

__all__ = [
    "EMPTY_CODE",
    "combined_relevance",
    "edit_distance",
    "full_name_phonetic",
    "name_relevance",
    "normalize_name",
    "normalize_phone",
    "phonetic_code",
    "search_phonetic",
]
