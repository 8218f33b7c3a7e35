"""Phonetic and edit-distance matching for registry names.

Pure functions, no state:
- Soundex-style phonetic code (4 characters, letter + 3 digits)
- Levenshtein edit distance (via rapidfuzz)
- Name relevance scoring (0-100) against a candidate's name parts
- Combined relevance with location bonuses
"""
from __future__ import annotations

import re

from rapidfuzz.distance import Levenshtein

# Soundex coding; vowels and H, W, Y map to "0" and are dropped
PHONETIC_MAP: dict[str, str] = {
    "B": "1", "F": "1", "P": "1", "V": "1",
    "C": "2", "G": "2", "J": "2", "K": "2", "Q": "2", "S": "2", "X": "2", "Z": "2",
    "D": "3", "T": "3",
    "L": "4",
    "M": "5", "N": "5",
    "R": "6",
}

EMPTY_CODE = "0000"

# Relevance weights
BASE_SCORE = 50
EXACT_SCORE = 100
PREFIX_BONUS = 20
EDIT_PENALTY = 5
PHONETIC_BONUS = 15
SUBREGION_BONUS = 10
REGION_BONUS = 5


def _clamp(score: int) -> int:
    return max(0, min(100, score))


def phonetic_code(name: str | None) -> str:
    """Generate the 4-character phonetic code for a name.

    The first character is kept as-is; consecutive letters with the same
    digit collapse to one, even when separated by a dropped letter.

    Examples:
        phonetic_code("Robert") -> "R163"
        phonetic_code("Rupert") -> "R163"
        phonetic_code("Mohapi") -> "M100"
        phonetic_code("") -> "0000"
    """
    if not name:
        return EMPTY_CODE

    text = name.upper().strip()
    if not text:
        return EMPTY_CODE

    code = text[0]
    last_code = PHONETIC_MAP.get(text[0], "0")

    for char in text[1:]:
        if len(code) == 4:
            break
        digit = PHONETIC_MAP.get(char, "0")
        if digit != "0" and digit != last_code:
            code += digit
        # Track the last emitted class even when it was suppressed
        if digit != "0":
            last_code = digit

    return code.ljust(4, "0")


def search_phonetic(name: str | None) -> str:
    """Phonetic codes for each whitespace-separated token, space joined."""
    if not name or not name.strip():
        return ""
    return " ".join(phonetic_code(part) for part in name.split())


def full_name_phonetic(first_name: str | None, last_name: str | None) -> str:
    """Combined phonetic code stored alongside a record ("F### L###")."""
    return f"{phonetic_code(first_name)} {phonetic_code(last_name)}"


def edit_distance(a: str | None, b: str | None) -> int:
    """Case-insensitive Levenshtein distance on trimmed inputs."""
    return Levenshtein.distance((a or "").lower().strip(), (b or "").lower().strip())


def normalize_phone(phone: str | None) -> str:
    """Strip everything except digits."""
    if not phone:
        return ""
    return re.sub(r"[^0-9]", "", phone)


def normalize_name(name: str | None) -> str:
    """Lowercase, trim and collapse whitespace."""
    if not name:
        return ""
    return " ".join(name.lower().split())


def name_relevance(
    query: str | None,
    candidate_first: str | None,
    candidate_last: str | None,
    candidate_phonetic: str | None,
) -> int:
    """Score how well a name query matches a candidate (0-100).

    Starts at 50. An exact full-name match short-circuits to 100. For each
    query token: +20 when it prefixes either name part, -5 per edit of the
    closer name part, +15 when its phonetic code occurs in the candidate's
    combined code. The total is clamped once at the end.
    """
    if query is None or not query.strip():
        return BASE_SCORE

    search = normalize_name(query)
    first = (candidate_first or "").lower()
    last = (candidate_last or "").lower()
    full_name = normalize_name(f"{first} {last}")

    if full_name == search:
        return EXACT_SCORE

    score = BASE_SCORE
    for part in search.split():
        if first.startswith(part) or last.startswith(part):
            score += PREFIX_BONUS

        score -= min(edit_distance(part, first), edit_distance(part, last)) * EDIT_PENALTY

        if candidate_phonetic and phonetic_code(part) in candidate_phonetic:
            score += PHONETIC_BONUS

    return _clamp(score)


def combined_relevance(name_score: int, region_match: bool, subregion_match: bool) -> int:
    """Add location bonuses to a name score, clamped to 0-100."""
    score = name_score
    if subregion_match:
        score += SUBREGION_BONUS
    if region_match:
        score += REGION_BONUS
    return _clamp(score)
