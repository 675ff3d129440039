"""Translate filter constraints into SQLAlchemy predicates on StringRecord.

Two entry points share one set of semantics:

* ``translate`` takes raw query-string values (always text) and parses them.
* ``translate_interpreted`` takes the JSON object produced by a natural
  language interpreter, where values must already carry their real types.

Both return ``(predicate, filters_applied)``, where ``predicate`` is a list of
clauses to AND together and ``filters_applied`` is the typed filter dict.
Keys outside ``FILTER_KEYS`` are ignored.
"""
import re
from typing import Any, Dict, List, Mapping, Tuple

from string_analyzer.errors import FilterError, FilterConflictError
from string_analyzer.models.string_record import StringRecord

FILTER_KEYS = ("is_palindrome", "min_length", "max_length", "word_count", "contains_character")
INTEGER_FILTERS = ("min_length", "max_length", "word_count")

_NON_NEGATIVE_INT = re.compile(r"^[0-9]+$")

# Largest value a 64-bit INTEGER column can be compared against
MAX_FILTER_INT = 2**63 - 1

# Closed schema handed to the interpreter; mirrors FILTER_KEYS.
INTERPRETER_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "is_palindrome": {
            "type": "BOOLEAN",
            "description": "Set to true if the query asks for palindromes, false if it excludes them.",
        },
        "min_length": {
            "type": "INTEGER",
            "description": "Minimum string length. 'longer than X' means X+1, 'at least X' means X.",
        },
        "max_length": {
            "type": "INTEGER",
            "description": "Maximum string length. 'shorter than X' means X-1, 'up to X' means X.",
        },
        "word_count": {
            "type": "INTEGER",
            "description": "Exact number of words, e.g. 'single word' is 1, 'three words' is 3.",
        },
        "contains_character": {
            "type": "STRING",
            "description": "A single lowercase character the string must contain; 'first vowel' is 'a'.",
        },
    },
    "description": "Structured string filters. Only include fields explicitly mentioned or strongly implied.",
}

Predicate = List[Any]


def parse_query_filters(raw: Mapping[str, str]) -> Dict[str, Any]:
    """Parse query-string values into typed filters."""
    filters: Dict[str, Any] = {}

    for key in FILTER_KEYS:
        if key not in raw:
            continue
        value = raw[key]

        if key == "is_palindrome":
            if value not in ("true", "false"):
                raise FilterError("Invalid value for is_palindrome; must be 'true' or 'false'", key=key)
            filters[key] = value == "true"
        elif key in INTEGER_FILTERS:
            if not _NON_NEGATIVE_INT.match(value or ""):
                raise FilterError(f"Invalid value for {key}; must be a non-negative integer", key=key)
            # Length check first: int() refuses very long digit strings
            if len(value.lstrip("0")) > len(str(MAX_FILTER_INT)) or int(value) > MAX_FILTER_INT:
                raise FilterError(f"Invalid value for {key}; must not exceed {MAX_FILTER_INT}", key=key)
            filters[key] = int(value)
        elif key == "contains_character":
            if len(value) != 1:
                raise FilterError("contains_character must be a single character", key=key)
            filters[key] = value

    check_length_range(filters)
    return filters


def validate_interpreted_filters(parsed: Mapping[str, Any]) -> Dict[str, Any]:
    """Type-check filters produced by an interpreter. ``None`` means absent."""
    filters: Dict[str, Any] = {}

    for key in FILTER_KEYS:
        value = parsed.get(key)
        if value is None:
            continue

        if key == "is_palindrome":
            if not isinstance(value, bool):
                raise FilterError("is_palindrome must be a boolean", key=key)
        elif key in INTEGER_FILTERS:
            # bool is a subclass of int
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise FilterError(f"{key} must be a non-negative integer", key=key)
            if value > MAX_FILTER_INT:
                raise FilterError(f"{key} must not exceed {MAX_FILTER_INT}", key=key)
        elif key == "contains_character":
            if not isinstance(value, str) or len(value) != 1:
                raise FilterError("contains_character must be a single character string", key=key)

        filters[key] = value

    check_length_range(filters)
    return filters


def check_length_range(filters: Mapping[str, Any]) -> None:
    min_length = filters.get("min_length")
    max_length = filters.get("max_length")
    if min_length is not None and max_length is not None and min_length > max_length:
        raise FilterConflictError(
            f"Conflicting filters: min_length ({min_length}) cannot be greater than max_length ({max_length})"
        )


def build_predicate(filters: Mapping[str, Any]) -> Predicate:
    """Turn typed filters into clauses on StringRecord."""
    clauses: Predicate = []

    if "is_palindrome" in filters:
        clauses.append(StringRecord.is_palindrome == filters["is_palindrome"])

    if "min_length" in filters:
        clauses.append(StringRecord.length >= filters["min_length"])

    if "max_length" in filters:
        clauses.append(StringRecord.length <= filters["max_length"])

    if "word_count" in filters:
        clauses.append(StringRecord.word_count == filters["word_count"])

    if "contains_character" in filters:
        # Case-insensitive membership; autoescape keeps '%' and '_' literal
        clauses.append(
            StringRecord.value_lower.contains(filters["contains_character"].lower(), autoescape=True)
        )

    return clauses


def translate(raw: Mapping[str, str]) -> Tuple[Predicate, Dict[str, Any]]:
    filters = parse_query_filters(raw)
    return build_predicate(filters), filters


def translate_interpreted(parsed: Mapping[str, Any]) -> Tuple[Predicate, Dict[str, Any]]:
    filters = validate_interpreted_filters(parsed)
    return build_predicate(filters), filters
