import hashlib
import re
from collections import Counter
from typing import Dict

STRING_ID_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def compute_sha256(text: str) -> str:
    """Compute SHA-256 hash of a string"""
    # surrogatepass keeps lone surrogates hashable
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()


def is_palindrome(text: str) -> bool:
    """Check if string is palindrome (case-insensitive, alphanumerics only)"""
    cleaned = "".join(ch for ch in text if ch.isalnum()).lower()
    # "!!!" has nothing left to compare
    return bool(cleaned) and cleaned == cleaned[::-1]


def count_unique_characters(text: str) -> int:
    """Count distinct characters in string"""
    return len(set(text))


def count_words(text: str) -> int:
    """Count words separated by whitespace"""
    return len(text.split())


def get_character_frequency(text: str) -> Dict[str, int]:
    """Get frequency map of each character"""
    return dict(Counter(text))


def analyze_string(value: str) -> Dict:
    """Analyze a string and return all computed properties.

    A new dict is built on every call; nothing is shared between calls.
    """
    return {
        "length": len(value),
        "is_palindrome": is_palindrome(value),
        "unique_characters": count_unique_characters(value),
        "word_count": count_words(value),
        "sha256_hash": compute_sha256(value),
        "character_frequency_map": get_character_frequency(value),
    }


def normalize_value(value: str) -> str:
    """Canonical form of an incoming value: surrounding whitespace removed."""
    return value.strip()


def compute_string_id(value: str) -> str:
    """Identifier of a value, computed on its canonical form."""
    return compute_sha256(normalize_value(value))


def has_lone_surrogate(value: str) -> bool:
    """True when value cannot be encoded as UTF-8 (unpaired surrogate code points)."""
    return any("\ud800" <= ch <= "\udfff" for ch in value)


def is_valid_string_id(string_id: str) -> bool:
    return bool(STRING_ID_PATTERN.match(string_id or ""))
