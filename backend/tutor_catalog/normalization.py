"""String normalization used for deduplication and cache keys."""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Dict, List, Tuple

_WHITESPACE = re.compile(r"\s+")
_SPECIAL_CHARS = re.compile(r"[^\w\s]")
_UNIVERSITY_SPECIAL_CHARS = re.compile(r"[^\w\s-]")
_DIGITS = re.compile(r"\d")

_COURSE_ABBREVIATIONS: Dict[str, str] = {
    "b.tech": "btech",
    "b. tech": "btech",
    "bachelor of technology": "btech",
    "m.tech": "mtech",
    "m. tech": "mtech",
    "master of technology": "mtech",
    "b.sc": "bsc",
    "b. sc": "bsc",
    "bachelor of science": "bsc",
    "m.sc": "msc",
    "m. sc": "msc",
    "master of science": "msc",
    "b.com": "bcom",
    "b. com": "bcom",
    "bachelor of commerce": "bcom",
    "m.com": "mcom",
    "master of business administration": "mba",
    "computer science": "cs",
    "information technology": "it",
    "electrical engineering": "ee",
    "mechanical engineering": "me",
    "civil engineering": "ce",
    "electronics and communication": "ece",
}


def _compile_abbreviations(table: Dict[str, str]) -> List[Tuple[re.Pattern[str], str]]:
    # Longest phrase first so "master of science" never loses to a shorter overlap.
    ordered = sorted(table.items(), key=lambda item: len(item[0]), reverse=True)
    return [(re.compile(re.escape(phrase)), replacement) for phrase, replacement in ordered]


_COURSE_PATTERNS = _compile_abbreviations(_COURSE_ABBREVIATIONS)


def normalize_string(
    value: str,
    *,
    remove_special_chars: bool = False,
    remove_numbers: bool = False,
) -> str:
    result = _WHITESPACE.sub(" ", value.lower().strip())
    if remove_special_chars:
        result = _SPECIAL_CHARS.sub("", result)
    if remove_numbers:
        result = _DIGITS.sub("", result)
    if remove_special_chars or remove_numbers:
        result = _WHITESPACE.sub(" ", result).strip()
    return result


def normalize_university_name(name: str) -> str:
    """Lowercase, drop punctuation other than hyphens and collapse whitespace."""
    stripped = _UNIVERSITY_SPECIAL_CHARS.sub("", name.lower().strip())
    return _WHITESPACE.sub(" ", stripped).strip()


def normalize_course_name(name: str) -> str:
    normalized = normalize_string(name)
    for pattern, replacement in _COURSE_PATTERNS:
        normalized = pattern.sub(replacement, normalized)
    return normalized


def normalize_subject_name(name: str) -> str:
    return normalize_string(name)


def normalize_search_query(query: str) -> str:
    return normalize_string(query, remove_special_chars=True)


def content_hash(payload: Any) -> str:
    """Stable SHA-256 digest of a JSON-serialisable payload."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def levenshtein_distance(first: str, second: str) -> int:
    if len(first) < len(second):
        first, second = second, first
    previous = list(range(len(second) + 1))
    for i, left in enumerate(first, start=1):
        current = [i]
        for j, right in enumerate(second, start=1):
            cost = 0 if left == right else 1
            current.append(
                min(
                    previous[j - 1] + cost,
                    current[j - 1] + 1,
                    previous[j] + 1,
                )
            )
        previous = current
    return previous[-1]


def are_similar(first: str, second: str, threshold: float = 0.8) -> bool:
    """Return True when two normalized strings are close enough to be duplicates."""
    if first == second:
        return True
    longer, shorter = (first, second) if len(first) > len(second) else (second, first)
    if not longer:
        return True
    if shorter in longer:
        return len(shorter) / len(longer) >= threshold
    similarity = 1 - levenshtein_distance(first, second) / len(longer)
    return similarity >= threshold


__all__ = [
    "are_similar",
    "content_hash",
    "levenshtein_distance",
    "normalize_course_name",
    "normalize_search_query",
    "normalize_string",
    "normalize_subject_name",
    "normalize_university_name",
]
