"""
Question fingerprints and similarity.

A fingerprint is the (keyword set, numeric-literal set) of a question text.
Two texts are similar when both their number overlap and keyword overlap
exceed the configured thresholds.
"""

import hashlib
import re
from dataclasses import dataclass
from typing import Iterable

from adaptive_practice.learning_engine.config import (
    FINGERPRINT_MAX_KEYWORDS,
    FINGERPRINT_MIN_TOKEN_LENGTH,
    SIMILARITY_KEYWORD_OVERLAP,
    SIMILARITY_NUMBER_OVERLAP,
)

HEBREW_WORD_RE = re.compile(r"[\u05D0-\u05EA]{%d,}" % FINGERPRINT_MIN_TOKEN_LENGTH.value)
NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
WHITESPACE_RE = re.compile(r"\s+")
HASH_STRIP_RE = re.compile(r"[^A-Za-z0-9_\s\u0590-\u05FF]")


@dataclass(frozen=True)
class Fingerprint:
    keywords: frozenset[str]
    numbers: frozenset[str]


def extract_keywords(text: str) -> list[str]:
    """First N Hebrew-script tokens of qualifying length, in text order."""
    return HEBREW_WORD_RE.findall(text or "")[: FINGERPRINT_MAX_KEYWORDS.value]


def extract_numbers(text: str) -> list[str]:
    return NUMBER_RE.findall(text or "")


def fingerprint(text: str) -> Fingerprint:
    return Fingerprint(
        keywords=frozenset(extract_keywords(text)),
        numbers=frozenset(extract_numbers(text)),
    )


def overlap_ratio(a: Iterable[str], b: Iterable[str]) -> float:
    """|A ∩ B| / max(|A|, |B|, 1)."""
    set_a, set_b = set(a), set(b)
    return len(set_a & set_b) / max(len(set_a), len(set_b), 1)


def is_similar_fingerprint(candidate: Fingerprint, other: Fingerprint) -> bool:
    return (
        overlap_ratio(candidate.numbers, other.numbers) > SIMILARITY_NUMBER_OVERLAP.value
        and overlap_ratio(candidate.keywords, other.keywords) > SIMILARITY_KEYWORD_OVERLAP.value
    )


def is_similar(candidate_text: str, recent: Iterable[Fingerprint]) -> bool:
    """True when the candidate is similar to any recent fingerprint."""
    candidate = fingerprint(candidate_text)
    return any(is_similar_fingerprint(candidate, other) for other in recent)


def normalize_for_hash(text: str) -> str:
    normalized = WHITESPACE_RE.sub(" ", (text or "").lower())
    return HASH_STRIP_RE.sub("", normalized).strip()


def content_hash(text: str) -> str:
    """sha256 of the normalized question text, used for store deduplication."""
    return hashlib.sha256(normalize_for_hash(text).encode("utf-8")).hexdigest()
