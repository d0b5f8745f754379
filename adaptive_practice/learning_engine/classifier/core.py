"""
Heuristic content classifier.

Pure functions that label raw question text with grade, unit track, topic,
subtopic and difficulty using the ranked keyword tables in ``tables``.
Classification never raises: any input yields a best-effort label.
"""

from dataclasses import asdict, dataclass
from typing import Any, Iterable, Mapping, Optional

from adaptive_practice.learning_engine.classifier.tables import (
    COMPLEXITY_INDICATORS,
    DEFAULT_UNITS_BY_GRADE,
    GRADE_DIFFICULTY_POINTS,
    GRADE_TIERS,
    MULTI_STEP_MARKERS,
    TOPIC_DIFFICULTY_POINTS,
    TOPIC_TABLE,
    UNIT_DIFFICULTY_POINTS,
    UNIT_TIERS,
    TopicEntry,
)
from adaptive_practice.learning_engine.config import (
    CLASSIFIER_DEFAULT_GRADE,
    CLASSIFIER_DEFAULT_TOPIC,
    CLASSIFIER_HARD_SCORE,
    CLASSIFIER_LENGTH_THRESHOLDS,
    CLASSIFIER_MAX_COMPLEXITY_POINTS,
    CLASSIFIER_MEDIUM_SCORE,
    CLASSIFIER_SUBTOPIC_WEIGHT,
)
from adaptive_practice.learning_engine.constants import Difficulty

VALID_GRADES = range(7, 13)
VALID_UNITS = (3, 4, 5)


@dataclass(frozen=True)
class Classification:
    """Labels assigned to one question text."""

    grade: int
    units: Optional[int]
    topic: str
    subtopic: Optional[str]
    difficulty: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def count_hits(text: str, keywords: Iterable[str]) -> int:
    """Number of keywords that occur in text."""
    return sum(1 for kw in keywords if kw in text)


def first_ranked_match(text: str, table: list[tuple[Any, tuple[str, ...]]]) -> Any | None:
    """Label of the first table row with at least one keyword hit."""
    for label, keywords in table:
        if count_hits(text, keywords) > 0:
            return label
    return None


def _hint_int(metadata: Mapping[str, Any], key: str, allowed: Iterable[int]) -> Optional[int]:
    value = metadata.get(key)
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None
    return value if value in allowed else None


def detect_grade(text: str, grade_hint: Optional[int] = None) -> int:
    """Most advanced grade tier with a keyword hit, else the hint, else the default."""
    grade = first_ranked_match(text, GRADE_TIERS)
    if grade is not None:
        return grade
    return grade_hint or CLASSIFIER_DEFAULT_GRADE.value


def detect_units(text: str, grade: int, units_hint: Optional[int] = None) -> Optional[int]:
    """
    Unit track for grades 10-12.

    A 5-unit keyword wins outright. Otherwise the highest tier with a hit is
    used; at grade 10 a 4-unit signal still yields 4.
    """
    if grade < 10:
        return None

    units = first_ranked_match(text, UNIT_TIERS)
    if units is not None:
        return units

    if units_hint:
        return units_hint
    return DEFAULT_UNITS_BY_GRADE.get(grade)


def score_topic(text: str, entry: TopicEntry) -> tuple[int, Optional[str]]:
    """
    Best (score, subtopic) for one topic; (0, None) when the topic has no keyword hit.

    Each subtopic scores keyword_matches + weight * subtopic_matches and the
    first highest wins, so a topic hit with no subtopic hit keeps the first
    subtopic.
    """
    keyword_matches = count_hits(text, entry.keywords)
    if keyword_matches == 0:
        return 0, None

    best_score = keyword_matches
    best_subtopic: Optional[str] = entry.subtopics[0][0] if entry.subtopics else None
    for subtopic, keywords in entry.subtopics:
        score = keyword_matches + CLASSIFIER_SUBTOPIC_WEIGHT.value * count_hits(text, keywords)
        if score > best_score:
            best_score = score
            best_subtopic = subtopic
    return best_score, best_subtopic


def detect_topic(text: str, topic_hint: Optional[str] = None) -> tuple[str, Optional[str]]:
    """Highest-scoring (topic, subtopic) across the topic table. Ties keep the first."""
    best_topic: Optional[str] = None
    best_subtopic: Optional[str] = None
    best_score = 0

    for entry in TOPIC_TABLE:
        score, subtopic = score_topic(text, entry)
        if score > best_score:
            best_topic, best_subtopic, best_score = entry.label, subtopic, score

    if best_topic is None:
        return topic_hint or CLASSIFIER_DEFAULT_TOPIC.value, None
    return best_topic, best_subtopic


def difficulty_score(text: str, grade: int, units: Optional[int], topic: str) -> int:
    """Additive difficulty points."""
    score = 0

    for min_grade, points in GRADE_DIFFICULTY_POINTS:
        if grade >= min_grade:
            score += points
            break

    score += UNIT_DIFFICULTY_POINTS.get(units, 0)

    for points, topics in TOPIC_DIFFICULTY_POINTS:
        if topic in topics:
            score += points
            break

    score += min(count_hits(text, COMPLEXITY_INDICATORS), CLASSIFIER_MAX_COMPLEXITY_POINTS.value)

    if count_hits(text, MULTI_STEP_MARKERS) > 0:
        score += 1

    for threshold in CLASSIFIER_LENGTH_THRESHOLDS.value:
        if len(text) > threshold:
            score += 1

    return score


def score_to_difficulty(score: int) -> str:
    if score >= CLASSIFIER_HARD_SCORE.value:
        return Difficulty.HARD.value
    if score >= CLASSIFIER_MEDIUM_SCORE.value:
        return Difficulty.MEDIUM.value
    return Difficulty.EASY.value


def classify_question(text: Any, metadata: Optional[Mapping[str, Any]] = None) -> Classification:
    """
    Label question text with grade, unit track, topic, subtopic and difficulty.

    Args:
        text: Raw question text (non-string input is treated as empty)
        metadata: Optional provenance hints: ``grade``, ``units``, ``topic``

    Returns:
        Classification (deterministic for a given input)
    """
    normalized = text.lower() if isinstance(text, str) else ""
    metadata = metadata if isinstance(metadata, Mapping) else {}

    grade = detect_grade(normalized, _hint_int(metadata, "grade", VALID_GRADES))
    units = detect_units(normalized, grade, _hint_int(metadata, "units", VALID_UNITS))

    topic_hint = metadata.get("topic")
    topic, subtopic = detect_topic(
        normalized, topic_hint if isinstance(topic_hint, str) and topic_hint.strip() else None
    )

    difficulty = score_to_difficulty(difficulty_score(normalized, grade, units, topic))

    return Classification(
        grade=grade,
        units=units,
        topic=topic,
        subtopic=subtopic,
        difficulty=difficulty,
    )
