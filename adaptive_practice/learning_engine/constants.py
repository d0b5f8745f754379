"""Constants for practice engine algorithms."""

from enum import Enum


class Difficulty(str, Enum):
    """Difficulty labels, ordered easy < medium < hard."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


DIFFICULTY_ORDER = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)


class QuestionSource(str, Enum):
    """Provenance of a stored question."""

    CURATED = "curated"
    AI_GENERATED = "ai_generated"
    TEMPLATE = "template"


class Trend(str, Enum):
    """Direction of recent performance."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class MatchType(str, Enum):
    """Which retrieval tier produced a question."""

    EXACT = "exact"
    CURATED = "curated"
    TOPIC = "topic"
    GENERATED = "generated"
    TEMPLATE = "template"


class AdjustmentKind(str, Enum):
    """Why a difficulty adjustment was logged."""

    CHECK = "check"
    RESET = "reset"
