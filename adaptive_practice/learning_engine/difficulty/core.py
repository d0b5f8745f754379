"""
Pure difficulty-adaptation rules.

- Level <-> label mapping (level is authoritative)
- Lightweight adjustment decision over the last few answers
- Window recommendation over the last ten answers
- Trend detection (recent half vs older half)

No database access here; callers pass answer windows most-recent-first.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Sequence

from adaptive_practice.learning_engine.config import (
    CHECK_DEESCALATE_ANY,
    CHECK_DEESCALATE_FROM_MEDIUM,
    CHECK_ESCALATE_ANY,
    CHECK_ESCALATE_FROM_EASY,
    DIFFICULTY_CHECK_MIN_ANSWERS,
    DIFFICULTY_CHECK_WINDOW,
    DIFFICULTY_RECOMMEND_MIN_ANSWERS,
    DIFFICULTY_RECOMMEND_WINDOW,
    LABEL_LEVELS,
    LEVEL_EASY_MAX,
    LEVEL_MAX,
    LEVEL_MEDIUM_MAX,
    LEVEL_MIN,
    RECOMMEND_HARD_ACCURACY,
    RECOMMEND_MEDIUM_ACCURACY,
    TREND_DELTA_POINTS,
)
from adaptive_practice.learning_engine.constants import DIFFICULTY_ORDER, Difficulty, Trend

DIFFICULTY_NAMES_HE = {
    Difficulty.EASY.value: "קל",
    Difficulty.MEDIUM.value: "בינוני",
    Difficulty.HARD.value: "מאתגר",
}

IDENTITY_FAILURE_REASON = "שגיאה בשמירת תשובה"
NO_HISTORY_MESSAGE = "זו השאלה הראשונה שלך! בואו נתחיל ברמה בינונית"
NO_HISTORY_REASON = "אין נתונים קודמים"


# =============================================================================
# Level / label mapping
# =============================================================================


def clamp_level(level: int) -> int:
    return max(LEVEL_MIN.value, min(LEVEL_MAX.value, int(level)))


def level_to_label(level: int) -> str:
    """level <= 3 easy, 4..7 medium, >= 8 hard."""
    level = clamp_level(level)
    if level <= LEVEL_EASY_MAX.value:
        return Difficulty.EASY.value
    if level <= LEVEL_MEDIUM_MAX.value:
        return Difficulty.MEDIUM.value
    return Difficulty.HARD.value


def label_to_level(label: str) -> int:
    """Representative level for a label."""
    return LABEL_LEVELS.value[Difficulty(label).value]


def step_up(label: str) -> str:
    index = DIFFICULTY_ORDER.index(Difficulty(label))
    return DIFFICULTY_ORDER[min(index + 1, len(DIFFICULTY_ORDER) - 1)].value


def step_down(label: str) -> str:
    index = DIFFICULTY_ORDER.index(Difficulty(label))
    return DIFFICULTY_ORDER[max(index - 1, 0)].value


# =============================================================================
# Window statistics
# =============================================================================


@dataclass(frozen=True)
class AnswerOutcome:
    """One answered exposure as seen by the engine."""

    is_correct: bool
    difficulty: Optional[str] = None


def accuracy_of(outcomes: Sequence[AnswerOutcome]) -> tuple[int, int, float]:
    """(correct, total, accuracy percent)."""
    total = len(outcomes)
    correct = sum(1 for o in outcomes if o.is_correct)
    accuracy = (correct / total) * 100.0 if total else 0.0
    return correct, total, accuracy


def compute_trend(outcomes: Sequence[AnswerOutcome]) -> str:
    """
    Compare accuracy of the more recent half against the older half.

    Args:
        outcomes: Answers most-recent-first

    Returns:
        "improving", "declining" or "stable"
    """
    half = len(outcomes) // 2
    if half == 0:
        return Trend.STABLE.value

    _, _, recent_acc = accuracy_of(outcomes[:half])
    _, _, older_acc = accuracy_of(outcomes[half:])
    delta = recent_acc - older_acc

    if delta > TREND_DELTA_POINTS.value:
        return Trend.IMPROVING.value
    if delta < -TREND_DELTA_POINTS.value:
        return Trend.DECLINING.value
    return Trend.STABLE.value


def need_more_reason(missing: int) -> str:
    return f"צריך עוד {missing} תשובות כדי להתאים את הקושי"


# =============================================================================
# Lightweight adjustment check
# =============================================================================


@dataclass
class AdjustmentDecision:
    """Outcome of a per-answer difficulty check."""

    ok: bool
    should_adjust: bool
    new_difficulty: str
    reason: str
    confidence: float
    accuracy: Optional[float] = None
    correct_count: int = 0
    total_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def decide_adjustment(current: str, outcomes: Sequence[AnswerOutcome]) -> AdjustmentDecision:
    """
    Decision table over the last few answers (most-recent-first).

    Holds the current label until the minimum sample is reached.
    """
    current = Difficulty(current).value
    window = list(outcomes[: DIFFICULTY_CHECK_WINDOW.value])
    required = DIFFICULTY_CHECK_MIN_ANSWERS.value

    if len(window) < required:
        correct, total, accuracy = accuracy_of(window)
        return AdjustmentDecision(
            ok=True,
            should_adjust=False,
            new_difficulty=current,
            reason=need_more_reason(required - len(window)),
            confidence=len(window) / required,
            accuracy=round(accuracy, 1) if total else None,
            correct_count=correct,
            total_count=total,
        )

    correct, total, accuracy = accuracy_of(window)
    new_difficulty = current
    reason = ""

    if accuracy >= CHECK_ESCALATE_ANY.value and current != Difficulty.HARD.value:
        new_difficulty = step_up(current)
        reason = f"מצוין! עניתם נכון על {correct} מתוך {total} שאלות. זמן להעלות רמה!"
    elif accuracy >= CHECK_ESCALATE_FROM_EASY.value and current == Difficulty.EASY.value:
        new_difficulty = Difficulty.MEDIUM.value
        reason = "יפה מאוד! אתם מתקדמים יפה. בואו ננסה משהו קצת יותר מאתגר"
    elif accuracy < CHECK_DEESCALATE_ANY.value and current != Difficulty.EASY.value:
        new_difficulty = step_down(current)
        reason = "בואו נחזור קצת אחורה ונחזק את היסודות"
    elif accuracy < CHECK_DEESCALATE_FROM_MEDIUM.value and current == Difficulty.MEDIUM.value:
        new_difficulty = Difficulty.EASY.value
        reason = "זה בסדר לקחת צעד אחורה. בואו נתרגל עוד קצת ברמה קלה יותר"

    should_adjust = new_difficulty != current
    if not should_adjust:
        reason = f"ממשיכים ברמת קושי {DIFFICULTY_NAMES_HE[current]}"

    return AdjustmentDecision(
        ok=True,
        should_adjust=should_adjust,
        new_difficulty=new_difficulty,
        reason=reason,
        confidence=min(total / DIFFICULTY_CHECK_WINDOW.value, 1.0),
        accuracy=round(accuracy, 1),
        correct_count=correct,
        total_count=total,
    )


def failed_adjustment(current: str) -> AdjustmentDecision:
    """Degraded decision when the student could not be resolved."""
    return AdjustmentDecision(
        ok=False,
        should_adjust=False,
        new_difficulty=current,
        reason=IDENTITY_FAILURE_REASON,
        confidence=0.0,
    )


# =============================================================================
# Recommendation
# =============================================================================


@dataclass
class Recommendation:
    """Difficulty to target for the next question."""

    difficulty: str
    confidence: float
    message: str
    reason: str
    accuracy: Optional[float] = None
    correct_count: int = 0
    total_count: int = 0
    trend: str = Trend.STABLE.value
    distribution: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def recommend_difficulty(
    outcomes: Sequence[AnswerOutcome], current: Optional[str] = None
) -> Recommendation:
    """
    Recommend a label from the last ten answers (most-recent-first).

    No history gives medium with zero confidence. Below the minimum sample the
    current label (medium when unknown) is held.
    """
    window = list(outcomes[: DIFFICULTY_RECOMMEND_WINDOW.value])
    current = Difficulty(current).value if current else Difficulty.MEDIUM.value

    if not window:
        return Recommendation(
            difficulty=Difficulty.MEDIUM.value,
            confidence=0.0,
            message=NO_HISTORY_MESSAGE,
            reason=NO_HISTORY_REASON,
        )

    correct, total, accuracy = accuracy_of(window)
    distribution = {
        label.value: sum(1 for o in window if o.difficulty == label.value)
        for label in DIFFICULTY_ORDER
    }
    trend = compute_trend(window)
    required = DIFFICULTY_RECOMMEND_MIN_ANSWERS.value

    if total < required:
        return Recommendation(
            difficulty=current,
            confidence=total / required,
            message=f"ממשיכים ברמת קושי {DIFFICULTY_NAMES_HE[current]}",
            reason=need_more_reason(required - total),
            accuracy=round(accuracy, 1),
            correct_count=correct,
            total_count=total,
            trend=trend,
            distribution=distribution,
        )

    if accuracy >= RECOMMEND_HARD_ACCURACY.value:
        difficulty = Difficulty.HARD.value
        message = "מעולה! אתם מוכנים לאתגרים"
        reason = f"דיוק גבוה של {accuracy:.1f}%"
    elif accuracy >= RECOMMEND_MEDIUM_ACCURACY.value:
        difficulty = Difficulty.MEDIUM.value
        message = "טוב מאוד! ממשיכים להתקדם"
        reason = f"ביצועים טובים - {accuracy:.1f}% דיוק"
    else:
        difficulty = Difficulty.EASY.value
        message = "בואו נחזק את היסודות"
        reason = f"צריך עוד תרגול - {accuracy:.1f}% דיוק"

    return Recommendation(
        difficulty=difficulty,
        confidence=min(total / DIFFICULTY_RECOMMEND_WINDOW.value, 1.0),
        message=message,
        reason=reason,
        accuracy=round(accuracy, 1),
        correct_count=correct,
        total_count=total,
        trend=trend,
        distribution=distribution,
    )
