"""
Difficulty engine service layer.

Handles database operations around the pure rules in ``core``:
recording answers, maintaining DifficultyState counters, logging adjustments,
and serving recommendations.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from adaptive_practice.core.app_exceptions import IdentityResolutionError, PracticeInputError
from adaptive_practice.learning_engine.config import (
    DIFFICULTY_CHECK_WINDOW,
    DIFFICULTY_RECOMMEND_WINDOW,
)
from adaptive_practice.learning_engine.constants import AdjustmentKind, Difficulty, Trend
from adaptive_practice.learning_engine.difficulty.core import (
    AdjustmentDecision,
    AnswerOutcome,
    Recommendation,
    accuracy_of,
    compute_trend,
    decide_adjustment,
    failed_adjustment,
    label_to_level,
    level_to_label,
    recommend_difficulty,
)
from adaptive_practice.learning_engine.identity import find_student, resolve_student
from adaptive_practice.models.difficulty import DifficultyAdjustment, DifficultyState
from adaptive_practice.models.exposure import ExposureRecord
from adaptive_practice.models.student import Student

logger = logging.getLogger(__name__)

RESET_REASON = "איפוס רמת קושי"
RESET_IDENTITY_FAILURE = "identity_resolution_failed"


def parse_difficulty(value: Any, field: str = "difficulty") -> str:
    """Validate a difficulty label from caller input."""
    try:
        return Difficulty(str(value).strip().lower()).value
    except ValueError:
        raise PracticeInputError(
            f"difficulty must be one of easy, medium, hard (got {value!r})", field=field
        ) from None


def require_topic(topic: Any) -> str:
    if topic is None or not str(topic).strip():
        raise PracticeInputError("topic is required", field="topic")
    return str(topic).strip()


def get_state(db: Session, student_id: int, topic_key: str) -> Optional[DifficultyState]:
    return db.execute(
        select(DifficultyState).where(
            DifficultyState.student_id == student_id,
            DifficultyState.topic_key == topic_key,
        )
    ).scalar_one_or_none()


def get_or_create_state(
    db: Session, student_id: int, topic_key: str, initial: str = Difficulty.MEDIUM.value
) -> DifficultyState:
    """Get or lazily create the state for (student, topic)."""
    state = get_state(db, student_id, topic_key)
    if state is not None:
        return state

    level = label_to_level(initial)
    try:
        with db.begin_nested():
            state = DifficultyState(
                student_id=student_id,
                topic_key=topic_key,
                level=level,
                difficulty=level_to_label(level),
            )
            db.add(state)
    except IntegrityError:
        state = get_state(db, student_id, topic_key)
    return state


def get_answer_window(
    db: Session, student_id: int, topic_key: Optional[str], limit: int
) -> list[AnswerOutcome]:
    """Last `limit` answered exposures, most-recent-first."""
    stmt = select(ExposureRecord.is_correct, ExposureRecord.difficulty).where(
        ExposureRecord.student_id == student_id,
        ExposureRecord.is_correct.is_not(None),
    )
    if topic_key:
        stmt = stmt.where(ExposureRecord.topic_key == topic_key)
    stmt = stmt.order_by(ExposureRecord.created_at.desc(), ExposureRecord.id.desc()).limit(limit)
    return [
        AnswerOutcome(is_correct=bool(row.is_correct), difficulty=row.difficulty)
        for row in db.execute(stmt)
    ]


def _log_adjustment(
    db: Session,
    state: DifficultyState,
    from_label: str,
    from_level: int,
    reason: str,
    accuracy: Optional[float],
    kind: AdjustmentKind,
) -> None:
    db.add(
        DifficultyAdjustment(
            student_id=state.student_id,
            topic_key=state.topic_key,
            kind=kind.value,
            from_difficulty=from_label,
            to_difficulty=state.difficulty,
            from_level=from_level,
            to_level=state.level,
            reason=reason,
            accuracy=accuracy,
        )
    )


def apply_answer(
    db: Session,
    student: Student,
    topic_key: str,
    current: str,
    is_correct: bool,
    *,
    question_id: Optional[int] = None,
    subtopic_key: Optional[str] = None,
    time_spent_seconds: float = 0.0,
    hints_used: int = 0,
    question_text: Optional[str] = None,
) -> AdjustmentDecision:
    """
    Record one answer and run the lightweight check.

    Appends an ExposureRecord, bumps the state counters with a single UPDATE,
    and applies/logs an adjustment when the decision table calls for one.
    Does not commit.
    """
    db.add(
        ExposureRecord(
            student_id=student.id,
            question_id=question_id,
            topic_key=topic_key,
            subtopic_key=subtopic_key,
            difficulty=current,
            is_correct=bool(is_correct),
            time_spent_seconds=float(time_spent_seconds or 0.0),
            hints_used=int(hints_used or 0),
            question_text=question_text,
        )
    )
    db.flush()

    state = get_or_create_state(db, student.id, topic_key, initial=current)

    check_window = get_answer_window(db, student.id, topic_key, DIFFICULTY_CHECK_WINDOW.value)
    decision = decide_adjustment(current, check_window)

    recommend_window = get_answer_window(
        db, student.id, topic_key, DIFFICULTY_RECOMMEND_WINDOW.value
    )
    _, _, recent_accuracy = accuracy_of(recommend_window)

    db.execute(
        update(DifficultyState)
        .where(DifficultyState.id == state.id)
        .values(
            questions_answered=DifficultyState.questions_answered + 1,
            correct_count=DifficultyState.correct_count + (1 if is_correct else 0),
            recent_accuracy=round(recent_accuracy, 1),
            trend=compute_trend(recommend_window),
        )
        .execution_options(synchronize_session=False)
    )
    db.refresh(state)

    from_label, from_level = state.difficulty, state.level
    if decision.should_adjust:
        state.level = label_to_level(decision.new_difficulty)
        state.difficulty = level_to_label(state.level)
        _log_adjustment(
            db, state, from_label, from_level, decision.reason, decision.accuracy, AdjustmentKind.CHECK
        )
        logger.info(
            "difficulty_adjusted",
            extra={
                "event": "difficulty_adjusted",
                "student_id": student.id,
                "topic": topic_key,
                "from": from_label,
                "to": state.difficulty,
                "accuracy": decision.accuracy,
            },
        )
    elif state.difficulty != current:
        # Caller is practicing at a different label than stored; follow the caller
        state.level = label_to_level(current)
        state.difficulty = level_to_label(state.level)
    db.flush()

    return decision


def check_adjustment(
    db: Session, external_id: str, topic: str, difficulty: str, is_correct: bool
) -> AdjustmentDecision:
    """
    Record an answer and decide whether the student's difficulty should change.

    Identity failures degrade to ``shouldAdjust=False`` with zero confidence.
    """
    topic_key = require_topic(topic)
    current = parse_difficulty(difficulty)

    try:
        student = resolve_student(db, external_id)
    except IdentityResolutionError:
        db.rollback()
        return failed_adjustment(current)

    try:
        decision = apply_answer(db, student, topic_key, current, bool(is_correct))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "difficulty_check_failed",
            extra={"event": "difficulty_check_failed", "topic": topic_key, "error": str(e)},
        )
        return failed_adjustment(current)
    return decision


def get_recommended_difficulty(
    db: Session, external_id: str, topic: Optional[str] = None
) -> Recommendation:
    """Recommend the next difficulty from the last ten answers. Read-only."""
    topic_key = str(topic).strip() if topic is not None and str(topic).strip() else None

    try:
        student = find_student(db, external_id)
    except SQLAlchemyError as e:
        logger.error(
            "recommendation_lookup_failed",
            extra={"event": "recommendation_lookup_failed", "error": str(e)},
        )
        return recommend_difficulty([])
    if student is None:
        return recommend_difficulty([])

    current = None
    if topic_key:
        state = get_state(db, student.id, topic_key)
        current = state.difficulty if state is not None else None

    window = get_answer_window(db, student.id, topic_key, DIFFICULTY_RECOMMEND_WINDOW.value)
    return recommend_difficulty(window, current)


def _state_to_dict(state: DifficultyState) -> dict[str, Any]:
    return {
        "topic": state.topic_key,
        "difficulty": state.difficulty,
        "level": state.level,
        "questions_answered": state.questions_answered,
        "correct_count": state.correct_count,
        "recent_accuracy": state.recent_accuracy,
        "trend": state.trend,
        "updated_at": state.updated_at.isoformat() if state.updated_at else None,
    }


def get_difficulty_progression(db: Session, external_id: str, topic: str) -> dict[str, Any]:
    """Current state for (student, topic) plus its adjustment history, oldest first."""
    topic_key = require_topic(topic)
    student = find_student(db, external_id)
    if student is None:
        return {"state": None, "history": []}

    state = get_state(db, student.id, topic_key)
    history = db.execute(
        select(DifficultyAdjustment)
        .where(
            DifficultyAdjustment.student_id == student.id,
            DifficultyAdjustment.topic_key == topic_key,
        )
        .order_by(DifficultyAdjustment.created_at.asc(), DifficultyAdjustment.id.asc())
    ).scalars()

    return {
        "state": _state_to_dict(state) if state is not None else None,
        "history": [
            {
                "kind": entry.kind,
                "from_difficulty": entry.from_difficulty,
                "to_difficulty": entry.to_difficulty,
                "from_level": entry.from_level,
                "to_level": entry.to_level,
                "reason": entry.reason,
                "accuracy": entry.accuracy,
                "created_at": entry.created_at.isoformat() if entry.created_at else None,
            }
            for entry in history
        ],
    }


def reset_difficulty(db: Session, external_id: str, topic: str) -> dict[str, Any]:
    """
    Return a (student, topic) to medium and log the reset.

    When the student cannot be resolved nothing is written and a default
    medium state is returned with ok=False.
    """
    topic_key = require_topic(topic)
    try:
        student = resolve_student(db, external_id)
    except IdentityResolutionError:
        db.rollback()
        logger.warning(
            "difficulty_reset_without_identity",
            extra={"event": "difficulty_reset_without_identity", "topic": topic_key},
        )
        level = label_to_level(Difficulty.MEDIUM.value)
        return {
            "ok": False,
            "reason": RESET_IDENTITY_FAILURE,
            "topic": topic_key,
            "difficulty": level_to_label(level),
            "level": level,
            "questions_answered": 0,
            "correct_count": 0,
            "recent_accuracy": 0.0,
            "trend": Trend.STABLE.value,
            "updated_at": None,
        }
    state = get_or_create_state(db, student.id, topic_key)

    from_label, from_level = state.difficulty, state.level
    state.level = label_to_level(Difficulty.MEDIUM.value)
    state.difficulty = level_to_label(state.level)
    _log_adjustment(db, state, from_label, from_level, RESET_REASON, None, AdjustmentKind.RESET)
    db.commit()

    logger.info(
        "difficulty_reset",
        extra={"event": "difficulty_reset", "student_id": student.id, "topic": topic_key},
    )
    return _state_to_dict(state)


def get_difficulty_stats(db: Session, external_id: str) -> list[dict[str, Any]]:
    """All topic states for a student, highest recent accuracy first."""
    student = find_student(db, external_id)
    if student is None:
        return []
    states = db.execute(
        select(DifficultyState)
        .where(DifficultyState.student_id == student.id)
        .order_by(DifficultyState.recent_accuracy.desc(), DifficultyState.topic_key.asc())
    ).scalars()
    return [_state_to_dict(state) for state in states]
