"""
Retrieval orchestrator service layer.

get_next_question walks the retrieval tiers (exact cache, curated bank,
topic-level cache), falls through to the generation service, and finally to a
deterministic template. submit_answer checks an answer, records it, refreshes
question statistics and runs the difficulty check.

Public operations return tagged results; only input validation raises
(PracticeInputError).
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adaptive_practice.core.app_exceptions import (
    GenerationError,
    IdentityResolutionError,
    PracticeInputError,
)
from adaptive_practice.core.config import settings
from adaptive_practice.learning_engine.classifier import classify_question
from adaptive_practice.learning_engine.config import DIFFICULTY_RECOMMEND_WINDOW
from adaptive_practice.learning_engine.constants import MatchType, QuestionSource
from adaptive_practice.learning_engine.difficulty.core import recommend_difficulty
from adaptive_practice.learning_engine.difficulty.service import (
    apply_answer,
    get_answer_window,
    get_state,
    parse_difficulty,
    require_topic,
)
from adaptive_practice.learning_engine.identity import normalize_external_id, resolve_student
from adaptive_practice.learning_engine.retrieval.answers import answers_match
from adaptive_practice.learning_engine.retrieval.generation import (
    GenerationRequest,
    QuestionGenerator,
    get_generator,
)
from adaptive_practice.learning_engine.retrieval.store import (
    ServedQuestion,
    increment_usage,
    persist_question,
    refresh_question_stats,
)
from adaptive_practice.learning_engine.retrieval.strategies import (
    RetrievalRequest,
    RetrievalStrategy,
    default_strategies,
)
from adaptive_practice.learning_engine.retrieval.templates import build_template_question
from adaptive_practice.learning_engine.retrieval.topics import is_grade_compatible, is_hebrew
from adaptive_practice.learning_engine.similarity.history import (
    build_avoidance_prompt,
    get_historical_texts,
    get_recent_exposure_ids,
)
from adaptive_practice.learning_engine.similarity.window import (
    RecentExposureWindow,
    get_recent_window,
)
from adaptive_practice.models.exposure import ExposureRecord
from adaptive_practice.models.question_store import QuestionRecord
from adaptive_practice.models.student import Student

logger = logging.getLogger(__name__)

REASON_NO_QUESTION = "no_question_available"
REASON_QUESTION_NOT_FOUND = "question_not_found"
REASON_IDENTITY = "identity_resolution_failed"
REASON_PERSISTENCE = "persistence_failed"


@dataclass
class RetrievalResult:
    """Tagged result of get_next_question."""

    ok: bool
    reason: Optional[str] = None
    question: Optional[ServedQuestion] = None
    match_type: Optional[str] = None
    difficulty: Optional[str] = None
    stats: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "reason": self.reason,
            "question": self.question.to_dict() if self.question else None,
            "match_type": self.match_type,
            "difficulty": self.difficulty,
            "stats": self.stats,
        }


@dataclass
class AnswerResult:
    """Tagged result of submit_answer."""

    ok: bool
    reason: Optional[str] = None
    question_id: Optional[int] = None
    is_correct: Optional[bool] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    solution_steps: list[str] = field(default_factory=list)
    adjustment: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Input validation
# =============================================================================


def _parse_grade(grade: Any) -> Optional[int]:
    if grade is None or grade == "":
        return None
    try:
        value = int(grade)
    except (TypeError, ValueError):
        raise PracticeInputError(f"grade must be an integer 7-12 (got {grade!r})", field="grade") from None
    if not 7 <= value <= 12:
        raise PracticeInputError(f"grade must be between 7 and 12 (got {value})", field="grade")
    return value


def _parse_ids(ids: Any) -> set[int]:
    parsed: set[int] = set()
    for value in ids or ():
        try:
            parsed.add(int(value))
        except (TypeError, ValueError):
            # Non-store ids (e.g. client-side keys) cannot match a store row
            continue
    return parsed


# =============================================================================
# getNextQuestion
# =============================================================================


def _target_difficulty(db: Session, student: Optional[Student], topic_key: str) -> str:
    if student is None:
        return recommend_difficulty([]).difficulty
    state = get_state(db, student.id, topic_key)
    window = get_answer_window(db, student.id, topic_key, DIFFICULTY_RECOMMEND_WINDOW.value)
    return recommend_difficulty(window, state.difficulty if state else None).difficulty


def _run_tiers(
    db: Session, strategies: list[RetrievalStrategy], request: RetrievalRequest
) -> tuple[Optional[ServedQuestion], Optional[MatchType]]:
    for strategy in strategies:
        try:
            served = strategy.try_retrieve(db, request)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                "retrieval_tier_failed",
                extra={"event": "retrieval_tier_failed", "tier": strategy.match_type.value, "error": str(e)},
            )
            continue
        if served is not None:
            logger.info(
                "retrieval_tier_hit",
                extra={
                    "event": "retrieval_tier_hit",
                    "tier": strategy.match_type.value,
                    "question_id": served.question_id,
                    "topic": request.topic,
                },
            )
            return served, strategy.match_type
        logger.debug(
            "retrieval_tier_miss",
            extra={"event": "retrieval_tier_miss", "tier": strategy.match_type.value, "topic": request.topic},
        )
    return None, None


def _persist_new(
    db: Session,
    *,
    text: str,
    answer: str,
    explanation: str,
    hints: list[str],
    solution_steps: list[str],
    source: QuestionSource,
    request: RetrievalRequest,
    origin_ref: Optional[str],
    topic_hint: Optional[str] = None,
    subtopic_hint: Optional[str] = None,
) -> ServedQuestion:
    """Classify and store a new question. Serves it without an id if storing fails."""
    classification = classify_question(
        text, {"grade": request.grade, "topic": topic_hint or (request.topic if is_hebrew(request.topic) else None)}
    )
    topic_label = request.topic if is_hebrew(request.topic) else (topic_hint or classification.topic)
    subtopic_label = subtopic_hint or classification.subtopic
    grade = request.grade or classification.grade

    served = ServedQuestion(
        question_id=None,
        question_text=text,
        correct_answer=answer,
        explanation=explanation,
        hints=list(hints),
        solution_steps=list(solution_steps),
        topic_id=request.topic,
        topic=topic_label,
        subtopic_id=request.subtopic,
        subtopic=subtopic_label,
        grade=grade,
        units=classification.units,
        difficulty=request.difficulty,
        source=source.value,
    )
    try:
        record, created = persist_question(
            db,
            question_text=text,
            correct_answer=answer,
            difficulty=request.difficulty,
            source=source.value,
            explanation=explanation,
            hints=hints,
            solution_steps=solution_steps,
            topic_id=request.topic,
            topic=topic_label,
            subtopic_id=request.subtopic,
            subtopic=subtopic_label,
            grade=grade,
            units=classification.units,
            origin_ref=origin_ref,
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "question_persist_failed",
            extra={"event": "question_persist_failed", "source": source.value, "error": str(e)},
        )
        return served

    if created:
        logger.info(
            "question_persisted",
            extra={"event": "question_persisted", "question_id": record.id, "source": source.value},
        )
    return ServedQuestion.from_record(record)


def _unless_excluded(
    served: ServedQuestion, request: RetrievalRequest, source: QuestionSource
) -> Optional[ServedQuestion]:
    """Drop a new question whose text matched a stored question the student must not see again."""
    if served.question_id is not None and served.question_id in request.excluded_ids:
        logger.info(
            "new_question_already_seen",
            extra={
                "event": "new_question_already_seen",
                "question_id": served.question_id,
                "source": source.value,
                "topic": request.topic,
            },
        )
        return None
    return served


def _generate(
    db: Session,
    generator: Optional[QuestionGenerator],
    request: RetrievalRequest,
    avoid: str,
) -> Optional[ServedQuestion]:
    if generator is None:
        return None
    try:
        generated = generator.generate(
            GenerationRequest(
                topic=request.topic,
                subtopic=request.subtopic,
                difficulty=request.difficulty,
                grade=request.grade,
                personality=settings.GENERATION_PERSONALITY,
                avoid=avoid,
            )
        )
    except GenerationError as e:
        logger.warning(
            "generation_failed",
            extra={
                "event": "generation_failed",
                "error_type": type(e).__name__,
                "error": str(e),
                "topic": request.topic,
            },
        )
        return None

    if not is_grade_compatible(generated.text, request.grade):
        logger.warning(
            "generation_grade_leak",
            extra={"event": "generation_grade_leak", "topic": request.topic, "grade": request.grade},
        )
        return None

    served = _persist_new(
        db,
        text=generated.text,
        answer=generated.answer,
        explanation=generated.explanation,
        hints=generated.hints,
        solution_steps=generated.solution_steps,
        source=QuestionSource.AI_GENERATED,
        request=request,
        origin_ref="generation",
    )
    return _unless_excluded(served, request, QuestionSource.AI_GENERATED)


def _exposure_count(db: Session, student: Optional[Student], topic_key: str) -> int:
    if student is None:
        return 0
    return db.execute(
        select(func.count(ExposureRecord.id)).where(
            ExposureRecord.student_id == student.id,
            ExposureRecord.topic_key == topic_key,
        )
    ).scalar_one()


def _from_template(
    db: Session, student: Optional[Student], student_key: str, request: RetrievalRequest
) -> Optional[ServedQuestion]:
    seed = f"{student_key}:{request.topic}:{request.difficulty}:{_exposure_count(db, student, request.topic)}"
    template = build_template_question(request.topic, request.difficulty, seed, request.subtopic)
    if template is None or not is_grade_compatible(template.question_text, request.grade):
        return None

    served = _persist_new(
        db,
        text=template.question_text,
        answer=template.correct_answer,
        explanation=template.explanation,
        hints=template.hints,
        solution_steps=template.solution_steps,
        source=QuestionSource.TEMPLATE,
        request=request,
        origin_ref=f"template:{template.template}",
        topic_hint=template.topic,
        subtopic_hint=template.subtopic,
    )
    if _unless_excluded(served, request, QuestionSource.TEMPLATE) is None:
        return None

    logger.info(
        "template_fallback_used",
        extra={"event": "template_fallback_used", "template": template.template, "topic": request.topic},
    )
    return served


def _record_shown(
    db: Session,
    student: Optional[Student],
    window: RecentExposureWindow,
    student_key: str,
    served: ServedQuestion,
    request: RetrievalRequest,
) -> None:
    """Usage count, exposure row and session window for a served question."""
    try:
        if served.question_id is not None:
            increment_usage(db, served.question_id)
        if student is not None:
            db.add(
                ExposureRecord(
                    student_id=student.id,
                    question_id=served.question_id,
                    topic_key=request.topic,
                    subtopic_key=request.subtopic,
                    difficulty=served.difficulty,
                    is_correct=None,
                    question_text=served.question_text,
                )
            )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "exposure_record_failed",
            extra={"event": "exposure_record_failed", "question_id": served.question_id, "error": str(e)},
        )
    window.add(student_key, request.topic, served.question_text)


def get_next_question(
    db: Session,
    student_id: str,
    topic: str,
    subtopic: Optional[str] = None,
    difficulty: Optional[str] = None,
    grade: Optional[int] = None,
    exclude_ids: Optional[list[Any]] = None,
    *,
    window: Optional[RecentExposureWindow] = None,
    generator: Optional[QuestionGenerator] = None,
    strategies: Optional[list[RetrievalStrategy]] = None,
) -> RetrievalResult:
    """
    Select or generate the next practice question for a student.

    Args:
        db: Database session
        student_id: External student identifier
        topic: Topic slug or Hebrew label
        subtopic: Optional subtopic slug or label
        difficulty: Target label; recommended from history when omitted
        grade: Student grade (7-12); falls back to the stored grade
        exclude_ids: Store ids already shown in the caller's session
        window: Recent-exposure window (process default when omitted)
        generator: Generation client (process default when omitted)
        strategies: Retrieval tiers (default chain when omitted)

    Returns:
        RetrievalResult; ``ok=False`` with reason "no_question_available" when
        every tier, generation and the template fallback came up empty
    """
    student_key = normalize_external_id(student_id)
    topic_key = require_topic(topic)
    subtopic_key = str(subtopic).strip() if subtopic and str(subtopic).strip() else None
    requested_difficulty = parse_difficulty(difficulty) if difficulty else None
    requested_grade = _parse_grade(grade)
    excluded = _parse_ids(exclude_ids)

    window = window if window is not None else get_recent_window()
    generator = generator if generator is not None else get_generator()

    student: Optional[Student] = None
    try:
        student = resolve_student(db, student_key, grade=requested_grade)
        db.commit()
    except IdentityResolutionError:
        db.rollback()
        logger.warning(
            "retrieval_without_identity",
            extra={"event": "retrieval_without_identity", "topic": topic_key},
        )

    target = requested_difficulty or _target_difficulty(db, student, topic_key)
    effective_grade = requested_grade or (student.grade if student is not None else None)

    if student is not None:
        excluded |= get_recent_exposure_ids(db, student.id)

    recent_entries = window.recent(student_key, topic_key)
    request = RetrievalRequest(
        topic=topic_key,
        subtopic=subtopic_key,
        difficulty=target,
        grade=effective_grade,
        student_id=student.id if student is not None else None,
        excluded_ids=excluded,
        recent=[entry.fingerprint for entry in recent_entries],
    )

    served, match_type = _run_tiers(db, strategies or default_strategies(), request)

    if served is None:
        historical: list[str] = []
        if student is not None:
            historical = get_historical_texts(db, student.id, topic_key)
        avoid = build_avoidance_prompt(recent_entries, historical)

        served = _generate(db, generator, request, avoid)
        match_type = MatchType.GENERATED if served is not None else None

    if served is None:
        served = _from_template(db, student, student_key, request)
        match_type = MatchType.TEMPLATE if served is not None else None

    if served is None:
        db.rollback()
        logger.warning(
            "no_question_available",
            extra={"event": "no_question_available", "topic": topic_key, "difficulty": target},
        )
        return RetrievalResult(ok=False, reason=REASON_NO_QUESTION, difficulty=target)

    _record_shown(db, student, window, student_key, served, request)

    return RetrievalResult(
        ok=True,
        question=served,
        match_type=match_type.value,
        difficulty=target,
        stats={"excluded": len(excluded), "recent_window": len(recent_entries)},
    )


# =============================================================================
# submitAnswer
# =============================================================================


def submit_answer(
    db: Session,
    student_id: str,
    question_id: Any,
    answer_text: Optional[str],
    time_spent: float = 0.0,
    hints_used: int = 0,
) -> AnswerResult:
    """
    Check and record a student's answer to a stored question.

    Recomputes the question's statistics from the exposure log and runs the
    lightweight difficulty check for the question's topic.
    """
    student_key = normalize_external_id(student_id)
    try:
        qid = int(question_id)
    except (TypeError, ValueError):
        raise PracticeInputError("question_id must be an integer", field="question_id") from None
    if time_spent is not None and float(time_spent) < 0:
        raise PracticeInputError("time_spent must be >= 0", field="time_spent")
    if hints_used is not None and int(hints_used) < 0:
        raise PracticeInputError("hints_used must be >= 0", field="hints_used")

    try:
        question = db.get(QuestionRecord, qid)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "answer_question_lookup_failed",
            extra={"event": "answer_question_lookup_failed", "question_id": qid, "error": str(e)},
        )
        return AnswerResult(ok=False, reason=REASON_PERSISTENCE, question_id=qid)
    if question is None:
        return AnswerResult(ok=False, reason=REASON_QUESTION_NOT_FOUND, question_id=qid)

    is_correct = answers_match(answer_text, question.correct_answer)
    result = AnswerResult(
        ok=True,
        question_id=qid,
        is_correct=is_correct,
        correct_answer=question.correct_answer,
        explanation=question.explanation,
        solution_steps=list(question.solution_steps or []),
    )

    try:
        student = resolve_student(db, student_key)
    except IdentityResolutionError:
        db.rollback()
        result.ok = False
        result.reason = REASON_IDENTITY
        return result

    try:
        decision = apply_answer(
            db,
            student,
            question.topic_id or question.topic or "general",
            question.difficulty,
            is_correct,
            question_id=qid,
            subtopic_key=question.subtopic_id,
            time_spent_seconds=time_spent or 0.0,
            hints_used=hints_used or 0,
            question_text=question.question_text,
        )
        refresh_question_stats(db, qid)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "answer_record_failed",
            extra={"event": "answer_record_failed", "question_id": qid, "error": str(e)},
        )
        result.ok = False
        result.reason = REASON_PERSISTENCE
        return result

    result.adjustment = decision.to_dict()
    return result
