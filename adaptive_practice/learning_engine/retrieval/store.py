"""
Question store queries and writes.

- Ranked candidate queries for the cache tiers and the curated bank
- Insert-or-reuse persistence keyed by content hash
- Atomic usage and statistics updates
- Aggregate store statistics
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any, Iterable, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from adaptive_practice.learning_engine.config import (
    CURATED_MIN_GRADE,
    QUALITY_BASE,
    QUALITY_INITIAL,
    QUALITY_MAX,
    QUALITY_MIN,
    QUALITY_SUCCESS_MIN_USAGE,
    QUALITY_TIERS,
    QUALITY_USAGE_BONUS,
    RETRIEVAL_CANDIDATE_LIMIT,
)
from adaptive_practice.learning_engine.constants import DIFFICULTY_ORDER, QuestionSource
from adaptive_practice.learning_engine.retrieval.topics import reserved_keywords_above
from adaptive_practice.learning_engine.similarity.fingerprint import content_hash
from adaptive_practice.models.exposure import ExposureRecord
from adaptive_practice.models.question_store import CuratedQuestion, QuestionRecord

logger = logging.getLogger(__name__)

CURATED_REF_PREFIX = "curated:"


@dataclass
class ServedQuestion:
    """A question as returned to the caller."""

    question_id: Optional[int]
    question_text: str
    correct_answer: str
    explanation: str = ""
    hints: list[str] = field(default_factory=list)
    solution_steps: list[str] = field(default_factory=list)
    topic_id: Optional[str] = None
    topic: Optional[str] = None
    subtopic_id: Optional[str] = None
    subtopic: Optional[str] = None
    grade: Optional[int] = None
    units: Optional[int] = None
    difficulty: str = "medium"
    source: str = QuestionSource.CURATED.value
    quality_score: Optional[float] = None
    usage_count: int = 0
    success_rate: float = 0.0

    @classmethod
    def from_record(cls, record: QuestionRecord) -> "ServedQuestion":
        return cls(
            question_id=record.id,
            question_text=record.question_text,
            correct_answer=record.correct_answer,
            explanation=record.explanation or "",
            hints=list(record.hints or []),
            solution_steps=list(record.solution_steps or []),
            topic_id=record.topic_id,
            topic=record.topic,
            subtopic_id=record.subtopic_id,
            subtopic=record.subtopic,
            grade=record.grade,
            units=record.units,
            difficulty=record.difficulty,
            source=record.source,
            quality_score=record.quality_score,
            usage_count=record.usage_count or 0,
            success_rate=record.success_rate or 0.0,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Quality score
# =============================================================================


def initial_quality(source: str) -> float:
    return QUALITY_INITIAL.value.get(source, QUALITY_BASE.value)


def compute_quality_score(usage_count: int, success_rate: float) -> float:
    """clamp(30, 100, 50 + success part + usage bonus)."""
    score = QUALITY_BASE.value
    if usage_count >= QUALITY_SUCCESS_MIN_USAGE.value:
        score += (success_rate - 50.0) / 2.0
    for min_usage, bonus in QUALITY_USAGE_BONUS.value:
        if usage_count >= min_usage:
            score += bonus
            break
    return max(QUALITY_MIN.value, min(QUALITY_MAX.value, score))


def quality_tier(quality_score: float) -> int:
    for min_quality, tier in QUALITY_TIERS.value:
        if quality_score >= min_quality:
            return tier
    return 1


def _quality_tier_expr():
    return case(
        *[(QuestionRecord.quality_score >= q, tier) for q, tier in QUALITY_TIERS.value],
        else_=1,
    )


def _quality_score_expr(success_rate_expr):
    """SQL form of compute_quality_score; clamps with CASE for portability."""
    usage = QuestionRecord.usage_count
    success_part = case(
        (usage >= QUALITY_SUCCESS_MIN_USAGE.value, (success_rate_expr - 50.0) / 2.0),
        else_=0.0,
    )
    bonus = case(
        *[(usage >= min_usage, b) for min_usage, b in QUALITY_USAGE_BONUS.value],
        else_=0.0,
    )
    raw = QUALITY_BASE.value + success_part + bonus
    return case(
        (raw < QUALITY_MIN.value, QUALITY_MIN.value),
        (raw > QUALITY_MAX.value, QUALITY_MAX.value),
        else_=raw,
    )


# =============================================================================
# Candidate queries
# =============================================================================


def _exclude_reserved(stmt, column, grade: Optional[int]):
    if grade:
        for term in reserved_keywords_above(grade):
            stmt = stmt.where(~column.ilike(f"%{term}%"))
    return stmt


def find_cached_candidates(
    db: Session,
    *,
    topic_id: str,
    difficulty: str,
    subtopic_id: Optional[str] = None,
    grade: Optional[int] = None,
    exclude_ids: Iterable[int] = (),
    limit: Optional[int] = None,
) -> list[QuestionRecord]:
    """
    Active store questions for a topic, best first.

    Order: quality tier desc, usage_count asc (spread load), random.
    ``subtopic_id=None`` matches any subtopic.
    """
    stmt = select(QuestionRecord).where(
        QuestionRecord.is_active.is_(True),
        QuestionRecord.topic_id == topic_id,
        QuestionRecord.difficulty == difficulty,
    )
    if subtopic_id:
        stmt = stmt.where(QuestionRecord.subtopic_id == subtopic_id)
    if grade:
        stmt = stmt.where((QuestionRecord.grade == grade) | QuestionRecord.grade.is_(None))
    excluded = [qid for qid in exclude_ids if qid is not None]
    if excluded:
        stmt = stmt.where(QuestionRecord.id.not_in(excluded))
    stmt = _exclude_reserved(stmt, QuestionRecord.question_text, grade)

    stmt = stmt.order_by(
        _quality_tier_expr().desc(),
        QuestionRecord.usage_count.asc(),
        func.random(),
    ).limit(limit or RETRIEVAL_CANDIDATE_LIMIT.value)
    return list(db.execute(stmt).scalars().all())


def curated_ids_for_records(db: Session, record_ids: Iterable[int]) -> set[int]:
    """Curated bank ids behind already-served store records."""
    ids = [rid for rid in record_ids if rid is not None]
    if not ids:
        return set()
    refs = db.execute(
        select(QuestionRecord.origin_ref).where(
            QuestionRecord.id.in_(ids),
            QuestionRecord.origin_ref.like(f"{CURATED_REF_PREFIX}%"),
        )
    ).scalars()
    curated: set[int] = set()
    for ref in refs:
        try:
            curated.add(int(ref[len(CURATED_REF_PREFIX) :]))
        except (TypeError, ValueError):
            continue
    return curated


def find_curated_candidates(
    db: Session,
    *,
    labels: list[str],
    difficulty: Optional[str],
    grade: Optional[int] = None,
    exclude_curated_ids: Iterable[int] = (),
    limit: Optional[int] = None,
) -> list[CuratedQuestion]:
    """Curated bank questions for any of the labels within the grade window max(7, g-1)..g."""
    if not labels:
        return []
    stmt = select(CuratedQuestion).where(
        CuratedQuestion.is_active.is_(True),
        CuratedQuestion.topic.in_(labels),
    )
    if grade:
        stmt = stmt.where(
            CuratedQuestion.grade_level >= max(CURATED_MIN_GRADE.value, grade - 1),
            CuratedQuestion.grade_level <= grade,
        )
    if difficulty:
        stmt = stmt.where(CuratedQuestion.difficulty == difficulty)
    excluded = list(exclude_curated_ids)
    if excluded:
        stmt = stmt.where(CuratedQuestion.id.not_in(excluded))
    stmt = _exclude_reserved(stmt, CuratedQuestion.question_text, grade)

    stmt = stmt.order_by(func.random()).limit(limit or RETRIEVAL_CANDIDATE_LIMIT.value)
    return list(db.execute(stmt).scalars().all())


# =============================================================================
# Writes
# =============================================================================


def get_by_hash(db: Session, question_hash: str) -> Optional[QuestionRecord]:
    return db.execute(
        select(QuestionRecord).where(QuestionRecord.content_hash == question_hash)
    ).scalar_one_or_none()


def persist_question(
    db: Session,
    *,
    question_text: str,
    correct_answer: str,
    difficulty: str,
    source: str,
    explanation: str = "",
    hints: Optional[list[str]] = None,
    solution_steps: Optional[list[str]] = None,
    topic_id: Optional[str] = None,
    topic: Optional[str] = None,
    subtopic_id: Optional[str] = None,
    subtopic: Optional[str] = None,
    grade: Optional[int] = None,
    units: Optional[int] = None,
    origin_ref: Optional[str] = None,
) -> tuple[QuestionRecord, bool]:
    """
    Insert a question, or reuse the existing record with the same content hash.

    Returns:
        (record, created)
    """
    question_hash = content_hash(question_text)
    existing = get_by_hash(db, question_hash)
    if existing is not None:
        logger.info(
            "question_dedup_hit",
            extra={"event": "question_dedup_hit", "question_id": existing.id, "source": source},
        )
        return existing, False

    record = QuestionRecord(
        content_hash=question_hash,
        question_text=question_text,
        correct_answer=correct_answer,
        explanation=explanation or "",
        hints=list(hints or []),
        solution_steps=list(solution_steps or []),
        topic_id=topic_id,
        topic=topic,
        subtopic_id=subtopic_id,
        subtopic=subtopic,
        grade=grade,
        units=units,
        difficulty=difficulty,
        source=source,
        origin_ref=origin_ref,
        quality_score=initial_quality(source),
    )
    try:
        with db.begin_nested():
            db.add(record)
    except IntegrityError:
        # Concurrent insert of the same text; reuse the winner
        existing = get_by_hash(db, question_hash)
        if existing is None:
            raise
        return existing, False
    return record, True


def increment_usage(db: Session, question_id: int) -> None:
    """usage_count + 1 as a single UPDATE."""
    db.execute(
        update(QuestionRecord)
        .where(QuestionRecord.id == question_id)
        .values(
            usage_count=QuestionRecord.usage_count + 1,
            last_used_at=datetime.now(UTC),
        )
        .execution_options(synchronize_session=False)
    )


def refresh_question_stats(db: Session, question_id: Optional[int] = None) -> int:
    """
    Recompute success rate, average time and quality from the exposure log.

    One UPDATE with correlated subqueries, so concurrent answers cannot lose
    updates. ``question_id=None`` refreshes every record.

    Returns:
        Number of rows updated
    """
    answered = (
        (ExposureRecord.question_id == QuestionRecord.id)
        & ExposureRecord.is_correct.is_not(None)
    )
    success_rate = (
        select(
            func.coalesce(
                func.avg(case((ExposureRecord.is_correct.is_(True), 100.0), else_=0.0)),
                0.0,
            )
        )
        .where(answered)
        .scalar_subquery()
    )
    average_time = (
        select(func.coalesce(func.avg(ExposureRecord.time_spent_seconds), 0.0))
        .where(answered)
        .scalar_subquery()
    )

    stmt = update(QuestionRecord).values(
        success_rate=success_rate,
        average_time_seconds=average_time,
        quality_score=_quality_score_expr(success_rate),
    )
    if question_id is not None:
        stmt = stmt.where(QuestionRecord.id == question_id)
    result = db.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount or 0


# =============================================================================
# Statistics
# =============================================================================


def get_store_stats(
    db: Session,
    *,
    topic_id: Optional[str] = None,
    difficulty: Optional[str] = None,
    grade: Optional[int] = None,
) -> dict[str, Any]:
    """Totals by source and difficulty, averages, and curated bank counts."""
    filters = [QuestionRecord.is_active.is_(True)]
    if topic_id:
        filters.append(QuestionRecord.topic_id == topic_id)
    if difficulty:
        filters.append(QuestionRecord.difficulty == difficulty)
    if grade:
        filters.append(QuestionRecord.grade == grade)

    row = db.execute(
        select(
            func.count(QuestionRecord.id),
            func.avg(QuestionRecord.quality_score),
            func.avg(QuestionRecord.success_rate),
            func.coalesce(func.sum(QuestionRecord.usage_count), 0),
            func.count(func.distinct(QuestionRecord.topic_id)),
        ).where(*filters)
    ).one()

    by_source = dict(
        db.execute(
            select(QuestionRecord.source, func.count(QuestionRecord.id))
            .where(*filters)
            .group_by(QuestionRecord.source)
        ).all()
    )
    by_difficulty = dict(
        db.execute(
            select(QuestionRecord.difficulty, func.count(QuestionRecord.id))
            .where(*filters)
            .group_by(QuestionRecord.difficulty)
        ).all()
    )

    curated_total, curated_topics = db.execute(
        select(func.count(CuratedQuestion.id), func.count(func.distinct(CuratedQuestion.topic))).where(
            CuratedQuestion.is_active.is_(True)
        )
    ).one()
    curated_by_difficulty = dict(
        db.execute(
            select(CuratedQuestion.difficulty, func.count(CuratedQuestion.id))
            .where(CuratedQuestion.is_active.is_(True))
            .group_by(CuratedQuestion.difficulty)
        ).all()
    )

    return {
        "total_questions": row[0],
        "avg_quality": round(float(row[1]), 1) if row[1] is not None else None,
        "avg_success_rate": round(float(row[2]), 1) if row[2] is not None else None,
        "total_usage": int(row[3] or 0),
        "unique_topics": row[4],
        "by_source": {source.value: by_source.get(source.value, 0) for source in QuestionSource},
        "by_difficulty": {d.value: by_difficulty.get(d.value, 0) for d in DIFFICULTY_ORDER},
        "curated": {
            "total_questions": curated_total,
            "unique_topics": curated_topics,
            "by_difficulty": {d.value: curated_by_difficulty.get(d.value, 0) for d in DIFFICULTY_ORDER},
        },
    }
