"""
Retrieval tiers.

Each tier implements ``try_retrieve(db, request) -> ServedQuestion | None``.
The orchestrator evaluates them in order and stops at the first hit.
Candidates are skipped when they leak higher-grade content or are judged
similar to something in the student's recent-exposure window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adaptive_practice.learning_engine.constants import MatchType, QuestionSource
from adaptive_practice.learning_engine.retrieval.store import (
    CURATED_REF_PREFIX,
    ServedQuestion,
    curated_ids_for_records,
    find_cached_candidates,
    find_curated_candidates,
    persist_question,
)
from adaptive_practice.learning_engine.retrieval.topics import (
    is_grade_compatible,
    is_hebrew,
    resolve_topic_labels,
)
from adaptive_practice.learning_engine.similarity.fingerprint import Fingerprint, is_similar

logger = logging.getLogger(__name__)


@dataclass
class RetrievalRequest:
    """Everything a tier needs to look for a question."""

    topic: str
    difficulty: str
    subtopic: Optional[str] = None
    grade: Optional[int] = None
    student_id: Optional[int] = None
    excluded_ids: set[int] = field(default_factory=set)
    recent: list[Fingerprint] = field(default_factory=list)


def acceptable(text: str, request: RetrievalRequest) -> bool:
    """Grade-compatible and not similar to a recent exposure."""
    if not is_grade_compatible(text, request.grade):
        return False
    return not is_similar(text, request.recent)


class RetrievalStrategy(Protocol):
    match_type: MatchType

    def try_retrieve(self, db: Session, request: RetrievalRequest) -> Optional[ServedQuestion]: ...


class CacheStrategy:
    """Store lookup by topic id and difficulty, optionally pinned to the subtopic."""

    def __init__(self, match_subtopic: bool):
        self.match_subtopic = match_subtopic
        self.match_type = MatchType.EXACT if match_subtopic else MatchType.TOPIC

    def try_retrieve(self, db: Session, request: RetrievalRequest) -> Optional[ServedQuestion]:
        # Topic-level lookup only widens an exact lookup that pinned a subtopic
        if not self.match_subtopic and not request.subtopic:
            return None

        candidates = find_cached_candidates(
            db,
            topic_id=request.topic,
            subtopic_id=request.subtopic if self.match_subtopic else None,
            difficulty=request.difficulty,
            grade=request.grade,
            exclude_ids=request.excluded_ids,
        )
        for record in candidates:
            if acceptable(record.question_text, request):
                return ServedQuestion.from_record(record)
        return None


class CuratedBankStrategy:
    """
    Curated bank lookup by human-readable topic label within a grade window.

    A hit is copied into the question store (insert-or-reuse by hash) so it has
    a store id for exposure and statistics tracking.
    """

    match_type = MatchType.CURATED

    def try_retrieve(self, db: Session, request: RetrievalRequest) -> Optional[ServedQuestion]:
        labels = resolve_topic_labels(request.topic, request.subtopic)
        if not labels:
            logger.debug(
                "curated_no_topic_mapping",
                extra={"event": "curated_no_topic_mapping", "topic": request.topic},
            )
            return None

        candidates = find_curated_candidates(
            db,
            labels=labels,
            difficulty=request.difficulty,
            grade=request.grade,
            exclude_curated_ids=curated_ids_for_records(db, request.excluded_ids),
        )
        for curated in candidates:
            if acceptable(curated.question_text, request):
                return self._serve(db, curated, request)
        return None

    def _serve(self, db: Session, curated, request: RetrievalRequest) -> ServedQuestion:
        served = ServedQuestion(
            question_id=None,
            question_text=curated.question_text,
            correct_answer=curated.correct_answer,
            explanation=curated.explanation or "",
            hints=list(curated.hints or []),
            solution_steps=list(curated.solution_steps or []),
            topic_id=request.topic,
            topic=curated.topic,
            subtopic_id=request.subtopic,
            subtopic=curated.subtopic,
            grade=curated.grade_level,
            units=curated.units,
            difficulty=curated.difficulty,
            source=QuestionSource.CURATED.value,
        )
        try:
            record, _ = persist_question(
                db,
                question_text=curated.question_text,
                correct_answer=curated.correct_answer,
                difficulty=curated.difficulty,
                source=QuestionSource.CURATED.value,
                explanation=curated.explanation or "",
                hints=curated.hints,
                solution_steps=curated.solution_steps,
                topic_id=request.topic,
                topic=curated.topic if not is_hebrew(request.topic) else request.topic,
                subtopic_id=request.subtopic,
                subtopic=curated.subtopic,
                grade=curated.grade_level,
                units=curated.units,
                origin_ref=f"{CURATED_REF_PREFIX}{curated.id}",
            )
        except SQLAlchemyError as e:
            logger.error(
                "curated_persist_failed",
                extra={"event": "curated_persist_failed", "curated_id": curated.id, "error": str(e)},
            )
            db.rollback()
            return served
        return ServedQuestion.from_record(record)


def default_strategies() -> list[RetrievalStrategy]:
    """Exact cache match, curated bank, topic-level cache match."""
    return [
        CacheStrategy(match_subtopic=True),
        CuratedBankStrategy(),
        CacheStrategy(match_subtopic=False),
    ]
