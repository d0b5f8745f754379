"""
Maintenance jobs over the question store.

- reclassify_curated_questions: re-run the classifier over the curated bank
- recompute_question_stats: rebuild statistics from the exposure log

Explicit maintenance only; never called on the request path.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adaptive_practice.learning_engine.classifier import classify_question
from adaptive_practice.learning_engine.retrieval.store import refresh_question_stats
from adaptive_practice.models.question_store import CuratedQuestion

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 50


@dataclass
class JobResult:
    job: str
    processed: int = 0
    updated: int = 0
    failed: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job": self.job,
            "processed": self.processed,
            "updated": self.updated,
            "failed": self.failed,
            "details": self.details,
        }


def reclassify_curated_questions(db: Session, dry_run: bool = False) -> JobResult:
    """
    Re-label every active curated question with the classifier.

    Existing grade, units and topic are passed as hints. Each row is written in
    its own savepoint so one bad row does not abort the batch.
    """
    result = JobResult(job="reclassify")
    changes: dict[str, int] = {"grade": 0, "units": 0, "topic": 0, "subtopic": 0, "difficulty": 0}

    questions = db.execute(
        select(CuratedQuestion).where(CuratedQuestion.is_active.is_(True)).order_by(CuratedQuestion.id)
    ).scalars().all()

    for question in questions:
        result.processed += 1
        classification = classify_question(
            question.question_text,
            {"grade": question.grade_level, "units": question.units, "topic": question.topic},
        )
        new_values = {
            "grade_level": classification.grade,
            "units": classification.units,
            "topic": classification.topic,
            "subtopic": classification.subtopic,
            "difficulty": classification.difficulty,
        }
        for column, key in (
            ("grade_level", "grade"),
            ("units", "units"),
            ("topic", "topic"),
            ("subtopic", "subtopic"),
            ("difficulty", "difficulty"),
        ):
            if getattr(question, column) != new_values[column]:
                changes[key] += 1

        if dry_run:
            continue

        try:
            with db.begin_nested():
                for column, value in new_values.items():
                    setattr(question, column, value)
            result.updated += 1
        except SQLAlchemyError as e:
            result.failed += 1
            logger.error(
                "reclassify_row_failed",
                extra={"event": "reclassify_row_failed", "curated_id": question.id, "error": str(e)},
            )

        if result.updated and result.updated % PROGRESS_EVERY == 0:
            logger.info(
                "reclassify_progress",
                extra={"event": "reclassify_progress", "updated": result.updated, "total": len(questions)},
            )

    if dry_run:
        db.rollback()
    else:
        db.commit()

    result.details = {"changed_fields": changes, "dry_run": dry_run}
    logger.info("reclassify_completed", extra={"event": "reclassify_completed", **result.to_dict()})
    return result


def recompute_question_stats(db: Session) -> JobResult:
    """Recompute success rate, average time and quality for every stored question."""
    result = JobResult(job="recompute-stats")
    result.updated = refresh_question_stats(db)
    result.processed = result.updated
    db.commit()
    logger.info("recompute_stats_completed", extra={"event": "recompute_stats_completed", **result.to_dict()})
    return result
