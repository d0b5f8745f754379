"""
Historical tier of the duplicate guard.

Reads the exposure log to find what a student has already seen: question ids to
exclude from store queries, and recent texts for the generation avoid block.
"""

from datetime import UTC, datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from adaptive_practice.core.config import settings
from adaptive_practice.learning_engine.config import (
    AVOID_PROMPT_HISTORY_LIMIT,
    AVOID_PROMPT_PREVIEW_CHARS,
    AVOID_PROMPT_RECENT,
)
from adaptive_practice.learning_engine.similarity.window import RecentEntry
from adaptive_practice.models.exposure import ExposureRecord


def recent_exposure_ids_query(student_id: int, limit: Optional[int] = None):
    """Subquery selecting the question ids of a student's last N exposures."""
    return (
        select(ExposureRecord.question_id)
        .where(
            ExposureRecord.student_id == student_id,
            ExposureRecord.question_id.is_not(None),
        )
        .order_by(ExposureRecord.created_at.desc(), ExposureRecord.id.desc())
        .limit(limit or settings.RECENT_EXPOSURE_LIMIT)
    )


def get_recent_exposure_ids(db: Session, student_id: int, limit: Optional[int] = None) -> set[int]:
    return set(db.execute(recent_exposure_ids_query(student_id, limit)).scalars().all())


def get_historical_texts(
    db: Session,
    student_id: int,
    topic_key: Optional[str],
    days: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[str]:
    """Distinct question texts shown to the student on this topic within the day window, newest first."""
    cutoff = datetime.now(UTC) - timedelta(days=days or settings.HISTORY_WINDOW_DAYS)
    stmt = select(ExposureRecord.question_text).where(
        ExposureRecord.student_id == student_id,
        ExposureRecord.question_text.is_not(None),
        ExposureRecord.created_at >= cutoff,
    )
    if topic_key:
        stmt = stmt.where(ExposureRecord.topic_key == topic_key)
    stmt = stmt.order_by(ExposureRecord.created_at.desc(), ExposureRecord.id.desc())

    max_items = limit or AVOID_PROMPT_HISTORY_LIMIT.value
    texts: list[str] = []
    seen: set[str] = set()
    for text in db.execute(stmt).scalars():
        if text in seen:
            continue
        seen.add(text)
        texts.append(text)
        if len(texts) >= max_items:
            break
    return texts


def build_avoidance_prompt(recent: list[RecentEntry], historical: list[str]) -> str:
    """
    Build the "avoid these" block sent to the generation service.

    Lists the last few session entries (preview plus numbers used), then
    historical texts not already listed. Empty string when there is nothing
    to avoid.
    """
    session_entries = recent[-AVOID_PROMPT_RECENT.value :] if recent else []
    listed = {entry.question for entry in session_entries}
    older = [text for text in historical if text not in listed]

    if not session_entries and not older:
        return ""

    preview_chars = AVOID_PROMPT_PREVIEW_CHARS.value
    lines = ["AVOID REPETITION - do not create questions similar to these recent ones:", ""]
    for i, entry in enumerate(session_entries, start=1):
        lines.append(f'{i}. "{entry.question[:preview_chars]}..."')
        lines.append(f"   Numbers used: {', '.join(entry.numbers)}")

    if older:
        lines.append("")
        lines.append("Previously seen on this topic:")
        for text in older:
            lines.append(f"- {text[:preview_chars]}")

    lines.extend(
        [
            "",
            "Requirements for the new question:",
            "- Use completely different numbers",
            "- Use a different context or scenario",
            "- Focus on a different aspect of the topic",
            "- Use a different question format or wording",
        ]
    )
    return "\n".join(lines) + "\n"
