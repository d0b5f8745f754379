"""Append-only exposure log."""

from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text

from adaptive_practice.db.base import Base


class ExposureRecord(Base):
    """
    One question shown to (and optionally answered by) a student.

    Rows are never updated. ``is_correct`` is NULL for a question that was shown
    but not answered. Total order is (created_at, id).
    """

    __tablename__ = "exposure_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Integer, ForeignKey("question_records.id"), nullable=True)
    topic_key = Column(String(255))
    subtopic_key = Column(String(255))
    difficulty = Column(String(10))
    is_correct = Column(Boolean, nullable=True)
    time_spent_seconds = Column(Float, nullable=False, default=0.0)
    hints_used = Column(Integer, nullable=False, default=0)
    question_text = Column(Text)  # Snapshot for the avoid block
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))

    __table_args__ = (
        Index("ix_exposure_student_topic_time", "student_id", "topic_key", "created_at"),
        Index("ix_exposure_student_time", "student_id", "created_at"),
        Index("ix_exposure_question", "question_id"),
    )
