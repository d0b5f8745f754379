"""
SQLAlchemy models for per-student difficulty state.

The numeric level (1-10) is authoritative; the label is always derived from it.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from adaptive_practice.db.base import Base


class DifficultyState(Base):
    """Current difficulty for one (student, topic)."""

    __tablename__ = "difficulty_states"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    topic_key: Mapped[str] = mapped_column(String(255), nullable=False)

    level: Mapped[int] = mapped_column(Integer, nullable=False, default=5, comment="1-10")
    difficulty: Mapped[str] = mapped_column(
        String(10), nullable=False, default="medium", comment="Derived from level"
    )

    # Rolling counters
    questions_answered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    recent_accuracy: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    trend: Mapped[str] = mapped_column(String(10), nullable=False, default="stable")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("idx_difficulty_states_lookup", "student_id", "topic_key", unique=True),
    )


class DifficultyAdjustment(Base):
    """Append-only log of difficulty changes for a (student, topic)."""

    __tablename__ = "difficulty_adjustments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    topic_key: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False, default="check")

    from_difficulty: Mapped[str] = mapped_column(String(10), nullable=False)
    to_difficulty: Mapped[str] = mapped_column(String(10), nullable=False)
    from_level: Mapped[int] = mapped_column(Integer, nullable=False)
    to_level: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    accuracy: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    __table_args__ = (
        Index("idx_difficulty_adjustments_history", "student_id", "topic_key", "created_at"),
    )
