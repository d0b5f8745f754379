"""Question store models: cached practice questions and the curated bank."""

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from adaptive_practice.db.base import Base


class QuestionRecord(Base):
    """
    A servable practice question.

    Labels (grade, units, topic, subtopic, difficulty) are fixed at creation and
    only rewritten by explicit maintenance jobs. Statistics columns are updated
    with single-statement UPDATEs.
    """

    __tablename__ = "question_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content_hash = Column(String(64), nullable=False, unique=True)

    # Text fields
    question_text = Column(Text, nullable=False)
    correct_answer = Column(Text, nullable=False)
    explanation = Column(Text, nullable=False, default="")
    hints = Column(JSON, nullable=False, default=list)  # Ordered list of strings
    solution_steps = Column(JSON, nullable=False, default=list)  # Ordered list of strings

    # Classification
    topic_id = Column(String(128), index=True)  # Internal slug used by callers
    topic = Column(String(255))  # Human-readable label
    subtopic_id = Column(String(128))
    subtopic = Column(String(255))
    grade = Column(Integer)  # 7-12, NULL = grade-agnostic
    units = Column(Integer)  # 3/4/5, NULL outside grades 10-12
    difficulty = Column(String(10), nullable=False)  # "easy", "medium", "hard"

    # Provenance
    source = Column(String(20), nullable=False)  # curated | ai_generated | template
    origin_ref = Column(String(255))

    # Statistics
    usage_count = Column(Integer, nullable=False, default=0)
    success_rate = Column(Float, nullable=False, default=0.0)  # 0-100
    average_time_seconds = Column(Float, nullable=False, default=0.0)
    quality_score = Column(Float, nullable=False, default=70.0)  # 0-100

    # Lifecycle
    is_active = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("difficulty IN ('easy', 'medium', 'hard')", name="ck_question_difficulty"),
        CheckConstraint("quality_score >= 0 AND quality_score <= 100", name="ck_question_quality"),
        Index("ix_question_records_lookup", "topic_id", "subtopic_id", "difficulty", "grade"),
    )


class CuratedQuestion(Base):
    """Pre-authored curriculum question, searched by human-readable topic label."""

    __tablename__ = "curated_questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_text = Column(Text, nullable=False)
    correct_answer = Column(Text, nullable=False)
    explanation = Column(Text, nullable=False, default="")
    hints = Column(JSON, nullable=False, default=list)
    solution_steps = Column(JSON, nullable=False, default=list)
    topic = Column(String(255), nullable=False, index=True)
    subtopic = Column(String(255))
    grade_level = Column(Integer)
    units = Column(Integer)
    difficulty = Column(String(10), nullable=False)
    keywords = Column(JSON, nullable=False, default=list)
    source_ref = Column(String(255))  # Exam / booklet the question came from
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_curated_questions_lookup", "topic", "difficulty", "grade_level"),
    )
