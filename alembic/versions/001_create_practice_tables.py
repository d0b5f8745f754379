"""Create practice tables

Revision ID: 001
Revises: 
Create Date: 2026-10-01 10:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Student identities
    op.create_table(
        "students",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.String(128), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("grade", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_students_external_id", "students", ["external_id"], unique=True)

    # Question store
    op.create_table(
        "question_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("content_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("correct_answer", sa.Text(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=False, server_default=""),
        sa.Column("hints", sa.JSON(), nullable=False),
        sa.Column("solution_steps", sa.JSON(), nullable=False),
        sa.Column("topic_id", sa.String(128), nullable=True),
        sa.Column("topic", sa.String(255), nullable=True),
        sa.Column("subtopic_id", sa.String(128), nullable=True),
        sa.Column("subtopic", sa.String(255), nullable=True),
        sa.Column("grade", sa.Integer(), nullable=True),
        sa.Column("units", sa.Integer(), nullable=True),
        sa.Column("difficulty", sa.String(10), nullable=False),
        sa.Column("source", sa.String(20), nullable=False),
        sa.Column("origin_ref", sa.String(255), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("success_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("average_time_seconds", sa.Float(), nullable=False, server_default="0"),
        sa.Column("quality_score", sa.Float(), nullable=False, server_default="70"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("difficulty IN ('easy', 'medium', 'hard')", name="ck_question_difficulty"),
        sa.CheckConstraint("quality_score >= 0 AND quality_score <= 100", name="ck_question_quality"),
    )
    op.create_index("ix_question_records_topic_id", "question_records", ["topic_id"])
    op.create_index(
        "ix_question_records_lookup",
        "question_records",
        ["topic_id", "subtopic_id", "difficulty", "grade"],
    )

    # Curated bank
    op.create_table(
        "curated_questions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("correct_answer", sa.Text(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=False, server_default=""),
        sa.Column("hints", sa.JSON(), nullable=False),
        sa.Column("solution_steps", sa.JSON(), nullable=False),
        sa.Column("topic", sa.String(255), nullable=False),
        sa.Column("subtopic", sa.String(255), nullable=True),
        sa.Column("grade_level", sa.Integer(), nullable=True),
        sa.Column("units", sa.Integer(), nullable=True),
        sa.Column("difficulty", sa.String(10), nullable=False),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column("source_ref", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_curated_questions_topic", "curated_questions", ["topic"])
    op.create_index(
        "ix_curated_questions_lookup", "curated_questions", ["topic", "difficulty", "grade_level"]
    )

    # Exposure log (append-only)
    op.create_table(
        "exposure_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "student_id",
            sa.Integer(),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("question_id", sa.Integer(), sa.ForeignKey("question_records.id"), nullable=True),
        sa.Column("topic_key", sa.String(255), nullable=True),
        sa.Column("subtopic_key", sa.String(255), nullable=True),
        sa.Column("difficulty", sa.String(10), nullable=True),
        sa.Column("is_correct", sa.Boolean(), nullable=True),
        sa.Column("time_spent_seconds", sa.Float(), nullable=False, server_default="0"),
        sa.Column("hints_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("question_text", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_exposure_student_topic_time", "exposure_records", ["student_id", "topic_key", "created_at"]
    )
    op.create_index("ix_exposure_student_time", "exposure_records", ["student_id", "created_at"])
    op.create_index("ix_exposure_question", "exposure_records", ["question_id"])

    # Difficulty state
    op.create_table(
        "difficulty_states",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "student_id",
            sa.Integer(),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("topic_key", sa.String(255), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False, server_default="5", comment="1-10"),
        sa.Column(
            "difficulty",
            sa.String(10),
            nullable=False,
            server_default="medium",
            comment="Derived from level",
        ),
        sa.Column("questions_answered", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("correct_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("recent_accuracy", sa.Float(), nullable=False, server_default="0"),
        sa.Column("trend", sa.String(10), nullable=False, server_default="stable"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "idx_difficulty_states_lookup", "difficulty_states", ["student_id", "topic_key"], unique=True
    )

    op.create_table(
        "difficulty_adjustments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "student_id",
            sa.Integer(),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("topic_key", sa.String(255), nullable=False),
        sa.Column("kind", sa.String(10), nullable=False, server_default="check"),
        sa.Column("from_difficulty", sa.String(10), nullable=False),
        sa.Column("to_difficulty", sa.String(10), nullable=False),
        sa.Column("from_level", sa.Integer(), nullable=False),
        sa.Column("to_level", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("accuracy", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "idx_difficulty_adjustments_history",
        "difficulty_adjustments",
        ["student_id", "topic_key", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_difficulty_adjustments_history", table_name="difficulty_adjustments")
    op.drop_table("difficulty_adjustments")
    op.drop_index("idx_difficulty_states_lookup", table_name="difficulty_states")
    op.drop_table("difficulty_states")
    op.drop_index("ix_exposure_question", table_name="exposure_records")
    op.drop_index("ix_exposure_student_time", table_name="exposure_records")
    op.drop_index("ix_exposure_student_topic_time", table_name="exposure_records")
    op.drop_table("exposure_records")
    op.drop_index("ix_curated_questions_lookup", table_name="curated_questions")
    op.drop_index("ix_curated_questions_topic", table_name="curated_questions")
    op.drop_table("curated_questions")
    op.drop_index("ix_question_records_lookup", table_name="question_records")
    op.drop_index("ix_question_records_topic_id", table_name="question_records")
    op.drop_table("question_records")
    op.drop_index("ix_students_external_id", table_name="students")
    op.drop_table("students")
