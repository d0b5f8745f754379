"""Database models."""

from adaptive_practice.models.difficulty import DifficultyAdjustment, DifficultyState
from adaptive_practice.models.exposure import ExposureRecord
from adaptive_practice.models.question_store import CuratedQuestion, QuestionRecord
from adaptive_practice.models.student import Student

__all__ = [
    "CuratedQuestion",
    "DifficultyAdjustment",
    "DifficultyState",
    "ExposureRecord",
    "QuestionRecord",
    "Student",
]
