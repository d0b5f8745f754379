"""Pydantic schemas for the practice API."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

DifficultyLabel = Literal["easy", "medium", "hard"]


# ============================================================================
# Requests
# ============================================================================


class NextQuestionRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=128)
    topic: str = Field(..., min_length=1, max_length=255)
    subtopic: Optional[str] = Field(default=None, max_length=255)
    difficulty: Optional[DifficultyLabel] = None
    grade: Optional[int] = Field(default=None, ge=7, le=12)
    exclude_ids: list[int] = Field(default_factory=list)


class SubmitAnswerRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=128)
    question_id: int
    answer: str = Field(default="", max_length=2000)
    time_spent_seconds: float = Field(default=0.0, ge=0)
    hints_used: int = Field(default=0, ge=0)


class CheckAdjustmentRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=128)
    topic: str = Field(..., min_length=1, max_length=255)
    difficulty: DifficultyLabel
    is_correct: bool


class ClassifyRequest(BaseModel):
    text: str = Field(..., max_length=20000)
    metadata: Optional[dict[str, Any]] = None


class ResetDifficultyRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=128)
    topic: str = Field(..., min_length=1, max_length=255)


# ============================================================================
# Responses
# ============================================================================


class QuestionOut(BaseModel):
    question_id: Optional[int] = None
    question_text: str
    hints: list[str] = Field(default_factory=list)
    topic_id: Optional[str] = None
    topic: Optional[str] = None
    subtopic_id: Optional[str] = None
    subtopic: Optional[str] = None
    grade: Optional[int] = None
    units: Optional[int] = None
    difficulty: str
    source: str
    quality_score: Optional[float] = None


class NextQuestionResponse(BaseModel):
    ok: bool
    reason: Optional[str] = None
    match_type: Optional[str] = None
    difficulty: Optional[str] = None
    question: Optional[QuestionOut] = None


class AdjustmentOut(BaseModel):
    ok: bool
    should_adjust: bool
    new_difficulty: str
    reason: str
    confidence: float
    accuracy: Optional[float] = None
    correct_count: int = 0
    total_count: int = 0


class SubmitAnswerResponse(BaseModel):
    ok: bool
    reason: Optional[str] = None
    question_id: Optional[int] = None
    is_correct: Optional[bool] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    solution_steps: list[str] = Field(default_factory=list)
    adjustment: Optional[AdjustmentOut] = None


class RecommendationOut(BaseModel):
    difficulty: str
    confidence: float
    message: str
    reason: str
    accuracy: Optional[float] = None
    correct_count: int = 0
    total_count: int = 0
    trend: str
    distribution: dict[str, int] = Field(default_factory=dict)


class ClassificationOut(BaseModel):
    grade: int
    units: Optional[int] = None
    topic: str
    subtopic: Optional[str] = None
    difficulty: str


class DifficultyStateOut(BaseModel):
    topic: str
    difficulty: str
    level: int
    questions_answered: int
    correct_count: int
    recent_accuracy: float
    trend: str
    updated_at: Optional[str] = None
    ok: bool = True
    reason: Optional[str] = None


class AdjustmentHistoryOut(BaseModel):
    kind: str
    from_difficulty: str
    to_difficulty: str
    from_level: int
    to_level: int
    reason: str
    accuracy: Optional[float] = None
    created_at: Optional[str] = None


class ProgressionResponse(BaseModel):
    state: Optional[DifficultyStateOut] = None
    history: list[AdjustmentHistoryOut] = Field(default_factory=list)
