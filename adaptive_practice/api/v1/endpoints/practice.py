"""Practice endpoints: question retrieval, answers, difficulty and classification."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from adaptive_practice.db.session import get_db
from adaptive_practice.learning_engine.classifier import classify_question
from adaptive_practice.learning_engine.difficulty import service as difficulty_service
from adaptive_practice.learning_engine.retrieval import service as retrieval_service
from adaptive_practice.learning_engine.retrieval.store import get_store_stats
from adaptive_practice.schemas.practice import (
    AdjustmentOut,
    CheckAdjustmentRequest,
    ClassificationOut,
    ClassifyRequest,
    DifficultyLabel,
    DifficultyStateOut,
    NextQuestionRequest,
    NextQuestionResponse,
    ProgressionResponse,
    RecommendationOut,
    ResetDifficultyRequest,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
)

router = APIRouter()


@router.post("/questions/next", response_model=NextQuestionResponse)
def next_question(request: NextQuestionRequest, db: Session = Depends(get_db)) -> NextQuestionResponse:
    """Select, or generate, the next question for a student."""
    result = retrieval_service.get_next_question(
        db,
        request.student_id,
        request.topic,
        subtopic=request.subtopic,
        difficulty=request.difficulty,
        grade=request.grade,
        exclude_ids=request.exclude_ids,
    )
    return NextQuestionResponse.model_validate(result.to_dict())


@router.post("/answers", response_model=SubmitAnswerResponse)
def submit_answer(request: SubmitAnswerRequest, db: Session = Depends(get_db)) -> SubmitAnswerResponse:
    """Check and record an answer."""
    result = retrieval_service.submit_answer(
        db,
        request.student_id,
        request.question_id,
        request.answer,
        time_spent=request.time_spent_seconds,
        hints_used=request.hints_used,
    )
    return SubmitAnswerResponse.model_validate(result.to_dict())


@router.get("/difficulty/recommended", response_model=RecommendationOut)
def recommended_difficulty(
    student_id: str = Query(..., min_length=1),
    topic: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
) -> RecommendationOut:
    recommendation = difficulty_service.get_recommended_difficulty(db, student_id, topic)
    return RecommendationOut.model_validate(recommendation.to_dict())


@router.post("/difficulty/check", response_model=AdjustmentOut)
def check_adjustment(request: CheckAdjustmentRequest, db: Session = Depends(get_db)) -> AdjustmentOut:
    """Record an answer and decide whether difficulty should change."""
    decision = difficulty_service.check_adjustment(
        db, request.student_id, request.topic, request.difficulty, request.is_correct
    )
    return AdjustmentOut.model_validate(decision.to_dict())


@router.get("/difficulty/progression", response_model=ProgressionResponse)
def difficulty_progression(
    student_id: str = Query(..., min_length=1),
    topic: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> ProgressionResponse:
    return ProgressionResponse.model_validate(
        difficulty_service.get_difficulty_progression(db, student_id, topic)
    )


@router.post("/difficulty/reset", response_model=DifficultyStateOut)
def reset_difficulty(request: ResetDifficultyRequest, db: Session = Depends(get_db)) -> DifficultyStateOut:
    return DifficultyStateOut.model_validate(
        difficulty_service.reset_difficulty(db, request.student_id, request.topic)
    )


@router.get("/difficulty/stats", response_model=list[DifficultyStateOut])
def difficulty_stats(
    student_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> list[DifficultyStateOut]:
    return [
        DifficultyStateOut.model_validate(row)
        for row in difficulty_service.get_difficulty_stats(db, student_id)
    ]


@router.post("/classify", response_model=ClassificationOut)
def classify(request: ClassifyRequest) -> ClassificationOut:
    """Label question text with grade, unit track, topic, subtopic and difficulty."""
    return ClassificationOut.model_validate(
        classify_question(request.text, request.metadata).to_dict()
    )


@router.get("/stats")
def store_stats(
    topic_id: Optional[str] = Query(default=None),
    difficulty: Optional[DifficultyLabel] = Query(default=None),
    grade: Optional[int] = Query(default=None, ge=7, le=12),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Question store statistics."""
    return get_store_stats(db, topic_id=topic_id, difficulty=difficulty, grade=grade)
