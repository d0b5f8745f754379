"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time; point them at an in-memory database first.
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_ENABLED"] = "false"
os.environ["GENERATION_ENABLED"] = "false"

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from adaptive_practice import models  # noqa: E402, F401
from adaptive_practice.db.base import Base  # noqa: E402
from adaptive_practice.db.engine import engine  # noqa: E402
from adaptive_practice.db.session import SessionLocal, get_db  # noqa: E402
from adaptive_practice.learning_engine.retrieval.generation import (  # noqa: E402
    GeneratedQuestion,
    GenerationRequest,
    set_generator,
)
from adaptive_practice.learning_engine.similarity.fingerprint import content_hash  # noqa: E402
from adaptive_practice.learning_engine.similarity.window import (  # noqa: E402
    InMemoryRecentWindow,
    set_recent_window,
)
from adaptive_practice.main import app  # noqa: E402
from adaptive_practice.models.question_store import CuratedQuestion, QuestionRecord  # noqa: E402


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def recent_window() -> Generator[InMemoryRecentWindow, None, None]:
    """Isolated process-wide recent-exposure window."""
    window = InMemoryRecentWindow(max_size=15)
    set_recent_window(window)
    yield window
    set_recent_window(None)


@pytest.fixture(autouse=True)
def no_generator() -> Generator[None, None, None]:
    set_generator(None)
    yield
    set_generator(None)


@pytest.fixture
def client(db) -> Generator[TestClient, None, None]:
    """FastAPI test client sharing the test session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class StubGenerator:
    """Generation client returning canned questions and recording requests."""

    def __init__(self, questions=None, error: Exception | None = None):
        self.questions = list(questions or [])
        self.error = error
        self.requests: list[GenerationRequest] = []

    def generate(self, request: GenerationRequest) -> GeneratedQuestion:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if not self.questions:
            raise AssertionError("StubGenerator ran out of questions")
        return GeneratedQuestion.model_validate(self.questions.pop(0))


@pytest.fixture
def make_stub_generator():
    return StubGenerator


@pytest.fixture
def add_question(db):
    """Insert a store question and return it."""

    def _add(text: str, **overrides) -> QuestionRecord:
        values = {
            "content_hash": content_hash(text),
            "question_text": text,
            "correct_answer": "5",
            "explanation": "",
            "hints": [],
            "solution_steps": [],
            "topic_id": "linear-equations",
            "topic": "אלגברה",
            "subtopic_id": None,
            "subtopic": None,
            "grade": 8,
            "units": None,
            "difficulty": "medium",
            "source": "curated",
            "quality_score": 75.0,
        }
        values.update(overrides)
        record = QuestionRecord(**values)
        db.add(record)
        db.commit()
        return record

    return _add


@pytest.fixture
def add_curated(db):
    """Insert a curated bank question and return it."""

    def _add(text: str, **overrides) -> CuratedQuestion:
        values = {
            "question_text": text,
            "correct_answer": "7",
            "explanation": "",
            "hints": [],
            "solution_steps": [],
            "topic": "אלגברה",
            "subtopic": "משוואות לינאריות",
            "grade_level": 8,
            "difficulty": "medium",
            "keywords": [],
        }
        values.update(overrides)
        curated = CuratedQuestion(**values)
        db.add(curated)
        db.commit()
        return curated

    return _add
