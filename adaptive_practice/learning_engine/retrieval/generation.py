"""
External question-generation client.

POSTs the request to the generation service and validates the returned shape
before anything downstream trusts it. Raises GenerationError subclasses; the
orchestrator decides how to degrade.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from adaptive_practice.core.app_exceptions import (
    GenerationError,
    GenerationTimeout,
    MalformedGenerationError,
)
from adaptive_practice.core.config import settings

logger = logging.getLogger(__name__)


class GenerationRequest(BaseModel):
    topic: str
    subtopic: Optional[str] = None
    difficulty: str
    grade: Optional[int] = None
    personality: str = "default"
    avoid: str = ""


class GeneratedQuestion(BaseModel):
    """Validated generation output."""

    text: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    hints: list[str] = Field(default_factory=list)
    explanation: str = ""
    solution_steps: list[str] = Field(default_factory=list)

    @field_validator("answer", mode="before")
    @classmethod
    def coerce_answer(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("text", "answer")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class QuestionGenerator(Protocol):
    def generate(self, request: GenerationRequest) -> GeneratedQuestion: ...


def parse_generated(data: Any) -> GeneratedQuestion:
    """Validate a raw response body. Accepts the object itself or {"question": {...}}."""
    if isinstance(data, dict) and isinstance(data.get("question"), dict):
        data = data["question"]
    if not isinstance(data, dict):
        raise MalformedGenerationError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        return GeneratedQuestion.model_validate(data)
    except ValidationError as e:
        raise MalformedGenerationError(f"Generated question failed validation: {e}") from e


class HttpQuestionGenerator:
    """Generation service client over HTTP with a bounded timeout."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or settings.GENERATION_SERVICE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.GENERATION_TIMEOUT_SECONDS
        self.transport = transport

    def generate(self, request: GenerationRequest) -> GeneratedQuestion:
        """
        POST /generate and validate the result.

        Raises:
            GenerationTimeout: the call exceeded the timeout
            MalformedGenerationError: the body is not a valid question
            GenerationError: any other transport or HTTP failure
        """
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(f"{self.base_url}/generate", json=request.model_dump())
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as e:
            raise GenerationTimeout(f"Generation timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise GenerationError(f"Generation request failed: {e}") from e
        except ValueError as e:
            raise MalformedGenerationError(f"Generation response is not JSON: {e}") from e

        return parse_generated(data)


_generator: Optional[QuestionGenerator] = None


def get_generator() -> Optional[QuestionGenerator]:
    """Process-wide generator, or None when generation is disabled."""
    global _generator
    if not settings.GENERATION_ENABLED:
        return None
    if _generator is None:
        _generator = HttpQuestionGenerator()
    return _generator


def set_generator(generator: Optional[QuestionGenerator]) -> None:
    """Replace the process-wide generator (tests)."""
    global _generator
    _generator = generator
