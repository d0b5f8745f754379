"""Answer checking for submitted free-text answers."""

import re
from typing import Optional

from adaptive_practice.learning_engine.config import ANSWER_NUMERIC_TOLERANCE

# "x = 5", "y=5", "x: 5"
VARIABLE_PREFIX_RE = re.compile(r"^\s*[a-zA-Z]\s*[=:]\s*")
WHITESPACE_RE = re.compile(r"\s+")


def normalize_answer(value: Optional[str]) -> str:
    text = "" if value is None else str(value)
    text = VARIABLE_PREFIX_RE.sub("", text.strip())
    return WHITESPACE_RE.sub(" ", text).strip().lower()


def _as_number(text: str) -> Optional[float]:
    candidate = text.replace(",", "").replace(" ", "")
    if candidate.endswith("%"):
        candidate = candidate[:-1]
    try:
        return float(candidate)
    except ValueError:
        return None


def answers_match(given: Optional[str], expected: Optional[str]) -> bool:
    """
    Compare a student's answer to the stored answer.

    Numeric when both sides parse as numbers, otherwise normalized string
    equality. A leading single-letter variable prefix ("x =") is ignored.
    """
    left, right = normalize_answer(given), normalize_answer(expected)
    if not left:
        return False

    left_num, right_num = _as_number(left), _as_number(right)
    if left_num is not None and right_num is not None:
        return abs(left_num - right_num) <= ANSWER_NUMERIC_TOLERANCE.value
    return left == right
