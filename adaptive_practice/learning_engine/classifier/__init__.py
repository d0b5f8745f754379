"""Keyword-table content classifier."""

from adaptive_practice.learning_engine.classifier.core import Classification, classify_question

__all__ = ["Classification", "classify_question"]
