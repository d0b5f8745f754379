"""Adaptive practice question retrieval and difficulty engine."""

__version__ = "1.0.0"
