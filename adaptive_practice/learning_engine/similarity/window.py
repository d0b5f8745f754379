"""
Recent-exposure window (session tier of the duplicate guard).

A capped, newest-last list of fingerprints per (student, topic). Two backends:
an in-process dict for single-instance deployments and a Redis list with a
TTL for deployments with several workers. Both are best-effort; the exposure
log remains the durable record.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Protocol

from adaptive_practice.cache import redis as redis_cache
from adaptive_practice.core.config import settings
from adaptive_practice.core.logging import get_logger
from adaptive_practice.core.redis_client import get_redis_client
from adaptive_practice.learning_engine.similarity.fingerprint import (
    Fingerprint,
    extract_keywords,
    extract_numbers,
)

logger = get_logger(__name__)


@dataclass
class RecentEntry:
    question: str
    keywords: list[str]
    numbers: list[str]
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_text(cls, text: str) -> RecentEntry:
        return cls(question=text, keywords=extract_keywords(text), numbers=extract_numbers(text))

    @property
    def fingerprint(self) -> Fingerprint:
        return Fingerprint(keywords=frozenset(self.keywords), numbers=frozenset(self.numbers))

    def to_dict(self) -> dict[str, Any]:
        return {
            "question": self.question,
            "keywords": self.keywords,
            "numbers": self.numbers,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecentEntry:
        return cls(
            question=data.get("question", ""),
            keywords=list(data.get("keywords") or []),
            numbers=list(data.get("numbers") or []),
            timestamp=float(data.get("timestamp") or 0.0),
        )


def window_key(student_key: Any, topic_key: Any) -> str:
    return f"{student_key}_{topic_key}"


class RecentExposureWindow(Protocol):
    """Pluggable session window."""

    def add(self, student_key: Any, topic_key: Any, question_text: str) -> None: ...

    def recent(self, student_key: Any, topic_key: Any, count: int | None = None) -> list[RecentEntry]: ...

    def clear(self, student_key: Any, topic_key: Any) -> None: ...


class InMemoryRecentWindow:
    """Process-local window. Not shared between workers."""

    def __init__(self, max_size: int | None = None):
        self.max_size = max_size or settings.SESSION_WINDOW_SIZE
        self._entries: dict[str, deque[RecentEntry]] = {}
        self._lock = threading.Lock()

    def add(self, student_key: Any, topic_key: Any, question_text: str) -> None:
        entry = RecentEntry.from_text(question_text)
        key = window_key(student_key, topic_key)
        with self._lock:
            bucket = self._entries.setdefault(key, deque(maxlen=self.max_size))
            bucket.append(entry)

    def recent(self, student_key: Any, topic_key: Any, count: int | None = None) -> list[RecentEntry]:
        key = window_key(student_key, topic_key)
        with self._lock:
            entries = list(self._entries.get(key, ()))
        if count is None:
            return entries
        return entries[-count:] if count > 0 else []

    def clear(self, student_key: Any, topic_key: Any) -> None:
        with self._lock:
            self._entries.pop(window_key(student_key, topic_key), None)


class RedisRecentWindow:
    """Shared window stored as a capped Redis list per key, refreshed TTL on write."""

    key_prefix = "practice:recent:"

    def __init__(self, client=None, max_size: int | None = None, ttl_seconds: int | None = None):
        self.client = client
        self.max_size = max_size or settings.SESSION_WINDOW_SIZE
        self.ttl_seconds = ttl_seconds or settings.SESSION_WINDOW_TTL_SECONDS

    def _key(self, student_key: Any, topic_key: Any) -> str:
        return self.key_prefix + window_key(student_key, topic_key)

    def add(self, student_key: Any, topic_key: Any, question_text: str) -> None:
        redis_cache.push_capped_json(
            self._key(student_key, topic_key),
            RecentEntry.from_text(question_text).to_dict(),
            max_len=self.max_size,
            ttl_seconds=self.ttl_seconds,
            client=self.client,
        )

    def recent(self, student_key: Any, topic_key: Any, count: int | None = None) -> list[RecentEntry]:
        items = redis_cache.get_json_list(
            self._key(student_key, topic_key),
            count if count is not None else self.max_size,
            client=self.client,
        )
        return [RecentEntry.from_dict(item) for item in items if isinstance(item, dict)]

    def clear(self, student_key: Any, topic_key: Any) -> None:
        redis_cache.delete(self._key(student_key, topic_key), client=self.client)


_window: RecentExposureWindow | None = None


def build_recent_window(backend: str | None = None) -> RecentExposureWindow:
    """Build the configured window backend; "auto" picks Redis when reachable."""
    backend = backend or settings.SESSION_WINDOW_BACKEND
    if backend == "redis" or (backend == "auto" and settings.REDIS_ENABLED):
        client = get_redis_client()
        if client is not None:
            return RedisRecentWindow(client=client)
        if backend == "redis":
            logger.warning(
                "recent_window_redis_unavailable",
                extra={"event": "recent_window_redis_unavailable", "fallback": "memory"},
            )
    return InMemoryRecentWindow()


def get_recent_window() -> RecentExposureWindow:
    """Process-wide window instance."""
    global _window
    if _window is None:
        _window = build_recent_window()
    return _window


def set_recent_window(window: RecentExposureWindow | None) -> None:
    """Replace the process-wide window (tests, app startup)."""
    global _window
    _window = window
