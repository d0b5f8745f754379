"""Redis cache helpers (fail-open).

- Any Redis error must NOT break a practice request.
- Every key written here carries a bounded TTL.
"""

from __future__ import annotations

import json
from typing import Any

import redis

from adaptive_practice.core.logging import get_logger
from adaptive_practice.core.redis_client import get_redis_client

logger = get_logger(__name__)


def push_capped_json(
    key: str,
    value: Any,
    max_len: int,
    ttl_seconds: int,
    client: redis.Redis | None = None,
) -> bool:
    """Append to a capped list (newest last) and refresh its TTL in one pipeline."""
    client = client or get_redis_client()
    if client is None:
        return False
    try:
        pipe = client.pipeline(transaction=True)
        pipe.rpush(key, json.dumps(value, ensure_ascii=False))
        pipe.ltrim(key, -int(max_len), -1)
        pipe.expire(key, int(ttl_seconds))
        pipe.execute()
        return True
    except redis.RedisError as e:
        logger.warning(
            "redis_push_capped_failed",
            extra={"event": "redis_push_capped_failed", "key": key, "error": str(e)},
        )
        return False


def get_json_list(key: str, count: int, client: redis.Redis | None = None) -> list[Any]:
    """Return the last `count` entries of a JSON list (oldest first)."""
    client = client or get_redis_client()
    if client is None or count <= 0:
        return []
    try:
        raw_items = client.lrange(key, -int(count), -1)
    except redis.RedisError as e:
        logger.warning(
            "redis_get_list_failed",
            extra={"event": "redis_get_list_failed", "key": key, "error": str(e)},
        )
        return []
    items = []
    for raw in raw_items:
        try:
            items.append(json.loads(raw))
        except ValueError:
            continue
    return items


def delete(key: str, client: redis.Redis | None = None) -> None:
    client = client or get_redis_client()
    if client is None:
        return
    try:
        client.delete(key)
    except redis.RedisError:
        return
