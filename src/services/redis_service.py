import json
import logging
from datetime import datetime

import redis
from flask import current_app

logger = logging.getLogger("redis_service")

_client = None


def get_redis() -> redis.Redis:
    """Lazily build one Redis client per process from app config."""
    global _client
    if _client is None:
        _client = redis.Redis(
            host=current_app.config.get("REDIS_HOST", "localhost"),
            port=int(current_app.config.get("REDIS_PORT", 6379)),
            db=int(current_app.config.get("REDIS_DB", 0)),
            decode_responses=True,
        )
    return _client


def set_redis(client) -> None:
    global _client
    _client = client


# ===============================================================
# CALENDAR EVENT OUTBOX
# ===============================================================

def _queue_key() -> str:
    return current_app.config.get("CALENDAR_QUEUE_KEY", "calendar:events")


def enqueue_calendar_event(action: str, payload: dict) -> int:
    """Push a calendar sync event; an out-of-process worker consumes the list."""
    event = {
        "action": action,
        "payload": payload,
        "queued_at": datetime.utcnow().isoformat(),
    }
    length = get_redis().rpush(_queue_key(), json.dumps(event))
    logger.info(f"[Redis] Queued calendar {action} for appointment {payload.get('id')} (depth={length})")
    return length


def pop_calendar_event(timeout: int = 0) -> dict | None:
    """
    Consumer side of the outbox, used by the external calendar sync worker.
    Pops the oldest queued event, blocking up to ``timeout`` seconds when > 0.
    """
    client = get_redis()
    if timeout:
        item = client.blpop(_queue_key(), timeout=timeout)
        raw = item[1] if item else None
    else:
        raw = client.lpop(_queue_key())
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"[Redis] Dropping corrupted calendar event: {raw!r}")
        return None


def calendar_queue_depth() -> int:
    try:
        return int(get_redis().llen(_queue_key()))
    except redis.RedisError as e:
        logger.warning(f"[Redis] Could not read calendar queue depth: {e}")
        return 0
