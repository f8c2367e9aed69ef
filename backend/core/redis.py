"""Per-user event streams kept in Redis for clients that poll for live updates."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Iterable

import redis
from django.conf import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_redis_client() -> "redis.Redis":
    url = getattr(settings, "REDIS_URL", None)
    if not url:
        raise RuntimeError("REDIS_URL is not configured")
    return redis.Redis.from_url(url)


def user_stream_key(user_id: int) -> str:
    return f"events:user:{int(user_id)}"


def push_event(user_id: int, event_type: str, payload: dict[str, Any] | None) -> str | None:
    """
    Append ``{type, payload}`` to the user's stream.

    Event types are namespaced, e.g. ``chat:new_message`` or
    ``reservation:status_changed``. The payload is stored as compact JSON.
    Returns the stream entry id, or None when Redis is unavailable.
    """
    fields = {
        "type": event_type,
        "payload": json.dumps(payload or {}, separators=(",", ":"), default=str),
    }
    try:
        entry_id = get_redis_client().xadd(
            user_stream_key(user_id),
            fields,
            maxlen=getattr(settings, "USER_EVENT_STREAM_MAXLEN", 1000),
            approximate=True,
        )
    except Exception:
        logger.warning(
            "events: could not push %s for user %s", event_type, user_id, exc_info=True
        )
        return None
    if isinstance(entry_id, bytes):
        entry_id = entry_id.decode("utf-8")
    return str(entry_id)


def push_to_users(
    user_ids: Iterable[int | None], event_type: str, payload: dict[str, Any] | None
) -> list[str]:
    """Push one event to each distinct user; returns the ids of the entries written."""
    written = []
    seen = set()
    for user_id in user_ids:
        if user_id is None or user_id in seen:
            continue
        seen.add(user_id)
        entry_id = push_event(user_id, event_type, payload)
        if entry_id is not None:
            written.append(entry_id)
    return written
