"""
Queue abstraction for order events.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production. Events are small JSON documents consumed by
the notification worker.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)


def make_event(event_type: str, **payload) -> dict:
    return {"type": event_type, "created_at": time.time(), **payload}


class EventQueue(Protocol):
    """Minimal queue interface for dispatching events to workers."""

    def enqueue(self, event: dict) -> None:
        ...

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[dict]:
        ...


@dataclass
class InMemoryEventQueue:
    """Simple FIFO queue for testing/dev."""

    items: list[dict] = field(default_factory=list)

    def enqueue(self, event: dict) -> None:
        self.items.append(event)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[dict]:
        if not self.items:
            return None
        return self.items.pop(0)


@dataclass
class RedisEventQueue:
    """Redis-backed queue using list push/pop operations."""

    url: str
    queue_key: str = "roofrix:events"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def enqueue(self, event: dict) -> None:
        self.client.rpush(self.queue_key, json.dumps(event, default=str))

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[dict]:
        try:
            if block:
                result = self.client.blpop(self.queue_key, timeout=timeout or 0)
                if result is None:
                    return None
                _, raw = result
            else:
                raw = self.client.lpop(self.queue_key)
                if raw is None:
                    return None
        except redis_exceptions.ConnectionError:
            # Connection resets can happen on managed Redis. Treat as empty queue
            # and allow the worker loop to retry.
            self.client = redis.Redis.from_url(self.url)
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Dropping malformed event payload: %r", raw[:200])
            return None
