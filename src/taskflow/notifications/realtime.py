"""Realtime fan-out to connected clients."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


def project_room(project_id: str) -> str:
    return f"project_{project_id}"


def user_room(user_id: str) -> str:
    return f"user_{user_id}"


class RealtimeSink(ABC):
    """Publishes named events to a room (a broadcast audience key)."""

    @abstractmethod
    async def publish(self, room: str, event_name: str, payload: dict[str, Any]) -> None:
        """Broadcast ``payload`` as ``event_name`` to everyone in ``room``."""

    async def close(self) -> None:
        """Release connections."""


class InMemoryRealtimeSink(RealtimeSink):
    """Keeps published messages in a list; used in development and tests."""

    def __init__(self):
        self.published: list[tuple[str, str, dict[str, Any]]] = []

    async def publish(self, room: str, event_name: str, payload: dict[str, Any]) -> None:
        self.published.append((room, event_name, payload))
        logger.debug(f"Published {event_name} to {room}")

    def messages_for(self, room: str) -> list[tuple[str, dict[str, Any]]]:
        return [(name, payload) for r, name, payload in self.published if r == room]


class RedisRealtimeSink(RealtimeSink):
    """
    Redis pub/sub fan-out.

    Each room is a channel ``{prefix}:{room}``; the websocket gateway
    subscribes to the rooms of its connected clients and relays messages.

    Requires redis to be installed: pip install redis[hiredis]
    """

    def __init__(self, redis_url: str, channel_prefix: str = "realtime"):
        try:
            import redis.asyncio as aioredis
        except ImportError:
            raise ImportError(
                "redis package required for RedisRealtimeSink. "
                "Install with: pip install redis[hiredis]"
            )

        self.redis = aioredis.from_url(redis_url, decode_responses=True)
        self.channel_prefix = channel_prefix
        logger.info(f"Redis realtime sink initialized: {redis_url}")

    async def publish(self, room: str, event_name: str, payload: dict[str, Any]) -> None:
        message = json.dumps({"event": event_name, "payload": payload}, default=str)
        await self.redis.publish(f"{self.channel_prefix}:{room}", message)

    async def close(self) -> None:
        await self.redis.aclose()
