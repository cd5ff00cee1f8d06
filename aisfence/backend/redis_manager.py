"""AisFence — Delta Stream (Redis Streams with in-memory fallback).

Every delta the plugin emits is appended here; the REST API and new
WebSocket clients read the tail. Live push goes through the WebSocket manager.
"""

import json
import logging
from collections import deque

logger = logging.getLogger("aisfence.stream")

STREAM_MAXLEN = 5000


class InMemoryDeltaStream:
    """Bounded ring of recent deltas."""

    def __init__(self, maxlen: int = STREAM_MAXLEN):
        self._deltas: deque = deque(maxlen=maxlen)

    def append(self, delta: dict):
        self._deltas.append(delta)

    def tail(self, count: int) -> list[dict]:
        if count <= 0:
            return []
        return list(self._deltas)[-count:]

    def __len__(self) -> int:
        return len(self._deltas)


class DeltaStreamManager:
    """Publishes deltas to a Redis stream when enabled, always to the local ring."""

    def __init__(self, redis_url: str = "redis://localhost:6379", stream_key: str = "aisfence:deltas",
                 use_redis: bool = False, maxlen: int = STREAM_MAXLEN):
        self._redis_url = redis_url
        self._stream_key = stream_key
        self._use_redis = use_redis
        self._maxlen = maxlen
        self._redis = None
        self._local = InMemoryDeltaStream(maxlen=maxlen)
        self.published = 0

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    async def connect(self):
        if not self._use_redis:
            logger.info("Using in-memory delta stream (Redis disabled)")
            return
        try:
            import redis.asyncio as aioredis
            self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
            await self._redis.ping()
            logger.info("Connected to Redis at %s, stream %s", self._redis_url, self._stream_key)
        except Exception as e:
            logger.warning("Redis unavailable (%s), falling back to in-memory delta stream", e)
            self._redis = None
            self._use_redis = False

    async def publish(self, delta: dict):
        self.published += 1
        self._local.append(delta)
        if self._redis is None:
            return
        try:
            await self._redis.xadd(
                self._stream_key,
                {"context": delta.get("context", ""), "delta": json.dumps(delta, default=str)},
                maxlen=self._maxlen,
                approximate=True,
            )
        except Exception as e:
            logger.error("Redis publish error: %s", e)

    async def recent(self, count: int = 100) -> list[dict]:
        """Most recent deltas, oldest first."""
        if self._redis is not None:
            try:
                entries = await self._redis.xrevrange(self._stream_key, count=count)
                return [json.loads(fields["delta"]) for _id, fields in reversed(entries)]
            except Exception as e:
                logger.warning("Redis read failed (%s), serving local deltas", e)
        return self._local.tail(count)

    def status(self) -> dict:
        return {
            "backend": self.backend,
            "published": self.published,
            "buffered": len(self._local),
        }

    async def close(self):
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
