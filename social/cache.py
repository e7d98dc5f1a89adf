"""
Redis cache-aside for post reads.

Design notes
------------
- Only committed state is cached.  Read paths fill entries; mutating paths
  never write them.  Post and comment event subscribers purge entries after
  the producing transaction commits.
- Keys are namespaced (``social:posts:detail:<id>``, ``social:posts:list:...``)
  so several deployments can share one Redis database.
- Redis is optional.  With no client (never connected, ping failed, or
  disabled in tests) every lookup is a miss and every write is skipped;
  Redis errors at call time are logged and treated the same way.
"""
import json
import logging
from dataclasses import asdict, dataclass

import redis.asyncio as redis
from redis.exceptions import RedisError

from social.config import settings

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    errors: int = 0

    def as_dict(self) -> dict:
        lookups = self.hits + self.misses
        data = asdict(self)
        data["hit_rate"] = round(self.hits / lookups * 100, 1) if lookups else 0.0
        return data


class CacheManager:
    def __init__(self, url: str | None = None, namespace: str = "social") -> None:
        self.url = url or settings.REDIS_URL
        self.namespace = namespace
        self._redis: redis.Redis | None = None
        self._stats = CacheStats()

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def connect(self) -> None:
        """Create the client and verify it with PING; disable caching on failure."""
        client = redis.from_url(
            self.url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except RedisError as exc:
            logger.warning("Redis unavailable at %s, caching disabled: %s", self.url, exc)
            await client.aclose()
            return
        self._redis = client
        logger.info("Redis cache enabled: %s", self.url)

    async def disconnect(self) -> None:
        client, self._redis = self._redis, None
        if client is not None:
            await client.aclose()

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    # ------------------------------------------------------------------
    # JSON values
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the decoded value stored under *key*, or None."""
        raw = None
        if self._redis is not None:
            try:
                raw = await self._redis.get(self._key(key))
            except RedisError as exc:
                self._stats.errors += 1
                logger.debug("Cache read failed for %s: %s", key, exc)
        if raw is None:
            self._stats.misses += 1
            return None
        self._stats.hits += 1
        return json.loads(raw)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(self._key(key), json.dumps(value, default=str), ex=ttl)
        except RedisError as exc:
            self._stats.errors += 1
            logger.debug("Cache write failed for %s: %s", key, exc)

    async def purge(self, pattern: str) -> int:
        """Delete every key matching *pattern*; returns how many were removed."""
        if self._redis is None:
            return 0
        try:
            keys = [k async for k in self._redis.scan_iter(match=self._key(pattern))]
            if not keys:
                return 0
            removed = await self._redis.delete(*keys)
        except RedisError as exc:
            self._stats.errors += 1
            logger.debug("Cache purge failed for %s: %s", pattern, exc)
            return 0
        logger.debug("Cache purged %d key(s) for %s", removed, pattern)
        return removed

    # ------------------------------------------------------------------
    # Post entries
    # ------------------------------------------------------------------

    @staticmethod
    def post_key(post_id: int) -> str:
        return f"posts:detail:{post_id}"

    @staticmethod
    def post_list_key(limit: int, offset: int) -> str:
        return f"posts:list:{limit}:{offset}"

    async def invalidate_post(self, post_id: int | None = None) -> None:
        """Drop every cached list page, and the detail entry of *post_id* if given."""
        await self.purge("posts:list:*")
        if post_id is not None:
            await self.purge(self.post_key(post_id))

    @property
    def stats(self) -> dict:
        return {"enabled": self.enabled, **self._stats.as_dict()}


cache = CacheManager()
