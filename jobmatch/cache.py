"""Result caching: key-value backends plus the match-result cache on top of them."""
from __future__ import annotations

import hashlib
import json
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from redis import Redis

from jobmatch.config import MatchSettings
from jobmatch.log import get_logger
from jobmatch.models import MatchCriteria, MatchResult

log = get_logger(__name__)


class KeyValueCache(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        pass


class MemoryCache(KeyValueCache):
    """Process-local cache with per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, str]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (self._clock() + ttl_seconds, value)

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache(KeyValueCache):
    def __init__(self, redis_url: str = "redis://localhost:6379/0", client: Redis | None = None) -> None:
        self.redis_url = redis_url
        self._redis = client

    def _get_redis(self) -> Redis:
        """Get Redis connection (lazy init)."""
        if self._redis is None:
            self._redis = Redis.from_url(self.redis_url)
        return self._redis

    def get(self, key: str) -> Optional[str]:
        raw = self._get_redis().get(key)
        if raw is None:
            return None
        return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._get_redis().setex(key, ttl_seconds, value)


def build_cache(settings: MatchSettings) -> KeyValueCache:
    if settings.redis_url:
        log.info("Using Redis result cache at %s", settings.redis_url)
        return RedisCache(settings.redis_url)
    return MemoryCache()


class ResultCache:
    """Ranked result lists keyed by seeker, criteria and requested length; backend failures mean a miss."""

    MATCH_PREFIX = "job-matches"
    RECOMMENDATION_PREFIX = "recommendations"

    def __init__(self, backend: KeyValueCache) -> None:
        self.backend = backend

    @classmethod
    def match_key(cls, seeker_id: str, criteria: MatchCriteria, limit: int) -> str:
        digest = hashlib.sha256(criteria.fingerprint().encode("utf-8")).hexdigest()[:32]
        return f"{cls.MATCH_PREFIX}:{seeker_id}:{limit}:{digest}"

    @classmethod
    def recommendation_key(cls, seeker_id: str, limit: int) -> str:
        return f"{cls.RECOMMENDATION_PREFIX}:{seeker_id}:{limit}"

    def load(self, key: str) -> list[MatchResult] | None:
        try:
            raw = self.backend.get(key)
        except Exception as exc:
            log.warning("Cache read failed for %s (%s); recomputing", key, exc)
            return None
        if raw is None:
            return None
        try:
            return [MatchResult.from_dict(item) for item in json.loads(raw)]
        except (ValueError, KeyError, TypeError) as exc:
            log.warning("Discarding unreadable cache entry %s (%s)", key, exc)
            return None

    def store(self, key: str, results: list[MatchResult], ttl_seconds: int) -> bool:
        payload = json.dumps([r.to_dict() for r in results])
        try:
            self.backend.set(key, payload, ttl_seconds)
        except Exception as exc:
            log.warning("Cache write failed for %s (%s)", key, exc)
            return False
        log.debug("Cached %d result(s) under %s for %ds", len(results), key, ttl_seconds)
        return True
