from __future__ import annotations

import fnmatch
import json
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class CacheError(RuntimeError):
    pass


# Time-to-live presets, in seconds.
class CACHE_TTL:
    SHORT = 300
    MEDIUM = 1800
    LONG = 3600
    VERY_LONG = 86400


class CACHE_KEYS:
    FEATURES = "features:all"
    SERVICES = "services:all"
    PROJECTS = "projects:all"
    PACKAGES = "packages:all"
    PROFILES = "profiles:all"
    USERS = "users:all"
    ROLES = "roles:all"

    @staticmethod
    def collection(plural: str, variant: str = "all") -> str:
        return f"{plural}:{variant}"

    @staticmethod
    def record(singular: str, record_id: object) -> str:
        return f"{singular}:{record_id}"


class Cache:
    """
    JSON value cache. Backends never raise to callers: errors are logged and
    reads degrade to a miss, writes to a no-op.
    """

    default_ttl: int = CACHE_TTL.MEDIUM

    def get(self, key: str) -> Any | None:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        raise NotImplementedError

    def delete(self, *keys: str) -> bool:
        raise NotImplementedError

    def delete_pattern(self, pattern: str) -> bool:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError


class NullCache(Cache):
    def get(self, key: str) -> Any | None:
        return None

    def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        return False

    def delete(self, *keys: str) -> bool:
        return True

    def delete_pattern(self, pattern: str) -> bool:
        return True

    def exists(self, key: str) -> bool:
        return False


@dataclass
class MemoryCache(Cache):
    """In-process TTL cache. Per worker; fine for a single-node deployment and tests."""

    default_ttl: int = CACHE_TTL.MEDIUM
    clock: Callable[[], float] = time.monotonic
    _data: dict[str, tuple[float, str]] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _purge_expired(self, now: float) -> None:
        for k in [k for k, (exp, _) in self._data.items() if exp <= now]:
            del self._data[k]

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            expires_at, raw = item
            if expires_at <= self.clock():
                del self._data[key]
                return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error("Cache SET error (key=%s): %s", key, e)
            return False
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            now = self.clock()
            self._purge_expired(now)
            self._data[key] = (now + ttl, raw)
        return True

    def delete(self, *keys: str) -> bool:
        with self._lock:
            for k in keys:
                self._data.pop(k, None)
        return True

    def delete_pattern(self, pattern: str) -> bool:
        with self._lock:
            for k in [k for k in self._data if fnmatch.fnmatchcase(k, pattern)]:
                del self._data[k]
        return True

    def exists(self, key: str) -> bool:
        return self.get(key) is not None


@dataclass
class RedisCache(Cache):
    url: str
    default_ttl: int = CACHE_TTL.MEDIUM
    key_prefix: str = "kothler:"
    _client_obj: Any = field(default=None, repr=False)

    def _client(self):
        if self._client_obj is None:
            try:
                import redis  # type: ignore
            except Exception as e:  # pragma: no cover
                raise CacheError("redis required for the redis cache backend. Install redis.") from e
            self._client_obj = redis.Redis.from_url(self.url, decode_responses=True)
        return self._client_obj

    def _k(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def get(self, key: str) -> Any | None:
        try:
            raw = self._client().get(self._k(key))
            return json.loads(raw) if raw is not None else None
        except Exception as e:
            logger.error("Redis GET error (key=%s): %s", key, e)
            return None

    def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        try:
            self._client().setex(self._k(key), self.default_ttl if ttl is None else ttl, json.dumps(value))
            return True
        except Exception as e:
            logger.error("Redis SET error (key=%s): %s", key, e)
            return False

    def delete(self, *keys: str) -> bool:
        if not keys:
            return True
        try:
            self._client().delete(*[self._k(k) for k in keys])
            return True
        except Exception as e:
            logger.error("Redis DEL error (keys=%s): %s", ",".join(keys), e)
            return False

    def delete_pattern(self, pattern: str) -> bool:
        try:
            client = self._client()
            keys = list(client.scan_iter(match=self._k(pattern)))
            if keys:
                client.delete(*keys)
            return True
        except Exception as e:
            logger.error("Redis INVALIDATE PATTERN error (pattern=%s): %s", pattern, e)
            return False

    def exists(self, key: str) -> bool:
        try:
            return self._client().exists(self._k(key)) == 1
        except Exception as e:
            logger.error("Redis EXISTS error (key=%s): %s", key, e)
            return False


def cache_from_config(config: dict) -> Cache:
    backend = (config.get("CACHE_BACKEND") or "memory").strip().lower()
    ttl = int(config.get("CACHE_DEFAULT_TTL") or CACHE_TTL.MEDIUM)
    if backend == "redis":
        return RedisCache(url=(config.get("REDIS_URL") or "").strip(), default_ttl=ttl)
    if backend in ("none", "null", "off"):
        return NullCache()
    # default in-process
    return MemoryCache(default_ttl=ttl)


def init_cache(app) -> Cache:
    cache = cache_from_config(app.config)
    app.extensions["cache"] = cache
    app.logger.info("Cache backend: %s", type(cache).__name__)
    return cache


def get_cache() -> Cache:
    from flask import current_app

    return current_app.extensions.get("cache") or NullCache()


def cached(key: str, loader: Callable[[], Any], ttl: int | None = None, cache: Cache | None = None) -> Any:
    """Read-through: return the cached value for ``key`` or load, store and return it."""
    cache = cache or get_cache()
    hit = cache.get(key)
    if hit is not None:
        return hit
    value = loader()
    cache.set(key, value, ttl)
    return value


def invalidate_entity(plural: str, singular: str, record_id: object | None = None, cache: Cache | None = None) -> None:
    """Drop every list variant of an entity and, when given, its record key."""
    cache = cache or get_cache()
    cache.delete_pattern(f"{plural}:*")
    if record_id is not None:
        cache.delete(CACHE_KEYS.record(singular, record_id))


_PENDING_KEY = "pending_cache_invalidations"


def invalidate_on_commit(s, plural: str, singular: str, record_id: object | None = None) -> None:
    """
    Queue an entity invalidation on the SQLAlchemy session; it runs once the
    transaction commits and is discarded on rollback.
    """
    s.info.setdefault(_PENDING_KEY, []).append((get_cache(), plural, singular, record_id))


@event.listens_for(Session, "after_commit")
def _run_pending_invalidations(s: Session) -> None:
    for cache, plural, singular, record_id in s.info.pop(_PENDING_KEY, []):
        invalidate_entity(plural, singular, record_id, cache=cache)


@event.listens_for(Session, "after_rollback")
def _drop_pending_invalidations(s: Session) -> None:
    s.info.pop(_PENDING_KEY, None)
