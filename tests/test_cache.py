import pytest

from app.kothler.cache import (
    CACHE_KEYS,
    MemoryCache,
    NullCache,
    RedisCache,
    cache_from_config,
    cached,
    invalidate_entity,
    invalidate_on_commit,
)
from app.kothler.db import session_scope
from app.kothler.models import User
from conftest import csrf_headers


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_memory_cache_expires_entries():
    clock = FakeClock()
    cache = MemoryCache(default_ttl=60, clock=clock)
    cache.set("features:all", [{"id": 1}])
    assert cache.get("features:all") == [{"id": 1}]

    clock.now += 59
    assert cache.exists("features:all")
    clock.now += 1
    assert cache.get("features:all") is None


def test_memory_cache_explicit_ttl_overrides_default():
    clock = FakeClock()
    cache = MemoryCache(default_ttl=3600, clock=clock)
    cache.set("k", "v", ttl=5)
    clock.now += 6
    assert cache.get("k") is None


def test_memory_cache_rejects_unserializable_values():
    cache = MemoryCache()
    assert cache.set("k", object()) is False
    assert cache.get("k") is None


def test_delete_pattern_only_touches_matching_keys():
    cache = MemoryCache()
    cache.set("services:all", [])
    cache.set("services:active", [])
    cache.set("service:3", {"id": 3})
    cache.set("projects:all", [])

    invalidate_entity("services", "service", 3, cache=cache)

    assert cache.get("services:all") is None
    assert cache.get("services:active") is None
    assert cache.get("service:3") is None
    assert cache.get("projects:all") == []


def test_cached_loads_once():
    cache = MemoryCache()
    calls = []

    def loader():
        calls.append(1)
        return ["x"]

    assert cached("features:all", loader, cache=cache) == ["x"]
    assert cached("features:all", loader, cache=cache) == ["x"]
    assert len(calls) == 1


def test_null_cache_always_misses():
    cache = NullCache()
    assert cache.set("k", 1) is False
    assert cache.get("k") is None
    assert cache.delete_pattern("*") is True


def test_cache_from_config_picks_backend():
    assert isinstance(cache_from_config({"CACHE_BACKEND": "memory"}), MemoryCache)
    assert isinstance(cache_from_config({"CACHE_BACKEND": "none"}), NullCache)
    redis_cache = cache_from_config({"CACHE_BACKEND": "redis", "REDIS_URL": "redis://localhost:6379/0"})
    assert isinstance(redis_cache, RedisCache)
    assert redis_cache._k("services:all") == "kothler:services:all"


def test_record_keys():
    assert CACHE_KEYS.collection("profiles", "public") == "profiles:public"
    assert CACHE_KEYS.record("profile", 7) == "profile:7"


def test_invalidation_waits_for_commit(app):
    cache = app.extensions["cache"]
    with app.app_context():
        cache.set("features:all", [])

        with pytest.raises(RuntimeError):
            with session_scope(app) as s:
                invalidate_on_commit(s, "features", "feature")
                raise RuntimeError("boom")
        assert cache.get("features:all") == []

        with session_scope(app) as s:
            s.query(User).count()
            invalidate_on_commit(s, "features", "feature")
            assert cache.get("features:all") == []
        assert cache.get("features:all") is None


def test_writes_invalidate_list_cache(admin_client):
    r = admin_client.get("/api/features")
    assert r.json["features"] == []

    r = admin_client.post(
        "/api/features",
        json={"title": "Soporte", "description": "Soporte directo con el equipo.", "icon": "Headset"},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 201

    r = admin_client.get("/api/features")
    assert [f["title"] for f in r.json["features"]] == ["Soporte"]


class BrokenRedis:
    """Client whose every call fails the way a dropped connection does."""

    def _fail(self, *args, **kwargs):
        raise ConnectionError("redis unavailable")

    get = setex = delete = scan_iter = exists = _fail


class CorruptRedis:
    def get(self, key):
        return "{not json"


def test_broken_redis_degrades_to_miss():
    cache = RedisCache(url="redis://unused", _client_obj=BrokenRedis())
    assert cache.get("features:all") is None
    assert cache.set("features:all", []) is False
    assert cache.delete("feature:1") is False
    assert cache.delete_pattern("features:*") is False
    assert cache.exists("features:all") is False

    calls = []
    value = cached("features:all", lambda: calls.append(1) or [{"id": 1}], cache=cache)
    assert value == [{"id": 1}]
    assert calls == [1]

    invalidate_entity("features", "feature", 1, cache=cache)


def test_corrupt_redis_value_is_a_miss():
    cache = RedisCache(url="redis://unused", _client_obj=CorruptRedis())
    assert cache.get("features:all") is None
    assert cached("features:all", lambda: ["fresh"], cache=cache) == ["fresh"]


def test_requests_survive_broken_cache_backend(app, admin_client, client):
    app.extensions["cache"] = RedisCache(url="redis://unused", _client_obj=BrokenRedis())

    r = client.get("/api/features")
    assert r.status_code == 200
    assert r.json["features"] == []

    r = admin_client.post(
        "/api/features",
        json={"title": "Resiliente", "description": "Funciona aunque falle la caché.", "icon": "Shield"},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 201

    r = client.get("/api/features")
    assert r.status_code == 200
    assert [f["title"] for f in r.json["features"]] == ["Resiliente"]
    assert client.get("/").status_code == 200
