from app import rate_limiter
from app.rate_limiter import MEMORY_CACHE_CLEANUP_INTERVAL, check_rate_limit, cleanup_expired_cache, memory_cache

NOW = 1_000_000


def window(count, reset_time):
    return {"count": count, "reset_time": reset_time, "last_redis_sync": 0}


def test_cleanup_drops_only_expired_windows(monkeypatch):
    monkeypatch.setattr(rate_limiter, "_last_cleanup", 0)
    memory_cache["generate:user:1"] = window(5, NOW - 1)
    memory_cache["generate:user:2"] = window(1, NOW + 30)

    assert cleanup_expired_cache(NOW) == 1
    assert list(memory_cache) == ["generate:user:2"]


def test_cleanup_runs_at_most_once_per_interval(monkeypatch):
    monkeypatch.setattr(rate_limiter, "_last_cleanup", NOW - 10)
    memory_cache["generate:user:1"] = window(5, NOW - 1)

    assert cleanup_expired_cache(NOW) == 0
    assert "generate:user:1" in memory_cache
    assert cleanup_expired_cache(NOW + MEMORY_CACHE_CLEANUP_INTERVAL) == 1
    assert memory_cache == {}


def test_counting_sweeps_stale_keys(monkeypatch):
    monkeypatch.setattr(rate_limiter, "_last_cleanup", 0)
    memory_cache["generate:user:9"] = window(3, 1)

    allowed, count, ttl = check_rate_limit("generate:user:10", 5, 60)

    assert allowed and count == 1 and 0 < ttl <= 60
    assert "generate:user:9" not in memory_cache
    assert "generate:user:10" in memory_cache
