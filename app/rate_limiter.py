"""
Hybrid in-memory + Redis rate limiting.
Counts live in process memory and are synced to Redis periodically so limits
survive restarts and are shared across workers. Without Redis the limiter
keeps working from memory alone.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None
_redis_unavailable_until = 0.0

# Format: {key: {'count': int, 'reset_time': int, 'last_redis_sync': int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10  # Sync to Redis every 10 seconds
MEMORY_CACHE_CLEANUP_INTERVAL = 60  # Drop expired entries at most once a minute
REDIS_RETRY_INTERVAL = 60  # Wait before retrying a failed Redis connection
_last_cleanup = 0


def get_redis_client() -> Optional[redis.Redis]:
    """Get or create the Redis client; None while Redis is unreachable"""
    global redis_client, _redis_unavailable_until

    if redis_client is not None:
        return redis_client
    if time.time() < _redis_unavailable_until:
        return None

    redis_url = os.getenv("REDIS_URL")
    try:
        if redis_url:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
            )
        else:
            client = redis.Redis(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", "6379")),
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        client.ping()
        redis_client = client
        logger.info("Redis connected for rate limiting")
        return redis_client
    except redis.RedisError as e:
        _redis_unavailable_until = time.time() + REDIS_RETRY_INTERVAL
        logger.warning(f"⚠️ Redis unavailable, rate limiting from memory only: {e}")
        return None


def cleanup_expired_cache(current_time: Optional[int] = None) -> int:
    """Remove memory entries whose window has ended; returns how many were dropped"""
    global _last_cleanup
    current_time = int(time.time()) if current_time is None else current_time
    if current_time - _last_cleanup < MEMORY_CACHE_CLEANUP_INTERVAL:
        return 0

    with cache_lock:
        expired = [key for key, entry in memory_cache.items() if current_time >= entry["reset_time"]]
        for key in expired:
            del memory_cache[key]
    _last_cleanup = current_time

    if expired:
        logger.debug(f"🧹 Cleaned up {len(expired)} expired rate limit entries")
    return len(expired)


def check_rate_limit(key: str, limit: int, window_seconds: int) -> tuple[bool, int, int]:
    """
    Count one request against ``key``.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())
    client = get_redis_client()
    cleanup_expired_cache(current_time)

    with cache_lock:
        entry = memory_cache.get(key)
        if entry is None:
            entry = {"count": 0, "reset_time": current_time + window_seconds, "last_redis_sync": 0}
            if client is not None:
                try:
                    redis_count = client.get(key)
                    redis_ttl = client.ttl(key)
                    if redis_count and redis_ttl > 0:
                        entry = {
                            "count": int(redis_count),
                            "reset_time": current_time + redis_ttl,
                            "last_redis_sync": current_time,
                        }
                except redis.RedisError as e:
                    logger.warning(f"⚠️ Failed to load {key} from Redis: {e}")
            memory_cache[key] = entry

        if current_time >= entry["reset_time"]:
            entry["count"] = 0
            entry["reset_time"] = current_time + window_seconds
            entry["last_redis_sync"] = 0

        is_allowed = entry["count"] < limit
        if is_allowed:
            entry["count"] += 1

        if client is not None and current_time - entry["last_redis_sync"] >= MEMORY_CACHE_SYNC_INTERVAL:
            try:
                client.set(key, entry["count"], ex=max(1, entry["reset_time"] - current_time))
                entry["last_redis_sync"] = current_time
            except redis.RedisError as e:
                logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

        return is_allowed, entry["count"], max(0, entry["reset_time"] - current_time)


def _client_identity(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    if user_id is not None:
        return f"user:{user_id}"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        generation_limit = create_rate_limiter(limit=5, window_seconds=60, key_prefix="generate")

        @router.post("/generate")
        async def generate(data: GenerateRequest, _: None = Depends(generation_limit)):
            ...
    """

    async def rate_limiter(request: Request):
        key = f"{key_prefix}:{_client_identity(request)}"
        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds)
        if not is_allowed:
            logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit}")
            raise HTTPException(
                status_code=429,
                detail={
                    "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                    "retry_after": ttl,
                },
                headers={"Retry-After": str(ttl)},
            )

    return rate_limiter
