"""
Request throttling for the public and credential endpoints
(login, tenant registration, public booking, contact form).

Each key gets a fixed window counted in process memory. When REDIS_URL is set the
counts are pushed to Redis every few seconds so that workers started later pick up
the current window instead of starting from zero.
"""

import logging
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request

from .config import RATE_LIMIT_ENABLED, REDIS_URL

logger = logging.getLogger(__name__)

REDIS_PUSH_INTERVAL = 10
PRUNE_INTERVAL = 60

_redis: Optional[redis.Redis] = None
_redis_failed = False

# key -> {"count": int, "reset_at": int, "pushed_at": int}
windows: dict[str, dict] = {}
windows_lock = Lock()
_last_prune = 0


def get_redis_client() -> Optional[redis.Redis]:
    """Shared Redis connection, or None when running memory-only"""
    global _redis, _redis_failed

    if _redis is not None or _redis_failed or not REDIS_URL:
        return _redis

    try:
        client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        client.ping()
        _redis = client
        logger.info("✅ Rate limit counters shared through Redis")
    except redis.RedisError as e:
        # Memory windows keep working; do not retry on every request
        _redis_failed = True
        logger.error(f"❌ Redis unavailable, rate limiting per process only: {e}")

    return _redis


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def _prune(now: int):
    global _last_prune
    if now - _last_prune < PRUNE_INTERVAL:
        return
    stale = [key for key, window in windows.items() if now >= window["reset_at"]]
    for key in stale:
        del windows[key]
    _last_prune = now


def _open_window(key: str, window_seconds: int, now: int, client: Optional[redis.Redis]) -> dict:
    window = {"count": 0, "reset_at": now + window_seconds, "pushed_at": now}
    if client is None:
        return window

    try:
        stored, ttl = client.get(key), client.ttl(key)
        if stored and ttl > 0:
            window["count"] = int(stored)
            window["reset_at"] = now + ttl
    except redis.RedisError as e:
        logger.warning(f"⚠️ Could not read window {key} from Redis: {e}")
    return window


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis] = None
) -> tuple[bool, int, int]:
    """
    Count one request against ``key``.

    Returns (allowed, requests counted in the window, seconds until the window resets).
    Rejected requests are not counted.
    """
    now = int(time.time())

    with windows_lock:
        _prune(now)

        window = windows.get(key)
        if window is None:
            window = windows[key] = _open_window(key, window_seconds, now, client)
        elif now >= window["reset_at"]:
            window.update(count=0, reset_at=now + window_seconds, pushed_at=0)

        allowed = window["count"] < limit
        if allowed:
            window["count"] += 1

        if client is not None and now - window["pushed_at"] >= REDIS_PUSH_INTERVAL:
            try:
                client.set(key, window["count"], ex=max(1, window["reset_at"] - now))
                window["pushed_at"] = now
            except redis.RedisError as e:
                logger.warning(f"⚠️ Could not push window {key} to Redis: {e}")

        return allowed, window["count"], max(0, window["reset_at"] - now)


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str):
    """
    Build a FastAPI dependency limiting each client IP to ``limit`` requests
    per ``window_seconds`` on the endpoints that use it.

        rate_limit_login = create_rate_limiter(limit=10, window_seconds=300, key_prefix="login")

        @router.post("/login")
        async def login(data: LoginRequest, _: None = Depends(rate_limit_login)):
            ...
    """

    async def enforce(request: Request):
        if not RATE_LIMIT_ENABLED:
            return

        key = f"{key_prefix}:{get_client_ip(request)}"
        allowed, count, retry_after = check_rate_limit(key, limit, window_seconds, get_redis_client())
        if not allowed:
            logger.warning(f"🚫 Too many requests for {key} ({count}/{limit} in {window_seconds}s)")
            raise HTTPException(
                status_code=429,
                detail=f"Too many requests. Please try again in {retry_after} seconds.",
                headers={"Retry-After": str(retry_after)},
            )

    return enforce
