import time
from typing import Any, Optional, Dict, Tuple

from fastapi import Request

# ---------------------------
# Simple internal TTL cache (in-memory)
# ---------------------------
CacheStore = Dict[str, Tuple[float, Any]]
# value is stored as: key -> (expires_at_epoch, data)

def cache_get(store: CacheStore, key: str) -> Optional[Any]:
    """
    Return cached value if not expired, else None.
    """
    if not store:
        return None
    hit = store.get(key)
    if not hit:
        return None

    expires_at, data = hit
    if time.time() >= expires_at:
        store.pop(key, None)
        return None
    return data


def cache_set(store: CacheStore, key: str, value: Any, ttl_seconds: int) -> None:
    """
    Set cached value with ttl.
    """
    if ttl_seconds <= 0:
        # treat as "no cache"
        store.pop(key, None)
        return
    store[key] = (time.time() + ttl_seconds, value)


def cache_clear_prefix(store: CacheStore, prefix: str) -> int:
    """
    Remove all keys starting with prefix. Returns number removed.
    """
    if not store:
        return 0
    keys = [k for k in store.keys() if k.startswith(prefix)]
    for k in keys:
        store.pop(k, None)
    return len(keys)


# ---------------------------
# Fixed-window rate limiting (in-memory, per process)
# ---------------------------
RateStore = Dict[str, Tuple[float, int]]
# value is stored as: key -> (window_started_at_epoch, hits_in_window)

def client_key(request: Request) -> str:
    """
    Identify the caller: first X-Forwarded-For hop, else socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def rate_limit_hit(store: RateStore, key: str, limit: int, window_seconds: int) -> Tuple[bool, int]:
    """
    Count one hit for key. Returns (allowed, retry_after_seconds).
    """
    now = time.time()
    started, hits = store.get(key, (now, 0))

    if now - started >= window_seconds:
        started, hits = now, 0

    if hits >= limit:
        retry_after = max(1, int(started + window_seconds - now) + 1)
        return False, retry_after

    store[key] = (started, hits + 1)
    return True, 0
