from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass

from fastapi import Request

from web import config


PRUNE_INTERVAL_SECONDS = 60.0


@dataclass
class _Bucket:
    tokens: float
    updated_at: float
    per_seconds: float


class RateLimiter:
    """
    In-process token-bucket limiter (per worker).
    Keys should include both scope and identity (e.g. "auth:ip:1.2.3.4").

    A bucket idle for a whole window has refilled and behaves like a missing
    one; such buckets are swept at most once per `PRUNE_INTERVAL_SECONDS`.
    """

    def __init__(self) -> None:
        self._mem: dict[str, _Bucket] = {}
        self._lock = threading.Lock()
        self._last_prune = 0.0

    def check(self, key: str, *, limit: int, per_seconds: int) -> tuple[bool, int]:
        """Consume one token. Returns `(allowed, retry_after_seconds)`."""
        now = time.time()
        rate = float(limit) / float(per_seconds)
        with self._lock:
            self._prune(now)
            b = self._mem.get(key)
            if b is None:
                b = _Bucket(tokens=float(limit), updated_at=now, per_seconds=float(per_seconds))
                self._mem[key] = b
            # refill
            b.tokens = min(float(limit), b.tokens + (now - b.updated_at) * rate)
            b.updated_at = now
            b.per_seconds = float(per_seconds)
            if b.tokens < 1.0:
                return False, max(1, math.ceil((1.0 - b.tokens) / rate))
            b.tokens -= 1.0
            return True, 0

    def _prune(self, now: float) -> None:
        if now - self._last_prune < PRUNE_INTERVAL_SECONDS:
            return
        self._last_prune = now
        idle = [k for k, b in self._mem.items() if now - b.updated_at >= b.per_seconds]
        for k in idle:
            del self._mem[k]

    def bucket_count(self) -> int:
        with self._lock:
            return len(self._mem)

    def reset(self) -> None:
        with self._lock:
            self._mem.clear()


def client_ip(request: Request) -> str:
    if config.trust_proxy():
        forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
        if forwarded:
            return forwarded
    return request.client.host if request.client else "unknown"


def scope_for_path(path: str) -> str | None:
    if path.startswith("/auth/"):
        return "auth"
    if path.startswith("/api/admin/"):
        return "admin"
    return None
