from __future__ import annotations

"""Per-IP request rate limiting for the API routes.

Fixed one-minute windows keyed by client IP. Counters live in process memory
and are pruned whenever a new window starts; they are the only state shared
across requests.
"""
import ipaddress
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi.responses import JSONResponse

from .errors import RateLimitExceeded, error_payload

logger = logging.getLogger("forexapi.rate_limit")

WINDOW_SECONDS = 60
DEFAULT_CLIENT_IP = "127.0.0.1"

# Checked in order; the socket peer is the last resort.
_IP_HEADERS = ("cf-connecting-ip", "x-forwarded-for", "x-real-ip")


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # epoch seconds at which the window rolls over

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


class RateLimiter:
    def __init__(
        self,
        requests_per_minute: int,
        clock: Callable[[], float] = time.time,
    ):
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        self.limit = requests_per_minute
        self._clock = clock
        self._lock = threading.Lock()
        self._window: Optional[int] = None
        self._counts: Dict[str, int] = {}

    def hit(self, client_ip: str) -> RateLimitDecision:
        window = int(self._clock() // WINDOW_SECONDS)
        with self._lock:
            if window != self._window:
                # New minute: every previous counter is stale.
                self._window = window
                self._counts.clear()
            count = self._counts.get(client_ip, 0) + 1
            self._counts[client_ip] = count
        return RateLimitDecision(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_at=(window + 1) * WINDOW_SECONDS,
        )

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._counts)


def _valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def client_ip(request) -> str:  # type: ignore
    for header in _IP_HEADERS:
        raw = request.headers.get(header)
        if not raw:
            continue
        candidate = raw.split(",")[0].strip()
        if _valid_ip(candidate):
            return candidate
    if request.client and request.client.host and _valid_ip(request.client.host):
        return request.client.host
    return DEFAULT_CLIENT_IP


def make_rate_limit_middleware(limiter: RateLimiter, path_prefix: str = "/api"):
    async def rate_limit_middleware(request, call_next):  # type: ignore
        if not request.url.path.startswith(path_prefix) or request.method == "OPTIONS":
            return await call_next(request)
        ip = client_ip(request)
        decision = limiter.hit(ip)
        if not decision.allowed:
            logger.info("rate limit exceeded for %s", ip)
            exc = RateLimitExceeded("Rate limit exceeded. Please try again later.")
            return JSONResponse(
                status_code=exc.status_code,
                content=error_payload(exc.status_code, exc.error_type, exc.public_message),
                headers=decision.headers(),
            )
        response = await call_next(request)
        response.headers.update(decision.headers())
        return response

    return rate_limit_middleware
