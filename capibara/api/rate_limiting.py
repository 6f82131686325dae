"""
General Rate Limiting Middleware

Rate limits all API endpoints per client IP to prevent abuse, and blocks IPs
that keep failing authentication.
"""
import logging
import time
from collections import defaultdict
from typing import Dict, Tuple
from threading import Lock
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from capibara.core.config import get_settings

logger = logging.getLogger(__name__)


class APIRateLimiter:
    """
    Token bucket rate limiter keyed by client IP.
    """

    BURST_SIZE = 10
    MAX_FAILED_ATTEMPTS = 50  # per hour
    TRUSTED_IPS = {"127.0.0.1", "::1"}

    def __init__(self, rate_per_minute: int = 60):
        self.rate_per_minute = rate_per_minute
        self.ip_buckets: Dict[str, Tuple[float, float]] = {}  # ip -> (tokens, last_refill)
        self.failed_auth_attempts: Dict[str, list] = defaultdict(list)  # ip -> [timestamps]
        self.lock = Lock()

    def _refill_bucket(self, tokens: float, last_refill: float) -> Tuple[float, float]:
        """Refill token bucket based on elapsed time."""
        now = time.time()
        elapsed = now - last_refill
        tokens = min(tokens + elapsed * (self.rate_per_minute / 60.0), self.rate_per_minute + self.BURST_SIZE)
        return tokens, now

    def check_rate_limit(self, ip: str) -> Tuple[bool, str]:
        """
        Check if a request from this IP should be allowed.

        Returns:
            (allowed, reason) - True if allowed, False + reason if blocked
        """
        with self.lock:
            now = time.time()
            if ip not in self.TRUSTED_IPS and ip in self.failed_auth_attempts:
                recent_failures = [ts for ts in self.failed_auth_attempts[ip] if now - ts < 3600]
                self.failed_auth_attempts[ip] = recent_failures
                if len(recent_failures) >= self.MAX_FAILED_ATTEMPTS:
                    logger.warning(f"SECURITY: IP {ip} blocked due to {len(recent_failures)} failed auth attempts")
                    return False, "Too many failed authentication attempts. Try again later."

            tokens, last_refill = self.ip_buckets.get(ip, (float(self.rate_per_minute), now))
            tokens, last_refill = self._refill_bucket(tokens, last_refill)
            if tokens < 1:
                logger.warning(f"Rate limit exceeded for IP: {ip}")
                return False, f"Rate limit exceeded: {self.rate_per_minute} requests per minute per IP"

            self.ip_buckets[ip] = (tokens - 1, last_refill)
            return True, ""

    def record_failed_auth(self, ip: str):
        """Record a failed authentication attempt."""
        with self.lock:
            self.failed_auth_attempts[ip].append(time.time())
            logger.warning(f"SECURITY: Failed auth attempt from IP {ip} ({len(self.failed_auth_attempts[ip])} total)")

    def cleanup_old_entries(self):
        """Remove stale entries to prevent memory bloat."""
        with self.lock:
            now = time.time()
            self.ip_buckets = {
                ip: bucket for ip, bucket in self.ip_buckets.items()
                if now - bucket[1] < 600
            }
            for ip in list(self.failed_auth_attempts.keys()):
                recent = [ts for ts in self.failed_auth_attempts[ip] if now - ts < 3600]
                if recent:
                    self.failed_auth_attempts[ip] = recent
                else:
                    del self.failed_auth_attempts[ip]

    def reset(self):
        """Forget all buckets and failures (testing)."""
        with self.lock:
            self.ip_buckets.clear()
            self.failed_auth_attempts.clear()


# Global rate limiter instance
rate_limiter = APIRateLimiter(get_settings().rate_limit_per_minute)


class GeneralRateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware to apply rate limiting to all API endpoints.
    """

    # Exempt paths (health checks, docs)
    EXEMPT_PATHS = ["/health", "/docs", "/redoc", "/openapi.json"]

    async def dispatch(self, request: Request, call_next):
        if any(request.url.path.startswith(path) for path in self.EXEMPT_PATHS):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        allowed, reason = rate_limiter.check_rate_limit(client_ip)

        if not allowed:
            logger.warning(f"Rate limit blocked: {client_ip} - {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={
                    "detail": reason,
                    "retry_after": 60
                },
                headers={
                    "Retry-After": "60",
                    "X-RateLimit-Limit": str(rate_limiter.rate_per_minute),
                    "X-RateLimit-Remaining": "0"
                }
            )

        response = await call_next(request)

        if response.status_code == 401:
            rate_limiter.record_failed_auth(client_ip)

        return response


def cleanup_rate_limiter():
    """Periodic cleanup task (call from background thread)."""
    rate_limiter.cleanup_old_entries()
