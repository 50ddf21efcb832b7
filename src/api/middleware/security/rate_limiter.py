from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.infra.config.settings import get_settings
from src.core.logger.logger import get_logger
from src.api.controller.auth.dto.error_responses import RateLimitErrorResponse, ErrorDetail, ErrorCode

logger = get_logger(__name__)
settings = get_settings()

API_PREFIX = "/api/v1"
EXEMPT_PATHS = {f"{API_PREFIX}/health", "/", "/docs", "/redoc", "/openapi.json"}
DEFAULT_BUCKET = "*"


class EndpointRateLimiter:
    """Per-IP sliding one-minute window with endpoint-specific limits.

    Limited endpoints get their own bucket; every other path shares one default
    bucket, so the tracked state is bounded by the configured endpoints.
    """

    WINDOW = timedelta(minutes=1)

    def __init__(
        self,
        endpoint_limits: Optional[Dict[str, int]] = None,
        default_limit: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        # bucket -> IP -> timestamps
        self.endpoint_requests: Dict[str, Dict[str, List[datetime]]] = {}

        # Requests per minute
        self.endpoint_limits = endpoint_limits or {
            f"{API_PREFIX}/scores/play": settings.RATE_LIMIT_PLAY,
            f"{API_PREFIX}/email-verification/send": settings.RATE_LIMIT_EMAIL_SEND,
            f"{API_PREFIX}/email-verification/verify": settings.RATE_LIMIT_EMAIL_VERIFY,
        }
        self.default_limit = default_limit or settings.RATE_LIMIT_DEFAULT
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._last_sweep = self.clock()

    def bucket_for(self, endpoint: str) -> str:
        return endpoint if endpoint in self.endpoint_limits else DEFAULT_BUCKET

    def _sweep(self, now: datetime):
        """Drop expired timestamps for every IP, then empty IPs and buckets"""
        for bucket in list(self.endpoint_requests):
            requests = self.endpoint_requests[bucket]
            for ip in list(requests):
                requests[ip] = [ts for ts in requests[ip] if now - ts < self.WINDOW]
                if not requests[ip]:
                    del requests[ip]
            if not requests:
                del self.endpoint_requests[bucket]
        self._last_sweep = now

    def is_rate_limited(self, ip: str, endpoint: str) -> Tuple[bool, int, int, datetime]:
        """
        Check if IP is rate limited for specific endpoint.
        Returns: (is_limited, current_count, limit, reset_time)
        """
        now = self.clock()
        bucket = self.bucket_for(endpoint)
        limit = self.endpoint_limits.get(bucket, self.default_limit)

        if now - self._last_sweep >= self.WINDOW:
            self._sweep(now)

        requests = self.endpoint_requests.get(bucket, {})

        # Clean old requests (older than 1 minute)
        if ip in requests:
            requests[ip] = [ts for ts in requests[ip] if now - ts < self.WINDOW]
            if not requests[ip]:
                del requests[ip]
            if not requests:
                del self.endpoint_requests[bucket]

        timestamps = requests.get(ip, [])
        current_count = len(timestamps)

        # Oldest request in the window decides when a slot frees up
        reset_time = (timestamps[0] if timestamps else now) + self.WINDOW

        return current_count >= limit, current_count, limit, reset_time

    def add_request(self, ip: str, endpoint: str):
        """Add request to endpoint-specific tracking."""
        bucket = self.bucket_for(endpoint)
        self.endpoint_requests.setdefault(bucket, {}).setdefault(ip, []).append(self.clock())


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware with endpoint-specific limits and detailed error responses."""

    def __init__(self, app, rate_limiter: Optional[EndpointRateLimiter] = None):
        super().__init__(app)
        self.rate_limiter = rate_limiter or EndpointRateLimiter()

    def _get_client_ip(self, request: Request) -> str:
        """Get client IP, handling proxies."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # Take the first IP in the chain
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

        return request.client.host if request.client else "unknown"

    def _create_rate_limit_response(self, current_count: int, limit: int, reset_time: datetime) -> Response:
        """Create standardized rate limit error response."""
        retry_after = max(1, int((reset_time - datetime.now(timezone.utc)).total_seconds()))
        error_response = RateLimitErrorResponse(
            error=ErrorDetail(
                code=ErrorCode.RATE_LIMIT_EXCEEDED,
                message=f"Rate limit exceeded. Maximum {limit} requests per minute.",
                details=f"Current count: {current_count}/{limit}. Try again after {retry_after} seconds."
            ),
            retry_after=retry_after,
            limit=limit,
            remaining=max(0, limit - current_count),
            reset_time=reset_time
        )

        response = Response(
            content=error_response.model_dump_json(),
            media_type="application/json",
            status_code=429
        )
        response.headers["Retry-After"] = str(retry_after)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count))
        response.headers["X-RateLimit-Reset"] = str(int(reset_time.timestamp()))

        return response

    async def dispatch(self, request: Request, call_next) -> Response:
        # Skip rate limiting for CORS preflight requests, health checks and docs
        if request.method == "OPTIONS" or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        ip = self._get_client_ip(request)
        endpoint = request.url.path

        is_limited, current_count, limit, reset_time = self.rate_limiter.is_rate_limited(ip, endpoint)

        if is_limited:
            logger.warning(f"Rate limit exceeded for IP {ip} on {endpoint}: {current_count}/{limit}")
            return self._create_rate_limit_response(current_count, limit, reset_time)

        self.rate_limiter.add_request(ip, endpoint)

        response = await call_next(request)

        if response.status_code < 400:
            response.headers["X-RateLimit-Limit"] = str(limit)
            response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count - 1))
            response.headers["X-RateLimit-Reset"] = str(int(reset_time.timestamp()))

        return response
