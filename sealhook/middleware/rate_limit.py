from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)

EXEMPT_PREFIXES = ("/health", "/ping")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Global token bucket over all non-health traffic."""

    async def dispatch(self, request: Request, call_next):
        settings = request.app.state.settings
        if not settings.RATE_LIMIT_ENABLED or request.url.path.startswith(EXEMPT_PREFIXES):
            return await call_next(request)

        limiter = request.app.state.rate_limiter
        allowed, headers = await limiter.check_throughput(
            "global", settings.RATE_LIMIT_RPS, settings.RATE_LIMIT_BURST
        )

        if not allowed:
            logger.warning(f"Rate limit exceeded: {request.method} {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={"error": "rate limit exceeded"},
                headers=headers
            )

        response = await call_next(request)
        for k, v in headers.items():
            response.headers[k] = v

        return response
