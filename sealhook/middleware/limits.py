"""Inbound request limits: body size and concurrency."""
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


class SizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose declared Content-Length exceeds the limit.

    Chunked bodies carry no length; the webhook route stops reading once
    the limit is passed.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next):
        length = request.headers.get("content-length")
        if length is not None:
            try:
                too_large = int(length) > self.max_bytes
            except ValueError:
                return JSONResponse(status_code=400, content={"error": "invalid Content-Length"})
            if too_large:
                logger.warning(f"Rejected oversized body: {length} bytes on {request.url.path}")
                return JSONResponse(status_code=413, content={"error": "request body too large"})

        return await call_next(request)


class ThrottleMiddleware:
    """Caps the number of requests in flight; the excess gets 503.

    A request stays counted until its response body has been sent, so slow
    proxied target bodies hold their slot.
    """

    def __init__(self, app: ASGIApp, max_concurrent: int):
        self.app = app
        self.max_concurrent = max_concurrent
        self._in_flight = 0

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if self._in_flight >= self.max_concurrent:
            response = JSONResponse(status_code=503, content={"error": "server is busy"})
            await response(scope, receive, send)
            return

        self._in_flight += 1
        try:
            await self.app(scope, receive, send)
        finally:
            self._in_flight -= 1
