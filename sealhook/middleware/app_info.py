from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from fastapi import Request


class AppInfoMiddleware(BaseHTTPMiddleware):
    """Stamps every response with the application name and version."""

    def __init__(self, app: ASGIApp, name: str, version: str):
        super().__init__(app)
        self.name = name
        self.version = version

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["App-Name"] = self.name
        response.headers["App-Version"] = self.version
        return response
