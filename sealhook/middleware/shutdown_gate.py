from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class ShutdownGateMiddleware(BaseHTTPMiddleware):
    """Rejects new traffic once the application starts shutting down.

    The flag lives on ``app.state`` so each application instance has its own.
    """

    @staticmethod
    def set_shutting_down(app, value: bool):
        app.state.shutting_down = value
        if value:
            logger.info("Shutdown gate enabled: rejecting non-health traffic.")

    async def dispatch(self, request: Request, call_next):
        if getattr(request.app.state, "shutting_down", False):
            # liveness stays green while in-flight deliveries drain
            if request.url.path == "/health/live":
                return await call_next(request)

            return JSONResponse(
                status_code=503,
                content={"error": "server is shutting down"}
            )

        return await call_next(request)
