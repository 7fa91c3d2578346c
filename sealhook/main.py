"""sealhook - Main Application."""
from contextlib import asynccontextmanager
from typing import Optional
import logging

import httpx
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse

from sealhook.adapters.upstream.client import UpstreamClient, build_client
from sealhook.api.admin import router as admin_router
from sealhook.api.webhook import router as webhook_router
from sealhook.core.config import Settings, get_settings
from sealhook.core.rate_limiter import MemoryRateLimitStorage, RateLimiter
from sealhook.dependencies import build_sealer
from sealhook.domain.relay import RelayService
from sealhook.domain.sealer import Sealer
from sealhook.domain.templates import TemplateCache, TemplateEngine
from sealhook.errors import InvalidTokenError, RelayError
from sealhook.logging_hardening import redact, setup_logging_redaction
from sealhook.middleware.app_info import AppInfoMiddleware
from sealhook.middleware.limits import SizeLimitMiddleware, ThrottleMiddleware
from sealhook.middleware.rate_limit import RateLimitMiddleware
from sealhook.middleware.request_id import RequestIDMiddleware
from sealhook.middleware.shutdown_gate import ShutdownGateMiddleware
from sealhook.routers import health

logger = logging.getLogger(__name__)

APP_NAME = "sealhook"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: the server has configured its own loggers by now
    setup_logging_redaction()
    logger.info(f"Starting {APP_NAME} {app.state.settings.VERSION}, base_url={app.state.settings.BASE_URL}, "
                f"basic_auth={bool(app.state.settings.PASSWORD)}")
    yield
    # Shutdown
    ShutdownGateMiddleware.set_shutting_down(app, True)
    logger.info("Initiating graceful shutdown...")
    await app.state.upstream.aclose()
    logger.info("Shutdown complete.")


def setup_opentelemetry(app: FastAPI, settings: Settings):
    from opentelemetry import trace
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
    from sealhook.observability.tracing import TokenRedactingSpanProcessor

    provider = TracerProvider()

    if settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True))
    elif settings.DEV_MODE:
        processor = BatchSpanProcessor(ConsoleSpanExporter())
    else:
        logger.warning("TRACING_ENABLED without OTEL_EXPORTER_OTLP_ENDPOINT, spans are dropped.")
        processor = None

    if processor:
        provider.add_span_processor(TokenRedactingSpanProcessor(processor))

    trace.set_tracer_provider(provider)

    # health probes are noise
    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider, excluded_urls="health/*,ping")


async def relay_error_handler(request: Request, exc: RelayError):
    # token failures are logged by class only; details could guide tampering
    reason = exc.message if isinstance(exc, InvalidTokenError) else exc.detail
    logger.warning(f"Request failed: {request.method} {redact(request.url.path)} "
                   f"status={exc.status_code} error={reason}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Request panic: {request.method} {redact(request.url.path)}")
    return JSONResponse(status_code=500, content={"error": "internal server error"})


def create_app(
    settings: Optional[Settings] = None,
    *,
    sealer: Optional[Sealer] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """Build the application and the components it owns.

    ``transport`` replaces the outbound HTTP transport (tests use
    ``httpx.MockTransport``).
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=APP_NAME,
        description="Stateless webhook remapper with sealed, self-describing webhook URLs",
        version=settings.VERSION,
        lifespan=lifespan
    )

    engine = TemplateEngine()
    templates = TemplateCache(engine)
    upstream = UpstreamClient(build_client(settings.TIMEOUT_SECONDS, transport=transport, debug=settings.DEBUG))
    sealer = sealer or build_sealer(settings)

    app.state.settings = settings
    app.state.sealer = sealer
    app.state.engine = engine
    app.state.templates = templates
    app.state.upstream = upstream
    app.state.relay = RelayService(sealer, templates, upstream)
    app.state.rate_limiter = RateLimiter(MemoryRateLimitStorage())
    app.state.shutting_down = False

    # Middleware (order matters: last added = first executed)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SizeLimitMiddleware, max_bytes=settings.MAX_BODY_BYTES)
    app.add_middleware(ThrottleMiddleware, max_concurrent=settings.MAX_CONCURRENT_REQUESTS)
    app.add_middleware(AppInfoMiddleware, name=APP_NAME, version=settings.VERSION)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(ShutdownGateMiddleware)

    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(webhook_router.router, tags=["Webhook"])
    app.include_router(admin_router.router, tags=["Management"])
    app.include_router(health.router, tags=["Health"])

    if settings.TRACING_ENABLED:
        setup_opentelemetry(app, settings)

    return app
