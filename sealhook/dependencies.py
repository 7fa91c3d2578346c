"""Dependency Injection Module.

Every component is owned by the application instance (``app.state``) and
built once in ``create_app``; route handlers receive them through these
providers.
"""
import logging
import secrets
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from sealhook.core.config import Settings
from sealhook.domain.relay import RelayService
from sealhook.domain.sealer import Sealer
from sealhook.domain.templates import TemplateCache, TemplateEngine
from sealhook.errors import raise_relay_error

logger = logging.getLogger(__name__)

DEV_SECRET = "dev-secret-change-in-prod"

_basic = HTTPBasic(auto_error=False)


def build_sealer(settings: Settings) -> Sealer:
    """Factory for the process-wide sealer; fails fast without a secret."""
    secret = settings.SECRET
    if not secret:
        if settings.DEV_MODE:
            logger.warning("SECRET is not set, using the development secret. Do not use in production.")
            secret = DEV_SECRET
        else:
            raise RuntimeError("CRITICAL: SECRET must be set when DEV_MODE is off.")
    return Sealer(secret)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_sealer(request: Request) -> Sealer:
    return request.app.state.sealer


def get_template_engine(request: Request) -> TemplateEngine:
    return request.app.state.engine


def get_template_cache(request: Request) -> TemplateCache:
    return request.app.state.templates


def get_relay_service(request: Request) -> RelayService:
    return request.app.state.relay


def require_admin(
    credentials: Optional[HTTPBasicCredentials] = Depends(_basic),
    settings: Settings = Depends(get_settings)
) -> None:
    """Basic auth gate for management routes; open when PASSWORD is unset."""
    if not settings.PASSWORD:
        return

    if credentials is not None:
        user_ok = secrets.compare_digest(credentials.username.encode(), settings.ADMIN_USER.encode())
        pass_ok = secrets.compare_digest(credentials.password.encode(), settings.PASSWORD.encode())
        if user_ok and pass_ok:
            return

    raise_relay_error(401, "unauthorized", headers={"WWW-Authenticate": 'Basic realm="sealhook"'})
