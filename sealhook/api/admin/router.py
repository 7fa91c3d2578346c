"""Management API: mint, inspect and preview webhook configurations.

All routes sit behind basic auth when a PASSWORD is configured. Preview
routes answer with HTML fragments for the web form; every interpolated
value is escaped.
"""
import html
import logging

from fastapi import APIRouter, Depends, Form, Header
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel
from typing import Optional

from sealhook.core.config import Settings
from sealhook.dependencies import (
    get_sealer, get_settings, get_template_cache, get_template_engine, require_admin
)
from sealhook.domain.relay import decode_payload
from sealhook.domain.sealer import WEBHOOK_PATH, Sealer, extract_token
from sealhook.domain.templates import TemplateCache, TemplateEngine
from sealhook.errors import (
    InvalidPayloadError, InvalidTokenError, SealError, TemplateCompileError,
    TemplateRenderError, raise_relay_error
)

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


class ConfigureResponse(BaseModel):
    webhook_url: str


def _error_fragment(message: str) -> HTMLResponse:
    return HTMLResponse(f'<span class="error">{html.escape(message)}</span>')


@router.post("/configure", response_model=ConfigureResponse)
async def configure(
    url: str = Form(""),
    template: str = Form(""),
    hx_request: Optional[str] = Header(None),
    sealer: Sealer = Depends(get_sealer),
    templates: TemplateCache = Depends(get_template_cache),
    settings: Settings = Depends(get_settings)
):
    """Validate a (url, template) pair and mint its webhook URL.

    Compiling through the shared cache also pre-warms it for the first
    delivery.
    """
    if not url or not template:
        raise_relay_error(400, "missing URL or template")

    try:
        templates.get_or_compile(url, template)
    except TemplateCompileError as e:
        raise_relay_error(400, f"invalid template: {e}")

    try:
        token = sealer.seal(url, template)
    except SealError as e:
        logger.error(f"Failed to seal configuration: {e}")
        raise_relay_error(500, "failed to seal configuration")

    webhook_url = settings.BASE_URL + WEBHOOK_PATH + token
    logger.info(f"Configured webhook for remote_url={url}")

    if hx_request == "true":
        escaped = html.escape(webhook_url)
        return HTMLResponse(
            f'<input type="text" readonly value="{escaped}">'
            '<button class="btn-copy" onclick="navigator.clipboard.writeText(this.previousElementSibling.value)">Copy</button>'
        )

    return ConfigureResponse(webhook_url=webhook_url)


@router.post("/unseal")
async def unseal(
    token: str = Form(""),
    sealer: Sealer = Depends(get_sealer)
):
    """Show the target URL and template behind a token or webhook URL."""
    if not token:
        return Response(status_code=200)

    try:
        config = sealer.unseal(extract_token(token.strip()))
    except InvalidTokenError as e:
        logger.warning(f"Unseal preview rejected token: {type(e).__name__}")
        return _error_fragment(e.message)

    return HTMLResponse(
        '<div class="field"><div class="section-label">Target URL</div>'
        f'<div class="preview-box"><pre>{html.escape(config.url)}</pre></div></div>'
        '<div class="field"><div class="section-label">Template</div>'
        f'<div class="preview-box"><pre>{html.escape(config.tmpl)}</pre></div></div>'
    )


@router.post("/render")
async def render(
    template: str = Form(""),
    data: str = Form(""),
    engine: TemplateEngine = Depends(get_template_engine)
):
    """Preview a template against example JSON. Bypasses the cache."""
    if not template:
        return Response(status_code=200)

    try:
        payload = decode_payload(data.encode())
    except InvalidPayloadError as e:
        return _error_fragment(f"example data: {e}")

    try:
        compiled = engine.compile(template)
    except TemplateCompileError as e:
        return _error_fragment(f"template: {e}")

    try:
        output = engine.render(compiled, payload)
    except TemplateRenderError as e:
        return _error_fragment(f"render: {e}")

    return HTMLResponse(f"<pre>{html.escape(output.decode('utf-8', errors='replace'))}</pre>")
