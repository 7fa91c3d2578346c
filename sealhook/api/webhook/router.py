"""Public webhook endpoint.

ANY /wh/<base64url(nonce || AES-GCM sealed config)>

Remaps the incoming JSON through the sealed template and sends it to the
sealed target URL, answering with the target's status code and body.
"""
import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from sealhook.core.config import Settings
from sealhook.dependencies import get_relay_service, get_settings
from sealhook.domain.relay import RelayService
from sealhook.errors import PayloadTooLargeError

logger = logging.getLogger(__name__)

router = APIRouter()

RELAY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


async def _read_body(request: Request, limit: int) -> bytes:
    """Buffer the inbound body, giving up as soon as it passes ``limit``."""
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError(f"body exceeds {limit} bytes")
    return bytes(body)


async def _copy_body(response: httpx.Response):
    """Yield the target's body; a broken copy ends the stream, status stays."""
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    except httpx.HTTPError as e:
        logger.warning(f"Failed to copy response body from {response.request.url}: {e}")


@router.api_route("/wh/{token}", methods=RELAY_METHODS)
async def handle_webhook(
    token: str,
    request: Request,
    relay: RelayService = Depends(get_relay_service),
    settings: Settings = Depends(get_settings)
):
    """Relay one webhook delivery to its sealed target."""
    body = await _read_body(request, settings.MAX_BODY_BYTES)

    delivery = await relay.deliver(token, request.method, body)
    upstream = delivery.response

    headers = {}
    if "content-type" in upstream.headers:
        headers["Content-Type"] = upstream.headers["content-type"]

    return StreamingResponse(
        _copy_body(upstream),
        status_code=upstream.status_code,
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )
