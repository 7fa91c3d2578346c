"""Webhook relay pipeline.

One delivery is: unseal the token, decode the payload, fetch the compiled
template, render it, and send the result to the target with the inbound
method. The target's response is handed back unread so the caller can stream
it. Nothing is retried; webhook senders re-deliver on failure themselves.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from sealhook.adapters.upstream.client import UpstreamClient
from sealhook.domain.sealer import Sealer
from sealhook.domain.templates import TemplateCache
from sealhook.errors import InvalidPayloadError

logger = logging.getLogger(__name__)


def decode_payload(body: bytes) -> Optional[dict]:
    """Decode an inbound body; an empty body is ``None``."""
    if not body:
        return None
    try:
        data: Any = json.loads(body)
    except (ValueError, RecursionError) as e:
        # RecursionError: nesting deeper than the decoder can follow
        raise InvalidPayloadError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidPayloadError(f"invalid JSON: expected object, got {type(data).__name__}")
    return data


@dataclass
class Delivery:
    target_url: str
    payload: bytes
    response: httpx.Response


class RelayService:
    def __init__(self, sealer: Sealer, templates: TemplateCache, upstream: UpstreamClient):
        self.sealer = sealer
        self.templates = templates
        self.upstream = upstream

    async def deliver(self, token: str, method: str, body: bytes) -> Delivery:
        """Run the pipeline for one inbound request.

        Raises:
            InvalidTokenError: token cannot be unsealed (400)
            InvalidPayloadError: body is not a JSON object (400)
            InvalidTemplateError: sealed template does not compile (400)
            TemplateRenderError: template fails at render time (500)
            DeliveryError: target unreachable (500)
        """
        config = self.sealer.unseal(token)

        logger.info(f"Handling webhook: remote_url={config.url} template={config.tmpl!r}")

        data = decode_payload(body)

        # tokens minted outside /configure may carry a broken template
        template = self.templates.get_or_compile(config.url, config.tmpl)

        payload = self.templates.engine.render(template, data)

        response = await self.upstream.send(method, config.url, payload)
        logger.info(f"Delivered webhook: remote_url={config.url} status={response.status_code}")
        return Delivery(target_url=config.url, payload=payload, response=response)
