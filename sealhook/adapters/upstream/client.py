"""Outbound webhook transport - real HTTP delivery via httpx."""
import httpx
import logging
from typing import Optional

from sealhook.errors import DeliveryError

logger = logging.getLogger(__name__)

# Timeout configuration
DEFAULT_TIMEOUT = 90.0


async def _log_request(request: httpx.Request) -> None:
    logger.debug(f"Outbound {request.method} {request.url} ({len(request.content)} bytes)")


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    logger.debug(f"Outbound {request.method} {request.url} -> {response.status_code}")


def build_client(
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    debug: bool = False
) -> httpx.AsyncClient:
    """Create the shared client used for every delivery.

    Redirects are not followed; the target's response is proxied as-is.
    """
    event_hooks = {"request": [_log_request], "response": [_log_response]} if debug else None
    return httpx.AsyncClient(
        timeout=timeout,
        transport=transport,
        follow_redirects=False,
        event_hooks=event_hooks,
    )


class UpstreamClient:
    """Sends rendered payloads to webhook targets."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def send(self, method: str, url: str, content: bytes) -> httpx.Response:
        """Issue one request and return the response with its body unread.

        The caller owns the response and must ``aclose()`` it.
        """
        try:
            request = self.client.build_request(method, url, content=content)
            return await self.client.send(request, stream=True)
        except httpx.InvalidURL as e:
            raise DeliveryError(f"invalid target URL: {e}") from e
        except httpx.HTTPError as e:
            raise DeliveryError(f"{type(e).__name__}: {e}") from e

    async def aclose(self) -> None:
        await self.client.aclose()
