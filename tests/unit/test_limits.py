import httpx
import pytest
from starlette.responses import StreamingResponse

from sealhook.api.webhook.router import _read_body
from sealhook.errors import PayloadTooLargeError
from sealhook.middleware.limits import ThrottleMiddleware


class ChunkedRequest:
    def __init__(self, chunks):
        self.chunks = chunks
        self.consumed = 0

    async def stream(self):
        for chunk in self.chunks:
            self.consumed += 1
            yield chunk


@pytest.mark.asyncio
async def test_read_body_stops_at_limit():
    request = ChunkedRequest([b"x" * 8] * 10)

    with pytest.raises(PayloadTooLargeError):
        await _read_body(request, limit=16)

    assert request.consumed == 3


@pytest.mark.asyncio
async def test_read_body_at_limit():
    request = ChunkedRequest([b"x" * 8, b"y" * 8])

    assert await _read_body(request, limit=16) == b"x" * 8 + b"y" * 8


@pytest.mark.asyncio
async def test_throttle_holds_slot_while_body_streams():
    seen = []

    async def body():
        yield b"a"
        seen.append(throttle._in_flight)
        yield b"b"

    async def app(scope, receive, send):
        await StreamingResponse(body())(scope, receive, send)

    throttle = ThrottleMiddleware(app, max_concurrent=1)

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=throttle), base_url="http://relay.test") as client:
        resp = await client.get("/")

    assert resp.content == b"ab"
    assert seen == [1]
    assert throttle._in_flight == 0


@pytest.mark.asyncio
async def test_throttle_rejects_while_full():
    throttle = ThrottleMiddleware(None, max_concurrent=0)

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=throttle), base_url="http://relay.test") as client:
        resp = await client.get("/")

    assert resp.status_code == 503
    assert resp.json() == {"error": "server is busy"}
    assert throttle._in_flight == 0
