"""OpenAIVisionClient tests against an httpx MockTransport."""

import asyncio
import json
import time

import httpx
import pytest

from snapsort.adapters.vision.openai_client import OpenAIVisionClient
from snapsort.orchestrator.contracts import VisionRequest
from snapsort.orchestrator.errors import ApiError, NetworkError, ScanErrorKind, ScanFailed

from conftest import RecordingTransport, completion_body, reply_status


@pytest.fixture
def vision_request() -> VisionRequest:
    return VisionRequest(
        url="https://api.openai.com/v1/chat/completions",
        headers={"Authorization": "Bearer sk-test", "Content-Type": "application/json"},
        payload={"model": "gpt-4o-mini", "messages": [], "max_tokens": 10},
    )


@pytest.mark.asyncio
async def test_success_returns_raw_reply(status, vision_request):
    body = completion_body('{"items": []}')
    transport = RecordingTransport(lambda request: httpx.Response(200, content=body))
    client = OpenAIVisionClient(status, transport=transport)

    reply = await client.send(vision_request)

    assert reply.status_code == 200
    assert reply.body == body
    assert transport.calls == 1
    sent = transport.requests[0]
    assert sent.method == "POST"
    assert sent.headers["Authorization"] == "Bearer sk-test"
    assert json.loads(sent.content) == vision_request.payload


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code, fragment",
    [
        (401, "Invalid API key"),
        (402, "Billing"),
        (403, "quota"),
        (429, "Rate limited"),
    ],
)
async def test_api_errors(status, vision_request, code, fragment):
    transport = reply_status(code)
    client = OpenAIVisionClient(status, transport=transport)

    with pytest.raises(ApiError) as exc:
        await client.send(vision_request)

    assert exc.value.kind is ScanErrorKind.API_ERROR
    assert exc.value.status_code == code
    assert fragment in exc.value.message
    assert transport.calls == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [400, 404, 500, 503])
async def test_other_statuses_are_scan_failed(status, vision_request, code):
    transport = reply_status(code)
    client = OpenAIVisionClient(status, transport=transport)

    with pytest.raises(ScanFailed):
        await client.send(vision_request)
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_connection_error_is_network_error(status, vision_request):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = RecordingTransport(handler)
    client = OpenAIVisionClient(status, transport=transport)

    with pytest.raises(NetworkError) as exc:
        await client.send(vision_request)
    assert exc.value.message == "Check your connection and try again."
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_timeout_is_network_error(status, vision_request):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = OpenAIVisionClient(status, transport=RecordingTransport(handler))

    with pytest.raises(NetworkError):
        await client.send(vision_request)
    assert any("timeout" in line for line in status.logs)


def test_default_timeout_is_sixty_seconds(status):
    assert OpenAIVisionClient(status).timeout == 60.0


@pytest.mark.asyncio
async def test_trickling_body_hits_total_deadline(status, vision_request):
    async def trickle():
        for _ in range(20):
            await asyncio.sleep(0.1)
            yield b" "

    transport = RecordingTransport(lambda request: httpx.Response(200, content=trickle()))
    client = OpenAIVisionClient(status, timeout=0.3, transport=transport)

    started = time.monotonic()
    with pytest.raises(NetworkError):
        await client.send(vision_request)

    assert time.monotonic() - started < 1.5
    assert any("no complete reply" in line for line in status.logs)
