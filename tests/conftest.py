"""Pytest fixtures for scan pipeline tests."""

from __future__ import annotations

import json

import httpx
import pytest

from snapsort.adapters.camera.mock_camera import MockCaptureSession, synthetic_jpeg
from snapsort.adapters.vision.openai_client import OpenAIVisionClient
from snapsort.adapters.vision.request_builder import VisionRequestBuilder
from snapsort.adapters.vision.response_parser import ResponseParser
from snapsort.orchestrator.contracts import VisionReply
from snapsort.orchestrator.state_machine import ScanOrchestrator
from snapsort.services.status_store import StatusStore

TEST_API_KEY = "sk-test-1234"

VALID_ITEMS = {
    "items": [
        {"name": "Soda Can", "bin": "Recycle", "confidence": "High"},
        {"name": "Banana Peel", "bin": "Compost", "confidence": "Medium"},
    ]
}


def completion_body(content: str) -> bytes:
    """Chat-completions envelope around the model's message content."""
    return json.dumps(
        {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}
    ).encode("utf-8")


def completion_reply(content: str, status_code: int = 200) -> VisionReply:
    return VisionReply(status_code=status_code, body=completion_body(content))


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []

        async def _handler(request: httpx.Request):
            self.requests.append(request)
            result = handler(request)
            if hasattr(result, "__await__"):
                result = await result
            return result

        super().__init__(_handler)

    @property
    def calls(self) -> int:
        return len(self.requests)


def reply_with(content: str, status_code: int = 200) -> RecordingTransport:
    return RecordingTransport(
        lambda request: httpx.Response(status_code, content=completion_body(content))
    )


def reply_status(status_code: int) -> RecordingTransport:
    return RecordingTransport(
        lambda request: httpx.Response(status_code, json={"error": {"message": "nope"}})
    )


@pytest.fixture
def status() -> StatusStore:
    return StatusStore()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return synthetic_jpeg(64, 48)


@pytest.fixture
def builder(status) -> VisionRequestBuilder:
    return VisionRequestBuilder(status, model="gpt-4o-mini", max_tokens=500, jpeg_quality=80)


@pytest.fixture
def parser(status) -> ResponseParser:
    return ResponseParser(status)


@pytest.fixture
def session(status) -> MockCaptureSession:
    return MockCaptureSession(status)


@pytest.fixture
def make_orchestrator(status, builder, parser, session):
    """Factory: orchestrator wired to a mock camera and the given transport."""

    def _make(transport, api_key: str | None = TEST_API_KEY, network_retries: int = 0,
              session_override=..., on_outcome=None, parser_override=None) -> ScanOrchestrator:
        return ScanOrchestrator(
            session=session if session_override is ... else session_override,
            builder=builder,
            client=OpenAIVisionClient(status, timeout=5.0, transport=transport),
            parser=parser_override or parser,
            status_store=status,
            api_key=api_key,
            network_retries=network_retries,
            on_outcome=on_outcome,
        )

    return _make
