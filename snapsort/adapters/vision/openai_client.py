"""
OpenAI chat-completions client for scan requests.

One POST per send() call, never retried here. Transport failures and the
60s deadline become NetworkError; non-2xx statuses become ApiError or
ScanFailed depending on what the caller can do about them. The deadline
covers the whole exchange, a body that keeps trickling in included.
"""
import asyncio

import httpx

from snapsort.orchestrator.contracts import VisionReply, VisionRequest
from snapsort.orchestrator.errors import ApiError, NetworkError, ScanFailed

DEFAULT_TIMEOUT_S = 60.0

_API_ERROR_DETAILS = {
    401: "Invalid API key. Check OPENAI_API_KEY.",
    402: "Billing problem with the vision service account. Check your plan and quota.",
    403: "Access denied by the vision service. Check your plan and quota.",
    429: "Rate limited by the vision service. Wait a moment and try again.",
}


class OpenAIVisionClient:
    def __init__(self, status_store, timeout: float = DEFAULT_TIMEOUT_S,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.status = status_store
        self.timeout = timeout
        # tests inject httpx.MockTransport here
        self._transport = transport

    async def send(self, request: VisionRequest) -> VisionReply:
        self.status.log(f"vision_client: POST {request.url}")
        try:
            resp = await asyncio.wait_for(self._post(request), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            self.status.log(f"vision_client: no complete reply within {self.timeout:.0f}s")
            raise NetworkError() from e
        except httpx.TimeoutException as e:
            self.status.log(f"vision_client: timeout after {self.timeout:.0f}s ({type(e).__name__})")
            raise NetworkError() from e
        except httpx.TransportError as e:
            self.status.log(f"vision_client: transport error {type(e).__name__}: {e}")
            raise NetworkError() from e

        self.status.log(f"vision_client: HTTP {resp.status_code}")
        if resp.is_success:
            return VisionReply(status_code=resp.status_code, body=resp.content)

        self.status.log(f"vision_client: error body {resp.text[:300]}")
        detail = _API_ERROR_DETAILS.get(resp.status_code)
        if detail is not None:
            raise ApiError(detail, status_code=resp.status_code)
        raise ScanFailed()

    async def _post(self, request: VisionRequest) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.post(request.url, json=request.payload, headers=request.headers)
