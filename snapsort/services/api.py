import base64
import binascii
from typing import Optional

from fastapi import FastAPI

from snapsort.services.config import Settings, load_settings
from snapsort.services.models import (
    ScanPhotoRequest, ScanResponse, ScanItemOut, StatusResponse, OutcomeOut, HealthResponse,
)
from snapsort.services.status_store import StatusStore
from snapsort.orchestrator.contracts import ScanOutcome, Success
from snapsort.orchestrator.state_machine import ScanOrchestrator, ScanTicket
from snapsort.orchestrator import errors
from snapsort.adapters.vision.request_builder import VisionRequestBuilder
from snapsort.adapters.vision.openai_client import OpenAIVisionClient
from snapsort.adapters.vision.response_parser import ResponseParser


def build_session(settings: Settings, status: StatusStore):
    # Camera adapter: CAMERA_ADAPTER env var (cv2 | mock, default cv2)
    if settings.camera_adapter == "mock":
        from snapsort.adapters.camera.mock_camera import MockCaptureSession
        status.log(f"camera adapter: mock dir={settings.mock_camera_dir}")
        return MockCaptureSession(status, image_dir=settings.mock_camera_dir)
    from snapsort.adapters.camera.cv2_camera import CV2CaptureSession
    status.log(f"camera adapter: cv2 index={settings.camera_index}")
    return CV2CaptureSession(status, index=settings.camera_index)


def build_orchestrator(settings: Settings, status: StatusStore, session=None, transport=None) -> ScanOrchestrator:
    if session is None:
        session = build_session(settings, status)
    builder = VisionRequestBuilder(
        status, model=settings.openai_model, url=settings.openai_base_url,
        max_tokens=settings.max_tokens, jpeg_quality=settings.jpeg_quality,
    )
    client = OpenAIVisionClient(status, timeout=settings.timeout_s, transport=transport)
    parser = ResponseParser(status)
    if settings.api_key_configured:
        status.log(f"credential: OPENAI_API_KEY found (length {len(settings.openai_api_key.strip())})")
    else:
        status.log("credential: OPENAI_API_KEY not configured, scans will fail with CONFIGURATION_ERROR")
    return ScanOrchestrator(
        session=session, builder=builder, client=client, parser=parser, status_store=status,
        api_key=settings.openai_api_key, network_retries=settings.network_retries,
    )


def _to_response(request_id: str, outcome: Optional[ScanOutcome]) -> ScanResponse:
    if outcome is None:
        return ScanResponse(ok=False, request_id=request_id, error_code=errors.ERR_CANCELLED,
                            message="Scan was cancelled.")
    if isinstance(outcome, Success):
        items = [
            ScanItemOut(id=i.id, name=i.name, bin=i.bin.value, confidence=i.confidence.value)
            for i in outcome.items
        ]
        return ScanResponse(ok=True, request_id=request_id, items=items)
    return ScanResponse(ok=False, request_id=request_id, error_code=outcome.kind.value, message=outcome.message)


def _outcome_out(outcome: Optional[ScanOutcome]) -> Optional[OutcomeOut]:
    if outcome is None:
        return None
    if isinstance(outcome, Success):
        return OutcomeOut(ok=True, item_count=len(outcome.items))
    return OutcomeOut(ok=False, error_code=outcome.kind.value, message=outcome.message)


def create_app(settings: Settings | None = None, status: StatusStore | None = None,
               orch: ScanOrchestrator | None = None) -> FastAPI:
    settings = settings or load_settings()
    status = status or StatusStore()
    orch = orch or build_orchestrator(settings, status)

    app = FastAPI(title="snapsort scan pipeline")
    app.state.settings = settings
    app.state.status = status
    app.state.orch = orch

    async def _await_ticket(ticket: Optional[ScanTicket]) -> ScanResponse:
        if ticket is None:
            return ScanResponse(ok=False, error_code=errors.ERR_BUSY, message="A scan is already in progress.")
        return _to_response(ticket.request_id, await ticket.result())

    @app.post("/scan", response_model=ScanResponse)
    async def scan_photo(req: ScanPhotoRequest):
        """Photo captured by the client: scan the uploaded bytes."""
        try:
            image_bytes = base64.b64decode(req.image, validate=True)
        except (binascii.Error, ValueError) as e:
            status.log(f"SCAN decode error: {e}")
            return ScanResponse(ok=False, error_code=errors.ScanErrorKind.INVALID_IMAGE.value,
                                message="base64 decode failed")
        if not image_bytes:
            return ScanResponse(ok=False, error_code=errors.ERR_NO_IMAGE, message="No image data.")
        status.log(f"SCAN received {len(image_bytes)} bytes")
        return await _await_ticket(orch.submit(image_bytes))

    @app.post("/capture", response_model=ScanResponse)
    async def capture_and_scan():
        """Take one photo with the server-side camera session and scan it."""
        status.log("CAPTURE requested")
        return await _await_ticket(orch.submit())

    @app.post("/camera/stop")
    async def camera_stop():
        status.log("CAMERA_STOP: capture surface dismissed")
        await orch.dismiss()
        return {"ok": True, "camera_state": orch.session.state.value}

    @app.get("/status", response_model=StatusResponse)
    def get_status():
        state = orch.state
        return StatusResponse(
            state=state.name.value,
            request_id=state.request_id,
            camera=orch.session.state.value,
            last_request_id=status.last_request_id,
            last_outcome=_outcome_out(status.last_outcome),
            rejected_count=status.rejected_count,
            logs=status.logs,
        )

    @app.get("/health", response_model=HealthResponse)
    def health():
        credential_ok = settings.api_key_configured
        return HealthResponse(
            camera_adapter=type(orch.session).__name__,
            camera_state=orch.session.state.value,
            credential_configured=credential_ok,
            model=settings.openai_model,
            all_ok=credential_ok,
        )

    return app


app = create_app()
