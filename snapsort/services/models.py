from pydantic import BaseModel
from typing import Literal, Optional


class ScanPhotoRequest(BaseModel):
    image: str  # base64 JPEG


class ScanItemOut(BaseModel):
    id: str
    name: str
    bin: Literal["Recycle", "Compost", "Trash"]
    confidence: Literal["High", "Medium", "Low"]


class ScanResponse(BaseModel):
    ok: bool
    request_id: Optional[str] = None
    items: list[ScanItemOut] = []
    error_code: Optional[str] = None   # ScanErrorKind value, or BUSY / NO_IMAGE
    message: Optional[str] = None


class OutcomeOut(BaseModel):
    ok: bool
    item_count: int = 0
    error_code: Optional[str] = None
    message: Optional[str] = None


class StatusResponse(BaseModel):
    state: Literal["idle", "scanning"]
    request_id: Optional[str] = None
    camera: str
    last_request_id: Optional[str] = None
    last_outcome: Optional[OutcomeOut] = None
    rejected_count: int = 0
    logs: list[str]


class HealthResponse(BaseModel):
    api: bool = True
    camera_adapter: str
    camera_state: str
    credential_configured: bool
    model: str
    all_ok: bool
