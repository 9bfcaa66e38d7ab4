"""
Scan error taxonomy.

Every stage of the pipeline raises a ScanError subclass; the orchestrator
turns it into a Failure outcome carrying the same kind and message.
"""
from enum import Enum

# error_code values that are not ScanErrorKinds (HTTP surface only)
ERR_BUSY = "BUSY"
ERR_NO_IMAGE = "NO_IMAGE"
ERR_CANCELLED = "CANCELLED"


class ScanErrorKind(str, Enum):
    DEVICE_UNAVAILABLE = "DEVICE_UNAVAILABLE"
    CAPTURE_BUSY = "CAPTURE_BUSY"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INVALID_IMAGE = "INVALID_IMAGE"
    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    SCAN_FAILED = "SCAN_FAILED"


DEFAULT_MESSAGES: dict[ScanErrorKind, str] = {
    ScanErrorKind.DEVICE_UNAVAILABLE: "Camera not available.",
    ScanErrorKind.CAPTURE_BUSY: "Camera is busy. Try again.",
    ScanErrorKind.CAPTURE_FAILED: "Could not take photo. Try again.",
    ScanErrorKind.CONFIGURATION_ERROR: "OPENAI_API_KEY is not configured.",
    ScanErrorKind.INVALID_IMAGE: "Invalid image. Try another photo.",
    ScanErrorKind.NETWORK_ERROR: "Check your connection and try again.",
    ScanErrorKind.API_ERROR: "The vision service rejected the request.",
    ScanErrorKind.SCAN_FAILED: "Could not scan photo. Try again.",
}


class ScanError(Exception):
    kind = ScanErrorKind.SCAN_FAILED

    def __init__(self, message: str | None = None):
        self.message = message or DEFAULT_MESSAGES[self.kind]
        super().__init__(self.message)


class DeviceUnavailable(ScanError):
    kind = ScanErrorKind.DEVICE_UNAVAILABLE


class CaptureBusy(ScanError):
    kind = ScanErrorKind.CAPTURE_BUSY


class CaptureFailed(ScanError):
    kind = ScanErrorKind.CAPTURE_FAILED


class ConfigurationError(ScanError):
    kind = ScanErrorKind.CONFIGURATION_ERROR


class InvalidImage(ScanError):
    kind = ScanErrorKind.INVALID_IMAGE


class NetworkError(ScanError):
    kind = ScanErrorKind.NETWORK_ERROR


class ApiError(ScanError):
    kind = ScanErrorKind.API_ERROR

    def __init__(self, detail: str, status_code: int | None = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"Vision service error: {detail}")


class ScanFailed(ScanError):
    kind = ScanErrorKind.SCAN_FAILED
