"""
Process-wide settings, read once from the environment (and .env).

Business logic never calls os.getenv itself: the orchestrator is handed a
Settings instance and passes the API key to the request builder per call.
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
PLACEHOLDER_API_KEY = "YOUR_API_KEY_HERE"


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    openai_base_url: str = OPENAI_API_URL
    openai_model: str = "gpt-4o-mini"
    max_tokens: int = 1000
    timeout_s: float = 60.0
    jpeg_quality: int = 80
    network_retries: int = 0
    camera_adapter: str = "cv2"   # cv2 | mock
    camera_index: int = 0
    mock_camera_dir: Optional[str] = None

    @property
    def api_key_configured(self) -> bool:
        return is_valid_api_key(self.openai_api_key)


def is_valid_api_key(key: Optional[str]) -> bool:
    """Absent, empty and the placeholder value all count as not configured."""
    if key is None:
        return False
    key = key.strip()
    return bool(key) and key != PLACEHOLDER_API_KEY


def load_settings(dotenv_path: str | None = ".env") -> Settings:
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_base_url=os.getenv("OPENAI_BASE_URL", OPENAI_API_URL),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        max_tokens=int(os.getenv("VISION_MAX_TOKENS", "1000")),
        timeout_s=float(os.getenv("VISION_TIMEOUT_S", "60")),
        jpeg_quality=int(os.getenv("JPEG_QUALITY", "80")),
        network_retries=int(os.getenv("SCAN_NETWORK_RETRIES", "0")),
        camera_adapter=os.getenv("CAMERA_ADAPTER", "cv2").lower(),
        camera_index=int(os.getenv("CAMERA_INDEX", "0")),
        mock_camera_dir=os.getenv("MOCK_CAMERA_DIR") or None,
    )
