"""
Builds the chat-completions request for one photo.

The prompt and the {"items": [...]} schema it demands are the contract with
the remote model; response_parser.py depends on them word for word.
"""
import base64

import cv2
import numpy as np

from snapsort.orchestrator.contracts import VisionRequest
from snapsort.orchestrator.errors import ConfigurationError, InvalidImage
from snapsort.services.config import OPENAI_API_URL, is_valid_api_key

PROMPT = (
    "You are a waste sorting assistant. Look at this photo and find every "
    "disposable object in it. Look for: bottles, cans, food waste, packaging, "
    "paper, electronics, and any other generic waste.\n\n"
    "For each object give:\n"
    "- name: a short name for the object, e.g. \"Plastic Bottle\"\n"
    "- bin: exactly one of \"Recycle\", \"Compost\" or \"Trash\"\n"
    "- confidence: exactly one of \"High\", \"Medium\" or \"Low\"\n\n"
    "Disposal rules:\n"
    "- Recycle: clean plastic bottles and containers, glass bottles and jars, "
    "metal cans, clean paper and cardboard.\n"
    "- Compost: food scraps, fruit and vegetable waste, coffee grounds, "
    "food-soiled paper such as napkins.\n"
    "- Trash: plastic bags and film, chip bags and other mixed-material "
    "packaging, styrofoam, greasy or contaminated items, electronics and "
    "anything else.\n\n"
    "Reply with ONLY a JSON object of this exact shape, with no other text:\n"
    "{\"items\": [{\"name\": \"...\", \"bin\": \"Recycle\", \"confidence\": \"High\"}]}\n"
    "If there are no disposable objects, reply with {\"items\": []}"
)


class VisionRequestBuilder:
    def __init__(self, status_store, model: str = "gpt-4o-mini", url: str = OPENAI_API_URL,
                 max_tokens: int = 1000, jpeg_quality: int = 80):
        self.status = status_store
        self.model = model
        self.url = url
        self.max_tokens = max_tokens
        self.jpeg_quality = jpeg_quality

    def build(self, image: bytes, api_key: str | None) -> VisionRequest:
        if not is_valid_api_key(api_key):
            self.status.log("request_builder: OPENAI_API_KEY missing or placeholder")
            raise ConfigurationError(
                "OPENAI_API_KEY is not set. Add it to the environment or .env before scanning."
            )

        jpeg = self.encode_jpeg(image)
        b64 = base64.standard_b64encode(jpeg).decode("utf-8")
        self.status.log(f"request_builder: jpeg {len(image)} -> {len(jpeg)} bytes (q={self.jpeg_quality})")

        payload = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{b64}"},
                        },
                    ],
                }
            ],
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {api_key.strip()}",
            "Content-Type": "application/json",
        }
        return VisionRequest(url=self.url, headers=headers, payload=payload)

    def encode_jpeg(self, image: bytes) -> bytes:
        """Decode whatever the camera gave us and re-encode it as a bounded JPEG."""
        if not image:
            raise InvalidImage()
        img = cv2.imdecode(np.frombuffer(image, dtype=np.uint8), cv2.IMREAD_COLOR)
        if img is None:
            self.status.log("request_builder: image could not be decoded")
            raise InvalidImage()
        ok, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok or buf.size == 0:
            raise InvalidImage()
        return buf.tobytes()
