"""
Fake chat-completions server for exercising the scan pipeline offline.

Simulates the OpenAI endpoint on port 9100. FAKE_VISION_MODE picks the reply:
  ok       two valid items and one with an invalid bin (dropped by the parser)
  empty    {"items": []}
  fenced   valid items wrapped in a ```json fence
  garbage  content that is not JSON
  <code>   an HTTP error status, e.g. 401, 429, 500

Usage:
    python -m snapsort.scripts.fake_vision_server
    OPENAI_BASE_URL=http://127.0.0.1:9100/v1/chat/completions \
        OPENAI_API_KEY=sk-fake CAMERA_ADAPTER=mock uvicorn snapsort.services.api:app
"""

import json
import os
import time
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

app = FastAPI(title="fake-vision-server")

MODE = os.getenv("FAKE_VISION_MODE", "ok")
DELAY_S = float(os.getenv("FAKE_VISION_DELAY_S", "0.5"))

_ITEMS = {
    "items": [
        {"name": "Soda Can", "bin": "Recycle", "confidence": "High"},
        {"name": "Banana Peel", "bin": "Compost", "confidence": "Medium"},
        {"name": "Chip Bag", "bin": "Landfill", "confidence": "Low"},
    ]
}


def _completion(content: str) -> dict:
    return {
        "id": "chatcmpl-fake",
        "object": "chat.completion",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }


@app.post("/v1/chat/completions")
async def chat_completions(request: Request):
    body = await request.json()
    auth = request.headers.get("authorization", "")
    print(f"[vision] model={body.get('model')} auth={'yes' if auth.startswith('Bearer ') else 'no'} mode={MODE}")
    time.sleep(DELAY_S)

    if MODE.isdigit():
        code = int(MODE)
        return JSONResponse(status_code=code, content={"error": {"message": f"simulated {code}"}})
    if MODE == "empty":
        return _completion(json.dumps({"items": []}))
    if MODE == "fenced":
        return _completion("```json\n" + json.dumps(_ITEMS) + "\n```")
    if MODE == "garbage":
        return _completion("I see a can and a banana.")
    return _completion(json.dumps(_ITEMS))


if __name__ == "__main__":
    print(f"Fake vision server starting on http://localhost:9100 (mode={MODE})")
    uvicorn.run(app, host="0.0.0.0", port=9100)
