"""
Turns a chat-completions reply into validated ScanItems.

Two layers: the envelope (choices[0].message.content) and the model's own
JSON inside it. Either layer failing is ScanFailed. Individual items that
break the schema are dropped and logged; the rest of the batch survives.
"""
import json
import re

from snapsort.orchestrator.contracts import Bin, Confidence, ScanItem, VisionReply
from snapsort.orchestrator.errors import ScanFailed

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)

BIN_VALUES = {b.value: b for b in Bin}
CONFIDENCE_VALUES = {c.value: c for c in Confidence}


def strip_code_fence(text: str) -> str:
    text = text.strip()
    m = _FENCE_RE.match(text)
    return m.group(1).strip() if m else text


class ResponseParser:
    def __init__(self, status_store):
        self.status = status_store

    def parse(self, reply: VisionReply) -> list[ScanItem]:
        content = self.extract_content(reply)
        try:
            data = json.loads(strip_code_fence(content))
        except ValueError as e:
            self.status.log(f"parser: model content is not JSON ({e}): {content[:200]!r}")
            raise ScanFailed() from e

        if not isinstance(data, dict) or "items" not in data:
            self.status.log("parser: reply has no 'items' key")
            raise ScanFailed()
        raw_items = data["items"]
        if not isinstance(raw_items, list):
            self.status.log(f"parser: 'items' is {type(raw_items).__name__}, expected list")
            raise ScanFailed()

        items = []
        for i, raw in enumerate(raw_items):
            item = self.validate_item(raw)
            if item is None:
                self.status.log(f"parser: dropped item {i}: {raw!r}")
                continue
            items.append(item)
        self.status.log(f"parser: {len(items)}/{len(raw_items)} items kept")
        return items

    def extract_content(self, reply: VisionReply) -> str:
        try:
            envelope = json.loads(reply.body)
            content = envelope["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            self.status.log(f"parser: bad envelope {type(e).__name__}: {reply.body[:200]!r}")
            raise ScanFailed() from e
        if not isinstance(content, str) or not content.strip():
            self.status.log("parser: empty message content")
            raise ScanFailed()
        return content

    @staticmethod
    def validate_item(raw) -> ScanItem | None:
        if not isinstance(raw, dict):
            return None
        name, bin_, conf = raw.get("name"), raw.get("bin"), raw.get("confidence")
        if not all(isinstance(v, str) and v.strip() for v in (name, bin_, conf)):
            return None
        if bin_ not in BIN_VALUES or conf not in CONFIDENCE_VALUES:
            return None
        return ScanItem(name=name.strip(), bin=BIN_VALUES[bin_], confidence=CONFIDENCE_VALUES[conf])
