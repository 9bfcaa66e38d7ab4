from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union
import uuid

from snapsort.orchestrator.errors import ScanErrorKind


class Bin(str, Enum):
    RECYCLE = "Recycle"
    COMPOST = "Compost"
    TRASH = "Trash"


class Confidence(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class PipelineStateName(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ScanItem:
    name: str
    bin: Bin
    confidence: Confidence
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class ScanRequest:
    image: bytes
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class VisionRequest:
    """Outbound chat-completions call, ready to POST."""
    url: str
    headers: dict
    payload: dict


@dataclass(frozen=True)
class VisionReply:
    status_code: int
    body: bytes


@dataclass(frozen=True)
class Success:
    items: tuple[ScanItem, ...] = ()
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Failure:
    kind: ScanErrorKind
    message: str
    ok: bool = field(default=False, init=False)


ScanOutcome = Union[Success, Failure]


@dataclass(frozen=True)
class PipelineState:
    name: PipelineStateName = PipelineStateName.IDLE
    request_id: Optional[str] = None  # set only while scanning

    @property
    def scanning(self) -> bool:
        return self.name is PipelineStateName.SCANNING


IDLE = PipelineState()
