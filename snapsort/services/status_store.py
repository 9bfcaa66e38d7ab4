from dataclasses import dataclass, field
from typing import Optional, List
from snapsort.orchestrator.contracts import ScanOutcome

MAX_LOG_LINES = 200


@dataclass
class StatusStore:
    last_outcome: Optional[ScanOutcome] = None
    last_request_id: Optional[str] = None
    rejected_count: int = 0   # capture events refused while scanning
    logs: List[str] = field(default_factory=list)

    def log(self, msg: str):
        self.logs.append(msg)
        if len(self.logs) > MAX_LOG_LINES:
            self.logs = self.logs[-MAX_LOG_LINES:]
