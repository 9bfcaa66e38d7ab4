import asyncio
import time
from typing import Callable, Optional

from snapsort.orchestrator.contracts import (
    IDLE, Failure, PipelineState, PipelineStateName, ScanOutcome, ScanRequest, Success, new_id,
)
from snapsort.orchestrator.errors import (
    DEFAULT_MESSAGES, DeviceUnavailable, NetworkError, ScanError, ScanErrorKind,
)

OutcomeCallback = Callable[[ScanOutcome], None]


class ScanTicket:
    """Handle on one accepted scan. cancel() drops interest without stopping the work."""

    def __init__(self, request_id: str, on_outcome: Optional[OutcomeCallback] = None):
        self.request_id = request_id
        self.cancelled = False
        self.delivered = False
        self._on_outcome = on_outcome
        self._task: Optional[asyncio.Task] = None

    def cancel(self):
        self.cancelled = True

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    async def result(self) -> Optional[ScanOutcome]:
        # shield: a caller giving up must not cancel the in-flight network call
        outcome = await asyncio.shield(self._task)
        return None if self.cancelled else outcome


class ScanOrchestrator:
    def __init__(self, session, builder, client, parser, status_store,
                 api_key: Optional[str] = None, network_retries: int = 0,
                 on_outcome: Optional[OutcomeCallback] = None):
        self.session = session
        self.builder = builder
        self.client = client
        self.parser = parser
        self.status = status_store
        self.api_key = api_key
        self.network_retries = max(0, network_retries)
        self.on_outcome = on_outcome
        self._state: PipelineState = IDLE
        self._current: Optional[ScanTicket] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def current(self) -> Optional[ScanTicket]:
        return self._current

    def submit(self, image: bytes | None = None,
               on_outcome: Optional[OutcomeCallback] = None) -> Optional[ScanTicket]:
        """Capture event. None while a scan is in flight; image=None captures from the session."""
        loop = asyncio.get_running_loop()
        if self._state.scanning:
            self.status.rejected_count += 1
            self.status.log(f"scan: rejected, {self._state.request_id} still scanning")
            return None

        ticket = ScanTicket(new_id(), on_outcome or self.on_outcome)
        # check-and-set with no await in between: single-flight on the loop
        self._state = PipelineState(name=PipelineStateName.SCANNING, request_id=ticket.request_id)
        self._current = ticket
        self.status.last_request_id = ticket.request_id
        self.status.log(f"scan: accepted {ticket.request_id} source={'upload' if image is not None else 'camera'}")
        ticket._task = loop.create_task(self._run(ticket, image))
        return ticket

    async def scan(self, image: bytes | None = None) -> Optional[ScanOutcome]:
        ticket = self.submit(image)
        if ticket is None:
            return None
        return await ticket.result()

    def cancel_current(self):
        if self._current is not None and not self._current.cancelled:
            self.status.log(f"scan: consumer dropped interest in {self._current.request_id}")
            self._current.cancel()

    async def dismiss(self):
        self.cancel_current()
        if self.session is not None:
            await self.session.stop()

    async def _run(self, ticket: ScanTicket, image: bytes | None) -> ScanOutcome:
        t0 = time.time()
        try:
            try:
                items = await self._pipeline(ticket.request_id, image)
                outcome: ScanOutcome = Success(items=tuple(items))
            except ScanError as e:
                self.status.log(f"scan: {e.kind.value} {e.message}")
                outcome = Failure(kind=e.kind, message=e.message)
            except Exception as e:
                self.status.log(f"scan: unexpected {type(e).__name__}: {e}")
                outcome = Failure(kind=ScanErrorKind.SCAN_FAILED,
                                  message=DEFAULT_MESSAGES[ScanErrorKind.SCAN_FAILED])
        finally:
            self._state = IDLE
            if self._current is ticket:
                self._current = None

        dt = int((time.time() - t0) * 1000)
        self.status.last_outcome = outcome
        self.status.log(f"scan: {ticket.request_id} done ok={outcome.ok} dt={dt}ms")
        self._deliver(ticket, outcome)
        return outcome

    async def _pipeline(self, request_id: str, image: bytes | None):
        if image is None:
            if self.session is None:
                raise DeviceUnavailable()
            self.status.log("scan: session.capture_one_photo")
            image = await self.session.capture_one_photo()
        request = ScanRequest(image=image, id=request_id)

        self.status.log("scan: builder.build")
        vision_request = self.builder.build(request.image, self.api_key)

        reply = await self._send(vision_request)

        self.status.log("scan: parser.parse")
        return self.parser.parse(reply)

    async def _send(self, vision_request):
        attempts = 1 + self.network_retries
        for attempt in range(1, attempts + 1):
            self.status.log(f"scan: client.send attempt {attempt}/{attempts}")
            try:
                return await self.client.send(vision_request)
            except NetworkError:
                if attempt == attempts:
                    raise

    def _deliver(self, ticket: ScanTicket, outcome: ScanOutcome):
        if ticket.cancelled:
            self.status.log(f"scan: {ticket.request_id} outcome discarded (cancelled)")
            return
        if ticket.delivered or ticket._on_outcome is None:
            return
        ticket.delivered = True
        try:
            ticket._on_outcome(outcome)
        except Exception as e:
            self.status.log(f"scan: outcome callback error {type(e).__name__}: {e}")
