"""
Checkout service — the payment state machine and its in-memory registry.

One PaymentSession per purchase:

    idle --start--> pending --located--> found --valid--> validated
                       |                   |
                       +--error/timeout----+--invalid--> failed
                       +--cancel-----------+-----------> cancelled

validated, failed and cancelled are terminal. The locator and validator run
sequentially inside a single asyncio task; status changes are the only
thing the presentation layer sees, delivered in order to every subscriber.

The registry only tracks live sessions for the API; nothing is persisted.
"""
import asyncio
import logging
import time
from typing import Optional

from config import settings
from domain.constants import FAILURE_INTERNAL_ERROR, FAILURE_TIMEOUT, FAILURE_TRANSPORT_ERROR
from domain.enums import Commitment, LocateOutcome, PaymentStatus
from domain.errors import ConflictError
from exceptions import InvalidTransitionError, LedgerTransportError, TransferValidationError
from models import CatalogItem, PaymentRequest, PaymentSnapshot
from services import locator_service, payment_request_service, validation_service
from solana_client import SolanaClient

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.IDLE: frozenset({PaymentStatus.PENDING, PaymentStatus.FAILED, PaymentStatus.CANCELLED}),
    PaymentStatus.PENDING: frozenset({PaymentStatus.FOUND, PaymentStatus.FAILED, PaymentStatus.CANCELLED}),
    PaymentStatus.FOUND: frozenset({PaymentStatus.VALIDATED, PaymentStatus.FAILED, PaymentStatus.CANCELLED}),
    PaymentStatus.VALIDATED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}


class PaymentSession:
    """Drives one PaymentRequest from idle to a terminal status."""

    def __init__(
        self,
        request: PaymentRequest,
        client: SolanaClient,
        *,
        poll_interval: float | None = None,
        finality: Commitment | None = None,
        max_attempts: int | None = None,
        timeout: float | None = None,
        validation_attempts: int | None = None,
        validation_retry_delay: float | None = None,
    ):
        self.request = request
        self.url = payment_request_service.encode_url(request)
        self._client = client

        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_seconds
        self.finality = finality or Commitment(settings.commitment)
        self.max_attempts = max_attempts if max_attempts is not None else settings.poll_attempt_cap
        self.timeout = timeout if timeout is not None else settings.payment_timeout_seconds
        self.validation_attempts = (
            validation_attempts if validation_attempts is not None else settings.validation_attempts
        )
        self.validation_retry_delay = (
            validation_retry_delay if validation_retry_delay is not None else settings.validation_retry_seconds
        )

        self._status = PaymentStatus.IDLE
        self.history: list[PaymentStatus] = [PaymentStatus.IDLE]
        self.signature: Optional[str] = None
        self.failure_reason: Optional[str] = None
        self.polls = 0
        self.finished_at: Optional[float] = None

        self._cancel = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._subscribers: list[asyncio.Queue] = []
        self._done = asyncio.Event()

    @property
    def reference(self) -> str:
        return self.request.reference

    @property
    def status(self) -> PaymentStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status is not PaymentStatus.IDLE and not self._status.is_terminal

    # ── Transitions ────────────────────────────────────────────────

    def _transition(self, new: PaymentStatus, reason: Optional[str] = None) -> None:
        if new not in _TRANSITIONS[self._status]:
            raise InvalidTransitionError(
                f"{self.reference[:8]}...: {self._status.value} -> {new.value} is not allowed"
            )
        self._status = new
        self.history.append(new)
        if reason:
            self.failure_reason = reason
        if new.is_terminal:
            self.finished_at = time.monotonic()
            self._done.set()

        for queue in self._subscribers:
            queue.put_nowait(new)

        log = logger.warning if new is PaymentStatus.FAILED else logger.info
        log(f"Payment {self.reference[:8]}... -> {new.value}" + (f" ({reason})" if reason else ""))

    # ── Public API ─────────────────────────────────────────────────

    def start(self) -> asyncio.Task:
        """Move to pending and spawn the locate/validate task (once)."""
        if self._task is not None:
            raise InvalidTransitionError(f"session {self.reference[:8]}... already started")
        self._transition(PaymentStatus.PENDING)
        self._task = asyncio.create_task(self._run(), name=f"payment-{self.reference[:8]}")
        return self._task

    def cancel(self) -> None:
        """
        Request a clean abort. The task stops within one poll interval; any
        result that arrives afterwards is dropped.
        """
        if self._status.is_terminal:
            return
        self._cancel.set()
        if self._status is PaymentStatus.IDLE:
            # Never started: no task to stop
            self._transition(PaymentStatus.CANCELLED)

    def subscribe(self) -> asyncio.Queue:
        """Queue receiving every status change from now on, in order."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    async def wait(self) -> PaymentStatus:
        """Block until the session reaches a terminal status."""
        await self._done.wait()
        return self._status

    def snapshot(self) -> PaymentSnapshot:
        r = self.request
        return PaymentSnapshot(
            reference=r.reference,
            status=self._status.value,
            url=self.url,
            recipient=r.recipient,
            amount=payment_request_service.format_amount(r.amount),
            label=r.label,
            message=r.message,
            memo=r.memo,
            spl_token=r.spl_token,
            signature=self.signature,
            failure_reason=self.failure_reason,
            history=[s.value for s in self.history],
        )

    # ── Task body ──────────────────────────────────────────────────

    async def _run(self) -> None:
        request = self.request
        try:
            result = await locator_service.locate(
                self._client,
                request.reference,
                poll_interval=self.poll_interval,
                finality=self.finality,
                cancel_event=self._cancel,
                max_attempts=self.max_attempts,
                timeout=self.timeout,
            )
            self.polls = result.polls

            if result.outcome is LocateOutcome.CANCELLED:
                self._transition(PaymentStatus.CANCELLED)
                return
            if result.outcome is LocateOutcome.TIMED_OUT:
                self._transition(PaymentStatus.FAILED, FAILURE_TIMEOUT)
                return

            self.signature = result.located.signature
            self._transition(PaymentStatus.FOUND)

            await validation_service.validate_transfer(
                self._client,
                self.signature,
                request.recipient,
                request.amount,
                references=[request.reference],
                spl_token=request.spl_token,
                finality=self.finality,
                attempts=self.validation_attempts,
                retry_delay=self.validation_retry_delay,
                cancel_event=self._cancel,
            )
            if self._cancel.is_set():
                self._transition(PaymentStatus.CANCELLED)
                return
            self._transition(PaymentStatus.VALIDATED)

        except TransferValidationError as e:
            if self._cancel.is_set():
                self._transition(PaymentStatus.CANCELLED)
            else:
                logger.warning(f"Validation failed for {self.reference[:8]}...: {e}")
                self._transition(PaymentStatus.FAILED, e.reason.value)
        except LedgerTransportError as e:
            logger.error(f"Ledger transport error for {self.reference[:8]}...: {e}")
            if self._cancel.is_set():
                self._transition(PaymentStatus.CANCELLED)
            else:
                self._transition(PaymentStatus.FAILED, FAILURE_TRANSPORT_ERROR)
        except asyncio.CancelledError:
            if not self._status.is_terminal:
                self._transition(PaymentStatus.CANCELLED)
            raise
        except Exception:
            logger.exception(f"Payment task for {self.reference[:8]}... crashed")
            if not self._status.is_terminal:
                self._transition(PaymentStatus.FAILED, FAILURE_INTERNAL_ERROR)


class SessionRegistry:
    """In-memory map of reference -> PaymentSession for the API layer."""

    def __init__(self, client_factory, ttl_seconds: float | None = None, **session_options):
        self._client_factory = client_factory
        self._sessions: dict[str, PaymentSession] = {}
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds
        self._session_options = session_options

    def __len__(self) -> int:
        return len(self._sessions)

    def open(self, item: CatalogItem, recipient: Optional[str] = None) -> PaymentSession:
        """Build a fresh request for `item` and start its session."""
        self.prune()
        request = payment_request_service.build(item, recipient=recipient)
        return self.start(request)

    def start(self, request: PaymentRequest) -> PaymentSession:
        """Start a session for a prebuilt request; one live loop per reference."""
        existing = self._sessions.get(request.reference)
        if existing is not None and not existing.status.is_terminal:
            raise ConflictError(
                f"A payment session is already active for reference {request.reference[:8]}...",
                details={"reference": request.reference, "status": existing.status.value},
            )
        session = PaymentSession(request, self._client_factory(), **self._session_options)
        self._sessions[request.reference] = session
        session.start()
        return session

    def get(self, reference: str) -> Optional[PaymentSession]:
        self.prune()
        return self._sessions.get(reference)

    def cancel(self, reference: str) -> Optional[PaymentSession]:
        session = self._sessions.get(reference)
        if session is not None:
            session.cancel()
        return session

    def prune(self) -> int:
        """Drop terminal sessions older than the TTL. Returns how many."""
        now = time.monotonic()
        stale = [
            ref for ref, s in self._sessions.items()
            if s.finished_at is not None and now - s.finished_at >= self.ttl_seconds
        ]
        for ref in stale:
            del self._sessions[ref]
        if stale:
            logger.info(f"Pruned {len(stale)} finished payment session(s)")
        return len(stale)

    async def shutdown(self) -> None:
        """Cancel every live session and wait for its task to finish."""
        live = [s for s in self._sessions.values() if not s.status.is_terminal]
        for session in live:
            session.cancel()
        for session in live:
            await session.wait()
        logger.info(f"Session registry shut down ({len(live)} live session(s) cancelled)")
