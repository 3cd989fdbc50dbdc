"""
Reference locator — polls signature history for a payment reference.

Each poll has three possible outcomes:
    - found:          the oldest transaction referencing the tag, at the
                      requested commitment
    - not found yet:  expected while the buyer is still paying; wait the
                      fixed poll interval and ask again
    - transport error: LedgerTransportError propagates to the caller at once

The loop ends early on cancellation (clean, no error) or when the attempt
cap / timeout is exhausted.
"""
import asyncio
import logging
import time
from typing import Optional

from domain.constants import SIGNATURES_PAGE_LIMIT
from domain.enums import Commitment, LocateOutcome
from models import LocatedTransaction, LocateResult, SignatureInfo
from solana_client import SolanaClient

logger = logging.getLogger(__name__)


async def find_reference(
    client: SolanaClient,
    reference: str,
    finality: Commitment = Commitment.CONFIRMED,
    before: Optional[str] = None,
) -> Optional[SignatureInfo]:
    """
    Single poll: the oldest signature that references `reference`, or None.

    History comes back newest first. A full page means older entries may
    exist, so page backwards until a short (or empty) page is reached.
    """
    oldest: Optional[SignatureInfo] = None
    while True:
        page = await client.get_signatures_for_address(
            reference, commitment=finality, before=before, limit=SIGNATURES_PAGE_LIMIT
        )
        if not page:
            return oldest
        oldest = page[-1]
        if len(page) < SIGNATURES_PAGE_LIMIT:
            return oldest
        before = oldest.signature


async def wait_or_cancel(cancel_event: asyncio.Event, seconds: float) -> bool:
    """Sleep up to `seconds`; True if cancellation was requested meanwhile."""
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True


async def locate(
    client: SolanaClient,
    reference: str,
    *,
    poll_interval: float,
    finality: Commitment = Commitment.CONFIRMED,
    cancel_event: Optional[asyncio.Event] = None,
    max_attempts: Optional[int] = None,
    timeout: Optional[float] = None,
) -> LocateResult:
    """
    Poll until a transaction carrying `reference` reaches `finality`.

    Args:
        client: Shared ledger client
        reference: base58 reference tag from the PaymentRequest
        poll_interval: Fixed delay between polls, in seconds
        finality: Required commitment level
        cancel_event: Set by the caller to abort; checked between polls
        max_attempts: Poll cap (None = unlimited)
        timeout: Wall-clock cap in seconds (None = unlimited)

    Returns:
        LocateResult with outcome FOUND, CANCELLED or TIMED_OUT

    Raises:
        LedgerTransportError: RPC failure on any poll (never retried here)
    """
    cancel_event = cancel_event or asyncio.Event()
    deadline = time.monotonic() + timeout if timeout is not None else None
    polls = 0

    logger.info(
        f"Locating ref {reference[:8]}... (every {poll_interval}s, "
        f"finality={finality.value}, max_attempts={max_attempts}, timeout={timeout})"
    )

    while True:
        if cancel_event.is_set():
            logger.info(f"Locator cancelled for ref {reference[:8]}... after {polls} poll(s)")
            return LocateResult(outcome=LocateOutcome.CANCELLED, polls=polls)

        polls += 1
        info = await find_reference(client, reference, finality)

        if cancel_event.is_set():
            # Result arrived after the session was abandoned; discard it
            logger.info(f"Locator cancelled for ref {reference[:8]}... after {polls} poll(s)")
            return LocateResult(outcome=LocateOutcome.CANCELLED, polls=polls)

        if info is not None:
            logger.info(
                f"Reference {reference[:8]}... found in {info.signature[:12]}... "
                f"(slot {info.slot}, poll {polls})"
            )
            return LocateResult(
                outcome=LocateOutcome.FOUND,
                located=LocatedTransaction(signature=info.signature, reference=reference, slot=info.slot),
                polls=polls,
            )

        logger.debug(f"Ref {reference[:8]}... not found yet (poll {polls})")

        if max_attempts is not None and polls >= max_attempts:
            logger.warning(f"Locator gave up on ref {reference[:8]}... after {polls} poll(s)")
            return LocateResult(outcome=LocateOutcome.TIMED_OUT, polls=polls)

        wait = poll_interval
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(f"Locator timed out on ref {reference[:8]}... after {polls} poll(s)")
                return LocateResult(outcome=LocateOutcome.TIMED_OUT, polls=polls)
            wait = min(wait, remaining)

        if await wait_or_cancel(cancel_event, wait):
            logger.info(f"Locator cancelled for ref {reference[:8]}... after {polls} poll(s)")
            return LocateResult(outcome=LocateOutcome.CANCELLED, polls=polls)
