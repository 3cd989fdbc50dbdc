"""
Transfer validation — confirms a located transaction actually pays the
merchant the exact requested amount.

Mismatches are definitive and raised on first sight. Only missing ledger
data (the node has the signature but not yet the transaction) is retried,
a bounded number of times.
"""
import asyncio
import logging
from decimal import Decimal
from typing import Optional, Sequence

from domain.constants import SOL_DECIMALS
from domain.enums import Commitment, ValidationFailureReason
from exceptions import TransferValidationError
from models import TransactionEffects
from services.locator_service import wait_or_cancel
from solana_client import SolanaClient

logger = logging.getLogger(__name__)

Reason = ValidationFailureReason


def _to_base_units(amount: Decimal, decimals: int) -> Optional[int]:
    """Scale `amount` to integer base units; None if it is not representable."""
    scaled = Decimal(amount).scaleb(decimals)
    if scaled != scaled.to_integral_value():
        return None
    return int(scaled)


def check_transfer(
    effects: TransactionEffects,
    recipient: str,
    amount: Decimal,
    *,
    references: Sequence[str] = (),
    spl_token: Optional[str] = None,
) -> None:
    """
    Assert that `effects` moves exactly `amount` to `recipient`.

    For SOL the recipient's lamport balance is compared; for SPL tokens the
    recipient-owned token balance of `spl_token`. Overpayment fails too:
    the price is fixed, so any other delta is a different transfer.

    Raises:
        TransferValidationError: with the first failing reason
    """
    if effects.err is not None:
        raise TransferValidationError(
            Reason.TRANSACTION_FAILED, f"transaction {effects.signature[:12]}... failed: {effects.err}"
        )

    if spl_token:
        balance = effects.token_delta(recipient, spl_token)
    else:
        balance = effects.lamport_delta(recipient)
    if balance is None:
        raise TransferValidationError(
            Reason.RECIPIENT_MISMATCH, f"recipient {recipient[:8]}... not in transaction"
        )

    for ref in references:
        if ref not in effects.account_keys:
            raise TransferValidationError(
                Reason.REFERENCE_MISMATCH, f"reference {ref[:8]}... not in transaction"
            )

    decimals = balance.decimals if spl_token else SOL_DECIMALS
    expected = _to_base_units(amount, decimals)
    if expected is None or balance.delta != expected:
        received = Decimal(balance.delta).scaleb(-decimals)
        raise TransferValidationError(
            Reason.AMOUNT_MISMATCH, f"expected {amount}, recipient received {received}"
        )


async def validate_transfer(
    client: SolanaClient,
    signature: str,
    recipient: str,
    amount: Decimal,
    *,
    references: Sequence[str] = (),
    spl_token: Optional[str] = None,
    finality: Commitment = Commitment.CONFIRMED,
    attempts: int = 5,
    retry_delay: float = 1.0,
    cancel_event: Optional[asyncio.Event] = None,
) -> TransactionEffects:
    """
    Fetch the transaction's effects and validate the transfer.

    Args:
        client: Shared ledger client
        signature: Signature returned by the locator
        recipient: Expected merchant wallet
        amount: Expected amount (SOL or token units)
        references: Reference tags that must appear in the transaction
        spl_token: Token mint, or None for native SOL
        finality: Commitment used to read the transaction
        attempts: Fetches allowed while data is unavailable
        retry_delay: Seconds between those fetches
        cancel_event: Set by the caller to abort; ends the retry wait early

    Returns:
        The validated TransactionEffects

    Raises:
        TransferValidationError: mismatch, failed tx, or data unavailable
            (also raised as DATA_UNAVAILABLE when cancelled while waiting)
        LedgerTransportError: RPC failure (not retried)
    """
    attempts = max(1, attempts)
    cancel_event = cancel_event or asyncio.Event()
    for attempt in range(1, attempts + 1):
        effects = await client.get_transaction_effects(signature, commitment=finality)
        if effects is not None:
            check_transfer(
                effects, recipient, amount, references=references, spl_token=spl_token
            )
            logger.info(f"Payment validated: {signature[:12]}... -> {recipient[:8]}... ({amount})")
            return effects

        logger.debug(f"Transaction {signature[:12]}... not available yet ({attempt}/{attempts})")
        if attempt < attempts and await wait_or_cancel(cancel_event, retry_delay):
            raise TransferValidationError(
                Reason.DATA_UNAVAILABLE, f"validation of {signature[:12]}... cancelled after {attempt} attempt(s)"
            )

    raise TransferValidationError(
        Reason.DATA_UNAVAILABLE, f"transaction {signature[:12]}... unavailable after {attempts} attempt(s)"
    )
