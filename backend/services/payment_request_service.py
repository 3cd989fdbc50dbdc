"""
Payment request service — builds per-session transfer requests and the
Solana Pay `solana:` URI that encodes them.

URI serialisation matches the WHATWG URLSearchParams encoding used by
wallet-side parsers:
    - space -> '+'
    - ASCII alphanumerics and '*-._' are literal
    - everything else (including '~') is UTF-8 percent-encoded
Field order: amount, spl-token, reference, label, message, memo.
"""
import logging
import re
import secrets
from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import parse_qsl, quote_plus

import base58

from config import settings
from domain.constants import (
    MAX_URL_LENGTH,
    PUBLIC_KEY_LENGTH,
    SOL_DECIMALS,
    SOLANA_PROTOCOL,
)
from exceptions import ParseURLError
from models import CatalogItem, ParsedTransferRequest, PaymentRequest
from utils.validators import is_valid_solana_address, validate_solana_address

logger = logging.getLogger(__name__)

_AMOUNT_RE = re.compile(r"^\d+(\.\d+)?$")


def generate_reference() -> str:
    """Fresh 256-bit random reference, rendered as a base58 public key."""
    return base58.b58encode(secrets.token_bytes(PUBLIC_KEY_LENGTH)).decode("ascii")


def build(
    item: CatalogItem,
    recipient: Optional[str] = None,
    reference: Optional[str] = None,
) -> PaymentRequest:
    """
    Build the transfer request for one purchase of `item`.

    Args:
        item: Catalog item being bought (price, label, memo)
        recipient: Merchant wallet (defaults to settings.merchant_wallet)
        reference: Only for tests/replays; a fresh one is generated otherwise

    Raises:
        InvalidAddressError: recipient or item.spl_token is malformed
        ValueError: price is not positive, or has more precision than SOL allows
    """
    recipient = validate_solana_address(recipient or settings.merchant_wallet, field="recipient")
    if item.spl_token:
        validate_solana_address(item.spl_token, field="spl_token")

    amount = Decimal(item.price)
    if amount <= 0:
        raise ValueError(f"Amount must be positive, got {amount}")
    if not item.spl_token and -amount.normalize().as_tuple().exponent > SOL_DECIMALS:
        raise ValueError(f"Amount {amount} is finer than 1 lamport")

    request = PaymentRequest(
        recipient=recipient,
        amount=amount,
        reference=reference or generate_reference(),
        label=item.label,
        message=item.name,
        memo=item.memo,
        spl_token=item.spl_token,
    )
    logger.info(
        f"Payment request built: {item.id} for {format_amount(amount)} "
        f"(ref {request.reference[:8]}...)"
    )
    return request


# ════════════════════════════════════════════════════════════════════
# URI Encoding
# ════════════════════════════════════════════════════════════════════


def format_amount(amount: Decimal) -> str:
    """Plain decimal notation, no exponent, no trailing zeros."""
    return format(Decimal(amount).normalize(), "f")


def _form_encode(value: str) -> str:
    return quote_plus(value, safe="*").replace("~", "%7E")


def encode_url(request: PaymentRequest) -> str:
    """Encode a PaymentRequest as a Solana Pay transfer-request URI."""
    params: list[tuple[str, str]] = [("amount", format_amount(request.amount))]
    if request.spl_token:
        params.append(("spl-token", request.spl_token))
    params.append(("reference", request.reference))
    for key, value in (("label", request.label), ("message", request.message), ("memo", request.memo)):
        if value:
            params.append((key, value))

    query = "&".join(f"{_form_encode(k)}={_form_encode(v)}" for k, v in params)
    return f"{SOLANA_PROTOCOL}{request.recipient}?{query}"


def parse_url(url: str) -> ParsedTransferRequest:
    """
    Decode a `solana:` transfer-request URI.

    Raises:
        ParseURLError: on any structural or field-level problem
    """
    if len(url) > MAX_URL_LENGTH:
        raise ParseURLError("length invalid")
    if not url.startswith(SOLANA_PROTOCOL):
        raise ParseURLError("protocol invalid")

    rest = url[len(SOLANA_PROTOCOL):]
    pathname, _, query = rest.partition("?")
    pathname = pathname.split("#", 1)[0]
    query = query.split("#", 1)[0]
    if not pathname:
        raise ParseURLError("pathname missing")
    if re.search(r"[:%]", pathname):
        raise ParseURLError("transaction request links are not supported")

    if not is_valid_solana_address(pathname):
        raise ParseURLError("recipient invalid")

    fields: dict[str, list[str]] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        fields.setdefault(key, []).append(value)

    def first(name: str) -> Optional[str]:
        values = fields.get(name)
        return values[0] if values else None

    amount = None
    amount_param = first("amount")
    if amount_param is not None:
        if not _AMOUNT_RE.match(amount_param):
            raise ParseURLError("amount invalid")
        try:
            amount = Decimal(amount_param)
        except InvalidOperation:
            raise ParseURLError("amount NaN")

    spl_token = first("spl-token")
    if spl_token is not None and not is_valid_solana_address(spl_token):
        raise ParseURLError("spl-token invalid")

    references = fields.get("reference", [])
    for ref in references:
        if not is_valid_solana_address(ref):
            raise ParseURLError("reference invalid")

    return ParsedTransferRequest(
        recipient=pathname,
        amount=amount,
        spl_token=spl_token,
        references=references,
        label=first("label"),
        message=first("message"),
        memo=first("memo"),
    )


def request_from_url(url: str) -> PaymentRequest:
    """Parse a URI back into a PaymentRequest (requires amount and one reference)."""
    parsed = parse_url(url)
    if parsed.amount is None:
        raise ParseURLError("amount missing")
    if len(parsed.references) != 1:
        raise ParseURLError("exactly one reference required")
    return PaymentRequest(
        recipient=parsed.recipient,
        amount=parsed.amount,
        reference=parsed.references[0],
        label=parsed.label or "",
        message=parsed.message or "",
        memo=parsed.memo or "",
        spl_token=parsed.spl_token,
    )
