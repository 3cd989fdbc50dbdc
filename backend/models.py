"""
Pydantic models for payment requests, ledger data and API responses.
"""
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional

from domain.enums import LocateOutcome


class CheckoutBase(BaseModel):
    """Shared base — allows construction by Python name or alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Catalog ─────────────────────────────────────────────────────────

class CatalogItem(CheckoutBase):
    """A fixed-price item the merchant sells."""
    id: str
    name: str
    description: str = ""
    price: Decimal = Field(..., gt=0, description="Price in SOL (or in spl_token units)")
    label: str = Field(..., description="Merchant label shown by the wallet")
    memo: str = ""
    spl_token: Optional[str] = Field(default=None, alias="splToken")


# ── Payment Request ─────────────────────────────────────────────────

class PaymentRequest(CheckoutBase):
    """
    Immutable transfer request for one checkout session.

    `reference` is the only link between this request and the on-chain
    transaction; it is freshly generated for every session.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    recipient: str
    amount: Decimal
    reference: str
    label: str = ""
    message: str = ""
    memo: str = ""
    spl_token: Optional[str] = Field(default=None, alias="splToken")


class ParsedTransferRequest(CheckoutBase):
    """Fields decoded from a `solana:` transfer-request URI."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    recipient: str
    amount: Optional[Decimal] = None
    spl_token: Optional[str] = None
    references: List[str] = Field(default_factory=list)
    label: Optional[str] = None
    message: Optional[str] = None
    memo: Optional[str] = None


# ── Ledger Data ─────────────────────────────────────────────────────

class SignatureInfo(BaseModel):
    """One entry of an address's signature history (getSignaturesForAddress)."""
    signature: str
    slot: int = 0
    err: Optional[Any] = None
    memo: Optional[str] = None
    block_time: Optional[int] = None
    confirmation_status: Optional[str] = None


class LocatedTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    signature: str
    reference: str
    slot: int = 0


class LocateResult(BaseModel):
    outcome: LocateOutcome
    located: Optional[LocatedTransaction] = None
    polls: int = 0


class BalanceDelta(BaseModel):
    """Pre/post balance of one account in base units (lamports or token units)."""
    account: str
    mint: Optional[str] = None
    pre: int = 0
    post: int = 0
    decimals: int = 9

    @property
    def delta(self) -> int:
        return self.post - self.pre


class TransactionEffects(BaseModel):
    signature: str
    slot: int = 0
    err: Optional[Any] = None
    account_keys: List[str] = Field(default_factory=list)
    balance_deltas: List[BalanceDelta] = Field(default_factory=list)

    def lamport_delta(self, account: str) -> Optional[BalanceDelta]:
        for d in self.balance_deltas:
            if d.mint is None and d.account == account:
                return d
        return None

    def token_delta(self, owner: str, mint: str) -> Optional[BalanceDelta]:
        for d in self.balance_deltas:
            if d.mint == mint and d.account == owner:
                return d
        return None


# ── API Models ──────────────────────────────────────────────────────

class CheckoutRequest(CheckoutBase):
    """Start a checkout for a catalog item."""
    item_id: str = Field(..., alias="itemId", min_length=1)


class PaymentSnapshot(CheckoutBase):
    """Presentation view of a payment session."""
    reference: str
    status: str
    url: str
    recipient: str
    amount: str
    label: str
    message: str
    memo: str
    spl_token: Optional[str] = Field(default=None, alias="splToken")
    signature: Optional[str] = None
    failure_reason: Optional[str] = Field(default=None, alias="failureReason")
    history: List[str] = Field(default_factory=list)
