"""
Pytest configuration and shared fixtures for checkout tests.

Provides well-known Solana addresses, a scriptable fake ledger client, and
builders for signature-history rows and transaction effects.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import asyncio
from decimal import Decimal
from typing import Optional

import pytest

from models import BalanceDelta, CatalogItem, PaymentRequest, SignatureInfo, TransactionEffects
from services.payment_request_service import generate_reference

# ── Test Addresses ──────────────────────────────────────────────────

MERCHANT_WALLET = "2FJZ49vWsN3LE3tmNsd14DmtSmxNtsr32vsrgKBUv77p"
PAYER_WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
SYSTEM_PROGRAM = "11111111111111111111111111111111"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

INVALID_ADDRESS_SHORT = "2FJZ49vWsN3LE3tmNsd14D"
INVALID_ADDRESS_BAD_CHAR = "0OIl49vWsN3LE3tmNsd14DmtSmxNtsr32vsrgKBUv77p"

LAMPORTS = 1_000_000_000


# ── Builders ────────────────────────────────────────────────────────


def sig_info(signature: str, slot: int = 100) -> SignatureInfo:
    return SignatureInfo(signature=signature, slot=slot, confirmation_status="confirmed")


def sol_effects(
    signature: str,
    recipient: str,
    lamports: int,
    reference: Optional[str] = None,
    err=None,
) -> TransactionEffects:
    """Effects of a SOL transfer from PAYER_WALLET to `recipient`."""
    keys = [PAYER_WALLET, recipient, SYSTEM_PROGRAM]
    if reference:
        keys.insert(2, reference)
    deltas = [
        BalanceDelta(account=PAYER_WALLET, pre=5 * LAMPORTS, post=5 * LAMPORTS - lamports - 5000),
        BalanceDelta(account=recipient, pre=LAMPORTS, post=LAMPORTS + lamports),
    ]
    deltas += [BalanceDelta(account=k, pre=1, post=1) for k in keys[2:]]
    return TransactionEffects(signature=signature, slot=100, err=err, account_keys=keys, balance_deltas=deltas)


class FakeLedger:
    """
    Stand-in for SolanaClient.

    `signature_pages` is consumed one entry per get_signatures_for_address
    call; an entry is a list of SignatureInfo or an exception to raise. When
    exhausted, `default_page` is returned. `effects` works the same way for
    get_transaction_effects (None = data unavailable).
    """

    def __init__(self, signature_pages=None, effects=None, default_page=None, default_effects=None):
        self.signature_pages = list(signature_pages or [])
        self.effects = list(effects or [])
        self.default_page = default_page or []
        self.default_effects = default_effects
        self.signature_calls: list[dict] = []
        self.effects_calls: list[str] = []
        self.slot = 12345

    async def get_signatures_for_address(self, address, commitment=None, before=None, limit=1000):
        self.signature_calls.append({"address": address, "commitment": commitment, "before": before, "limit": limit})
        await asyncio.sleep(0)
        item = self.signature_pages.pop(0) if self.signature_pages else self.default_page
        if isinstance(item, Exception):
            raise item
        return item

    async def get_transaction_effects(self, signature, commitment=None):
        self.effects_calls.append(signature)
        await asyncio.sleep(0)
        item = self.effects.pop(0) if self.effects else self.default_effects
        if isinstance(item, Exception):
            raise item
        return item

    async def get_slot(self, commitment=None):
        return self.slot

    async def close(self):
        pass


# ── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture
def fake_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def sample_item() -> CatalogItem:
    return CatalogItem(
        id="nighthawk-001",
        name="F-117 Nighthawk Model",
        price=Decimal("0.3"),
        label="Nighthawk Model Shop",
        memo="NIGHTHAWK#001",
    )


@pytest.fixture
def sample_request() -> PaymentRequest:
    return PaymentRequest(
        recipient=MERCHANT_WALLET,
        amount=Decimal("0.3"),
        reference=generate_reference(),
        label="Nighthawk Model Shop",
        message="F-117 Nighthawk Model",
        memo="NIGHTHAWK#001",
    )
