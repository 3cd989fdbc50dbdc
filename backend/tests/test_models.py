"""
Tests for Pydantic request/response models.

Tests: field validation, aliases, immutability, balance delta helpers.
"""

import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from decimal import Decimal

import pytest
from pydantic import ValidationError

from models import (
    BalanceDelta,
    CatalogItem,
    CheckoutRequest,
    PaymentRequest,
    PaymentSnapshot,
    TransactionEffects,
)
from conftest import MERCHANT_WALLET, USDC_MINT


class TestCatalogItem:

    @pytest.mark.unit
    def test_price_must_be_positive(self):
        with pytest.raises(ValidationError):
            CatalogItem(id="x", name="X", price=Decimal("0"), label="Shop")

    @pytest.mark.unit
    def test_spl_token_alias(self):
        item = CatalogItem(id="x", name="X", price=Decimal("1"), label="Shop", splToken=USDC_MINT)
        assert item.spl_token == USDC_MINT
        assert item.model_dump(by_alias=True)["splToken"] == USDC_MINT


class TestPaymentRequest:

    @pytest.mark.unit
    def test_is_frozen(self, sample_request):
        with pytest.raises(ValidationError):
            sample_request.amount = Decimal("1")

    @pytest.mark.unit
    def test_optional_fields_default_empty(self):
        req = PaymentRequest(recipient=MERCHANT_WALLET, amount=Decimal("0.3"), reference=MERCHANT_WALLET)
        assert req.label == ""
        assert req.spl_token is None


class TestCheckoutRequest:

    @pytest.mark.unit
    def test_accepts_camel_case(self):
        assert CheckoutRequest(itemId="nighthawk-001").item_id == "nighthawk-001"

    @pytest.mark.unit
    def test_accepts_python_name(self):
        assert CheckoutRequest(item_id="nighthawk-001").item_id == "nighthawk-001"

    @pytest.mark.unit
    def test_empty_item_id_rejected(self):
        with pytest.raises(ValidationError):
            CheckoutRequest(itemId="")


class TestTransactionEffects:

    @pytest.mark.unit
    def test_lamport_and_token_lookup(self):
        effects = TransactionEffects(
            signature="S",
            balance_deltas=[
                BalanceDelta(account=MERCHANT_WALLET, pre=10, post=25),
                BalanceDelta(account=MERCHANT_WALLET, mint=USDC_MINT, pre=0, post=7, decimals=6),
            ],
        )
        assert effects.lamport_delta(MERCHANT_WALLET).delta == 15
        assert effects.token_delta(MERCHANT_WALLET, USDC_MINT).delta == 7
        assert effects.lamport_delta("other") is None
        assert effects.token_delta(MERCHANT_WALLET, "other-mint") is None


class TestPaymentSnapshot:

    @pytest.mark.unit
    def test_camel_case_dump(self):
        snap = PaymentSnapshot(
            reference="r", status="failed", url="solana:x", recipient="x", amount="1",
            label="", message="", memo="", failure_reason="timeout",
        )
        dumped = snap.model_dump(by_alias=True)
        assert dumped["failureReason"] == "timeout"
        assert dumped["splToken"] is None
