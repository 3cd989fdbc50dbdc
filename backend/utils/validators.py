"""
Input validation utilities for the checkout service.

Solana public keys (wallets, token mints, reference tags) are 32 raw bytes
rendered as base58. Core code gets InvalidAddressError; FastAPI callers use
the dependency wrappers, which convert it into a 400.
"""
import base58
from fastapi import Path

from domain.constants import PUBLIC_KEY_LENGTH
from domain.errors import ValidationError
from exceptions import InvalidAddressError

# Longest base58 rendering of 32 bytes
_MAX_ADDRESS_CHARS = 44


def is_valid_solana_address(address) -> bool:
    if not isinstance(address, str) or not address or len(address) > _MAX_ADDRESS_CHARS:
        return False
    try:
        raw = base58.b58decode(address)
    except ValueError:
        return False
    return len(raw) == PUBLIC_KEY_LENGTH


def validate_solana_address(address, field: str = "address") -> str:
    """
    Validate a base58 Solana public key.

    Args:
        address: base58-encoded public key
        field: name used in the error message

    Returns:
        The validated address (unchanged)

    Raises:
        InvalidAddressError if the string is empty, not base58, or not 32 bytes
    """
    if not is_valid_solana_address(address):
        raise InvalidAddressError(address, field=field)
    return address


def validated_reference(reference: str = Path(..., description="Payment reference (base58 public key)")) -> str:
    """FastAPI dependency for validating reference path parameters."""
    try:
        return validate_solana_address(reference, field="reference")
    except InvalidAddressError as e:
        raise ValidationError(str(e), field="reference")
