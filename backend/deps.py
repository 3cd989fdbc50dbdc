"""
Shared FastAPI dependencies.

Centralizes the ledger client and session registry so routers import them
from a single place and tests can override them via app.dependency_overrides.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends

from domain.errors import NotFoundError
from services.checkout_service import PaymentSession, SessionRegistry
from solana_client import SolanaClient, get_solana_client
from utils.validators import validated_reference

_registry: Optional[SessionRegistry] = None


def get_session_registry() -> SessionRegistry:
    """Process-wide registry; every session shares the process ledger client."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry(client_factory=get_solana_client)
    return _registry


async def shutdown_session_registry() -> None:
    global _registry
    if _registry is not None:
        await _registry.shutdown()
        _registry = None


def get_ledger_client() -> SolanaClient:
    return get_solana_client()


def require_session(
    reference: str = Depends(validated_reference),
    registry: SessionRegistry = Depends(get_session_registry),
) -> PaymentSession:
    """Resolve the `{reference}` path parameter to a live or recent session."""
    session = registry.get(reference)
    if session is None:
        raise NotFoundError("Payment session", f"{reference[:8]}...")
    return session
