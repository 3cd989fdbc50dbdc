"""
Health check endpoint.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from config import settings
from deps import get_ledger_client
from exceptions import LedgerTransportError
from solana_client import SolanaClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(client: SolanaClient = Depends(get_ledger_client)):
    """Health check — verifies Solana RPC connectivity."""
    try:
        slot = await client.get_slot()
        return {
            "status": "healthy",
            "solana_connected": True,
            "slot": slot,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    except LedgerTransportError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "solana_connected": False,
                "environment": settings.environment,
                "error": str(e),
            },
        )
