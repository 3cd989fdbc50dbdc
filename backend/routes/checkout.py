"""
Checkout endpoints — catalog, start/inspect/cancel payment sessions, QR.

The API only exposes session status; all ledger traffic happens inside the
session task.
"""
import logging

from fastapi import APIRouter, Depends, Response, status

from config import settings
from deps import get_session_registry, require_session
from domain import catalog
from domain.errors import NotFoundError, ValidationError
from domain.responses import success_response
from exceptions import InvalidAddressError
from middleware.rate_limit import rate_limit
from models import CheckoutRequest
from services import qr_service
from services.checkout_service import PaymentSession, SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["checkout"])


@router.get("/catalog")
async def list_catalog():
    """List the items for sale."""
    return success_response(catalog.list_items())


@router.post(
    "/checkout",
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(rate_limit(
            lambda: settings.checkout_rate_limit,
            lambda: settings.checkout_rate_window_seconds,
        ))
    ],
)
async def start_checkout(
    body: CheckoutRequest,
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Build a fresh payment request for an item and start watching for it."""
    item = catalog.get_item(body.item_id)
    if item is None:
        raise NotFoundError("Catalog item", body.item_id)

    try:
        session = registry.open(item)
    except InvalidAddressError as e:
        logger.error(f"Checkout for {item.id} failed: {e}")
        raise ValidationError(str(e), field=e.field)

    logger.info(f"Checkout started: {item.id} (ref {session.reference[:8]}...)")
    return success_response(session.snapshot())


@router.get("/checkout/{reference}")
async def get_checkout(session: PaymentSession = Depends(require_session)):
    """Current status of a payment session."""
    return success_response(session.snapshot())


@router.get("/checkout/{reference}/qr", response_class=Response)
async def get_checkout_qr(session: PaymentSession = Depends(require_session)):
    """PNG QR code of the session's transfer-request URI."""
    png = qr_service.create_qr_png(session.url)
    return Response(content=png, media_type="image/png", headers={"Cache-Control": "no-store"})


@router.delete("/checkout/{reference}")
async def cancel_checkout(session: PaymentSession = Depends(require_session)):
    """Abort a session. Terminal sessions are left unchanged."""
    session.cancel()
    return success_response(session.snapshot())
