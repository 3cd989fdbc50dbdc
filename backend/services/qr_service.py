"""
QR rendering for transfer-request URIs.

Wraps the qrcode library; the checkout flow only hands it a URI string.
"""
import base64
import io
import logging

import qrcode
from PIL import Image

from config import settings

logger = logging.getLogger(__name__)


def create_qr_png(
    url: str,
    size: int | None = None,
    background: str | None = None,
    foreground: str | None = None,
) -> bytes:
    """Render `url` as a square PNG of `size` pixels."""
    size = size or settings.qr_size
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_Q,
        box_size=8,
        border=2,
    )
    qr.add_data(url)
    qr.make(fit=True)

    img = qr.make_image(
        fill_color=foreground or settings.qr_foreground,
        back_color=background or settings.qr_background,
    ).get_image()
    img = img.resize((size, size), Image.NEAREST)

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    logger.debug(f"QR rendered: {len(url)} chars -> {size}px, version {qr.version}")
    return buf.getvalue()


def create_qr_data_uri(url: str, **kwargs) -> str:
    """Render `url` as a ``data:image/png;base64,...`` string."""
    b64 = base64.b64encode(create_qr_png(url, **kwargs)).decode()
    return f"data:image/png;base64,{b64}"
