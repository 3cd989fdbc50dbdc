"""
Tests for QR rendering of transfer-request URIs.
"""

import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import base64
import io

import pytest
from PIL import Image

from services import qr_service
from services.payment_request_service import encode_url

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class TestCreateQr:

    @pytest.mark.unit
    def test_png_of_requested_size(self, sample_request):
        png = qr_service.create_qr_png(encode_url(sample_request), size=250)
        assert png.startswith(PNG_MAGIC)
        img = Image.open(io.BytesIO(png))
        assert img.size == (250, 250)

    @pytest.mark.unit
    def test_transparent_background_has_alpha(self, sample_request):
        png = qr_service.create_qr_png(encode_url(sample_request), background="transparent", foreground="#FFFFFF")
        img = Image.open(io.BytesIO(png))
        assert img.mode == "RGBA"

    @pytest.mark.unit
    def test_opaque_colours(self, sample_request):
        png = qr_service.create_qr_png(encode_url(sample_request), size=120, background="white", foreground="black")
        img = Image.open(io.BytesIO(png))
        assert img.size == (120, 120)
        assert "A" not in img.getbands()

    @pytest.mark.unit
    def test_data_uri(self, sample_request):
        uri = qr_service.create_qr_data_uri(encode_url(sample_request), size=64)
        assert uri.startswith("data:image/png;base64,")
        assert base64.b64decode(uri.split(",", 1)[1]).startswith(PNG_MAGIC)
