"""Tests for the Tesseract OCR wrapper (Tesseract itself is patched out)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import io
import pytest
import pytesseract
from unittest.mock import patch
from PIL import Image
from app.exceptions import ExtractionError, TransportError
from app.services.ocr_service import OcrResult, TesseractOcr


def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def test_not_an_image_is_an_extraction_error():
    with pytest.raises(ExtractionError):
        TesseractOcr("eng").recognize_sync(b"%PDF-1.4 not an image")


@patch("app.services.ocr_service.pytesseract.image_to_string", return_value="  ABC123 22:35\n")
@patch("app.services.ocr_service.pytesseract.image_to_data", return_value={"conf": ["-1", "90", "80"]})
def test_text_and_mean_confidence(mock_data, mock_string):
    result = TesseractOcr("eng").recognize_sync(png_bytes())

    assert result == OcrResult(text="ABC123 22:35", confidence=85.0)
    assert mock_string.call_args.kwargs["lang"] == "eng"


@patch("app.services.ocr_service.pytesseract.image_to_data",
       side_effect=pytesseract.TesseractNotFoundError())
def test_missing_tesseract_is_a_transport_error(mock_data):
    with pytest.raises(TransportError):
        TesseractOcr("eng").recognize_sync(png_bytes())


@pytest.mark.asyncio
async def test_async_recognize_runs_in_thread():
    with patch("app.services.ocr_service.pytesseract.image_to_data", return_value={"conf": []}), \
         patch("app.services.ocr_service.pytesseract.image_to_string", return_value="TEXT"):
        result = await TesseractOcr("eng").recognize(png_bytes())
    assert result == OcrResult(text="TEXT", confidence=0.0)
