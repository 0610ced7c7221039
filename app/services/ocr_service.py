# app/services/ocr_service.py
"""
OCR of parking ticket photos with Tesseract (pytesseract + Pillow).
recognize() takes raw image bytes and returns the text plus the mean word
confidence (0-100). Tesseract is CPU-bound, so the async entry point runs it
in a worker thread.
"""

import asyncio
import io
from dataclasses import dataclass

import pytesseract
from PIL import Image, ImageOps, UnidentifiedImageError

from app.config import settings
from app.exceptions import ExtractionError, TransportError
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OcrResult:
    text: str
    confidence: float


def _preprocess(image: Image.Image) -> Image.Image:
    """Grayscale + autocontrast; phone screenshots of tickets are usually low contrast."""
    image = ImageOps.exif_transpose(image)
    return ImageOps.autocontrast(image.convert("L"))


class TesseractOcr:
    def __init__(self, language: str = None):
        self.language = language or settings.OCR_LANGUAGE

    def recognize_sync(self, image_bytes: bytes) -> OcrResult:
        try:
            image = Image.open(io.BytesIO(image_bytes))
        except UnidentifiedImageError as e:
            raise ExtractionError("File is not a readable image") from e

        image = _preprocess(image)
        try:
            data = pytesseract.image_to_data(image, lang=self.language,
                                             output_type=pytesseract.Output.DICT)
            text = pytesseract.image_to_string(image, lang=self.language).strip()
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError) as e:
            logger.error(f"[OCR] Tesseract failed: {e}")
            raise TransportError(f"OCR engine unavailable: {e}") from e

        confidences = [float(c) for c in data.get("conf", []) if float(c) >= 0]
        confidence = round(sum(confidences) / len(confidences), 1) if confidences else 0.0
        logger.info(f"[OCR] {len(text)} chars extracted ({confidence}% confidence)")
        logger.debug(f"[OCR] Text:\n{text}")
        return OcrResult(text=text, confidence=confidence)

    async def recognize(self, image_bytes: bytes) -> OcrResult:
        return await asyncio.to_thread(self.recognize_sync, image_bytes)
