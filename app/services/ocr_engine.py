"""OCR engines: turn image bytes into raw text and a confidence score.

This module defines the abstract engine interface used by the worker and the Tesseract implementation backed by pytesseract and Pillow.
"""

import io
from abc import ABC, abstractmethod

import pytesseract
from PIL import Image, ImageOps

from app.core.errors import ExternalServiceError
from app.core.models import OcrResult
from app.core.utils import get_logger

logger = get_logger("receipt-ocr.ocr")

DEFAULT_LANGUAGES = "eng+vie"


class OcrEngine(ABC):
    """Abstract base class for OCR engines."""

    @abstractmethod
    def recognize(self, image_bytes: bytes) -> OcrResult:
        """Extract text and a 0-100 confidence from an encoded image."""


def mean_word_confidence(confidences: list[object]) -> float:
    """Average Tesseract word confidences, ignoring the -1 placeholders of non-word boxes."""
    scores = []
    for raw in confidences:
        try:
            score = float(raw)
        except (TypeError, ValueError):
            continue
        if score >= 0:
            scores.append(min(score, 100.0))
    if not scores:
        return 0.0
    return round(sum(scores) / len(scores), 2)


class TesseractOcrEngine(OcrEngine):
    """OCR engine running the local Tesseract binary through pytesseract."""

    def __init__(self, languages: str = DEFAULT_LANGUAGES, tesseract_cmd: str | None = None) -> None:
        """Initialize the engine for a '+'-joined Tesseract language set."""
        self.languages = languages
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    @staticmethod
    def _load_image(image_bytes: bytes) -> Image.Image:
        image = Image.open(io.BytesIO(image_bytes))
        image = ImageOps.exif_transpose(image)
        if image.mode not in {"RGB", "L"}:
            image = image.convert("RGB")
        return image

    def recognize(self, image_bytes: bytes) -> OcrResult:
        """Run Tesseract on the image and return its text and mean word confidence."""
        logger.info(f"Running Tesseract OCR ({self.languages}) on {len(image_bytes)} bytes")
        try:
            image = self._load_image(image_bytes)
            text = pytesseract.image_to_string(image, lang=self.languages)
            data = pytesseract.image_to_data(image, lang=self.languages, output_type=pytesseract.Output.DICT)
        except (OSError, pytesseract.TesseractError, RuntimeError) as exc:
            raise ExternalServiceError(f"Failed to perform OCR: {exc}") from exc
        return OcrResult(text=text or "", confidence=mean_word_confidence(data.get("conf", [])))
