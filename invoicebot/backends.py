"""Text-extraction backends satisfying the ``(bytes) -> str`` contract."""

from __future__ import annotations

import io
import logging

import pytesseract
from pdfminer.high_level import extract_text
from PIL import Image

from .errors import ExtractionBackendError
from .models import ProcessingMethod
from .text_cache import TextCache
from .utils import sha256_hex

logger = logging.getLogger(__name__)


class PdfTextExtractor:
    """Read the embedded text layer of a PDF with pdfminer.six."""

    def __call__(self, content: bytes) -> str:
        logger.debug("Extracting text from PDF (%s bytes)", len(content))
        try:
            return extract_text(io.BytesIO(content))
        except Exception as exc:
            raise ExtractionBackendError(f"PDF processing failed: {exc}") from exc


class OcrTextExtractor:
    """Run Tesseract over an image attachment."""

    def __init__(self, languages: str = "heb+eng") -> None:
        self.languages = languages

    def __call__(self, content: bytes) -> str:
        logger.debug("Performing OCR on image (%s bytes, lang=%s)", len(content), self.languages)
        try:
            with Image.open(io.BytesIO(content)) as image:
                return pytesseract.image_to_string(image, lang=self.languages)
        except Exception as exc:
            raise ExtractionBackendError(f"OCR processing failed: {exc}") from exc


class CachedExtractor:
    """Serve previously extracted text for identical bytes from ``TextCache``."""

    def __init__(self, backend, cache: TextCache, method: ProcessingMethod) -> None:
        self.backend = backend
        self.cache = cache
        self.method = method

    def __call__(self, content: bytes) -> str:
        checksum = sha256_hex(content)
        cached = self.cache.get(checksum, self.method.value)
        if cached is not None:
            logger.debug("Text cache hit for %s (%s)", checksum[:12], self.method.value)
            return cached
        text = self.backend(content)
        self.cache.store(checksum=checksum, processing_method=self.method.value, text=text)
        return text
