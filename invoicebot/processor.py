"""Attachment → text → invoice record, one attachment at a time."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Callable

from .errors import UnsupportedTypeError
from .extractor import extract_invoice_data, validate_invoice_data
from .models import ProcessedAttachment, ProcessingMethod, RawAttachment

logger = logging.getLogger(__name__)

TextBackend = Callable[[bytes], str]

PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_PREFIX = "image/"


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class AttachmentProcessor:
    """Dispatch attachments to a text backend and parse the result.

    ``process`` never raises: unsupported types, backend failures and anything
    else are captured into a ``success=False`` result.
    """

    def __init__(
        self,
        pdf_extract: TextBackend,
        ocr_extract: TextBackend,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.pdf_extract = pdf_extract
        self.ocr_extract = ocr_extract
        self.clock = clock

    def select_backend(self, mime_type: str) -> tuple[ProcessingMethod, TextBackend]:
        normalized = (mime_type or "").lower()
        if normalized == PDF_MIME_TYPE:
            return ProcessingMethod.PDF_EXTRACT, self.pdf_extract
        if normalized.startswith(IMAGE_MIME_PREFIX):
            return ProcessingMethod.OCR, self.ocr_extract
        raise UnsupportedTypeError(mime_type)

    def process(self, attachment: RawAttachment) -> ProcessedAttachment:
        logger.info("Processing file: %s, type: %s", attachment.filename, attachment.mime_type)
        try:
            method, backend = self.select_backend(attachment.mime_type)
            extracted_text = backend(attachment.content)
            invoice_data = extract_invoice_data(extracted_text)
        except Exception as exc:
            logger.error("Failed to process attachment %s: %s", attachment.filename, exc)
            return ProcessedAttachment(
                filename=attachment.filename,
                mime_type=attachment.mime_type,
                success=False,
                error=str(exc),
                processed_at=self.clock(),
                attachment_id=attachment.attachment_id,
            )

        warnings = validate_invoice_data(invoice_data)
        if warnings:
            logger.warning(
                "Invoice validation warnings for %s: %s",
                attachment.filename,
                ", ".join(warning.value for warning in warnings),
            )
        return ProcessedAttachment(
            filename=attachment.filename,
            mime_type=attachment.mime_type,
            success=True,
            processing_method=method,
            extracted_text=extracted_text,
            invoice_data=invoice_data,
            warnings=tuple(warning.value for warning in warnings),
            processed_at=self.clock(),
            attachment_id=attachment.attachment_id,
        )
