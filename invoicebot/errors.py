"""Exception hierarchy for invoicebot."""

from __future__ import annotations


class InvoiceBotError(Exception):
    """Base class for errors raised by invoicebot."""


class UnsupportedTypeError(InvoiceBotError):
    """Attachment MIME type is neither PDF nor an image."""

    def __init__(self, mime_type: str) -> None:
        super().__init__(f"Unsupported file type: {mime_type}")
        self.mime_type = mime_type


class ExtractionBackendError(InvoiceBotError):
    """A PDF or OCR backend failed to produce text."""


class AttachmentSourceError(InvoiceBotError):
    """Attachment bytes could not be fetched from the mail source."""


class GmailError(InvoiceBotError):
    """Gmail API request failed or could not be authorized."""
