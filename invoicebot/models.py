"""Typed containers shared across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from .utils import from_epoch_millis


@dataclass(frozen=True)
class AttachmentMetadata:
    """Metadata for a file attachment as listed by the mail source."""

    attachment_id: str
    filename: str
    mime_type: str
    size: int = 0


@dataclass(frozen=True)
class EmailMessage:
    """Essential metadata about a Gmail message."""

    message_id: str
    subject: str
    sender: str
    internal_date_ms: int
    attachments: tuple[AttachmentMetadata, ...] = ()
    thread_id: Optional[str] = None
    date_header: Optional[str] = None
    snippet: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def received(self) -> datetime:
        return from_epoch_millis(self.internal_date_ms)


@dataclass(frozen=True)
class RawAttachment:
    """Attachment bytes handed to the processor for one call."""

    filename: str
    mime_type: str
    content: bytes = field(repr=False)
    attachment_id: Optional[str] = None


class ProcessingMethod(str, Enum):
    PDF_EXTRACT = "PDF_EXTRACT"
    OCR = "OCR"


@dataclass(frozen=True)
class LineItem:
    description: str
    amount: Decimal


@dataclass(frozen=True)
class CustomerInfo:
    name: Optional[str] = None


@dataclass(frozen=True)
class InvoiceRecord:
    """Structured fields extracted from one attachment's text.

    Every field is independently optional; ``None`` means the field was not
    found and is never a stand-in for zero.
    """

    company_name: Optional[str] = None
    company_id: Optional[str] = None
    invoice_number: Optional[str] = None
    date: Optional[str] = None
    total_amount: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    items: tuple[LineItem, ...] = ()
    customer_info: CustomerInfo = field(default_factory=CustomerInfo)


@dataclass(frozen=True)
class ProcessedAttachment:
    """One attachment's processing outcome."""

    filename: str
    mime_type: str
    success: bool
    processed_at: datetime
    processing_method: Optional[ProcessingMethod] = None
    extracted_text: Optional[str] = field(default=None, repr=False)
    invoice_data: Optional[InvoiceRecord] = None
    error: Optional[str] = None
    warnings: tuple[str, ...] = ()
    attachment_id: Optional[str] = None


@dataclass(frozen=True)
class ProcessedEmail:
    """An email together with the outcomes of its attachments."""

    message_id: str
    subject: str
    sender: str
    internal_date_ms: int
    attachments: tuple[ProcessedAttachment, ...] = ()
    is_processed: bool = False

    @classmethod
    def from_message(
        cls,
        message: EmailMessage,
        attachments: list[ProcessedAttachment] | tuple[ProcessedAttachment, ...] = (),
        is_processed: bool = True,
    ) -> "ProcessedEmail":
        return cls(
            message_id=message.message_id,
            subject=message.subject,
            sender=message.sender,
            internal_date_ms=message.internal_date_ms,
            attachments=tuple(attachments),
            is_processed=is_processed,
        )

    @property
    def received(self) -> datetime:
        return from_epoch_millis(self.internal_date_ms)

    @property
    def successful_attachments(self) -> list[ProcessedAttachment]:
        return [attachment for attachment in self.attachments if attachment.success]

    @property
    def failed_attachments(self) -> list[ProcessedAttachment]:
        return [attachment for attachment in self.attachments if not attachment.success]

    @property
    def has_success(self) -> bool:
        return any(attachment.success for attachment in self.attachments)


@dataclass(frozen=True)
class BatchSummary:
    """Aggregate over a snapshot of processed emails. Never persisted."""

    total_invoices: int
    total_amount: Decimal
    total_vat: Decimal
    net_amount: Decimal
    unique_companies: int
    companies: tuple[str, ...]
    categories: dict[str, Decimal]
    period: Optional[str]


@dataclass(frozen=True)
class SummaryEmail:
    """Rendered summary ready to be saved or sent."""

    subject: str
    html_body: str
    text_body: str
