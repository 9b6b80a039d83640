"""
Builders shared by the invoicebot test modules.

Processed emails and attachments are constructed directly so aggregation and
rendering tests never need a backend.
"""

from datetime import UTC, datetime
from decimal import Decimal

from invoicebot.models import (
    AttachmentMetadata,
    EmailMessage,
    InvoiceRecord,
    ProcessedAttachment,
    ProcessedEmail,
    ProcessingMethod,
)

FIXED_NOW = datetime(2024, 3, 20, 9, 30, tzinfo=UTC)

SAMPLE_INVOICE_TEXT = """חשבונית דוגמה מ-PDF

חברה: דוגמה בע"מ
ח.פ: 123456789
כתובת: רחוב הדוגמה 123, תל אביב

לכבוד: לקוח יקר
תאריך: 15.3.2024
מספר חשבונית: INV-2024-001

פירוט:
שירות ייעוץ - 100 ש"ח
מע"מ 17% - 17 ש"ח
סה"כ לתשלום: 117 ש"ח"""


def ms(dt: datetime) -> int:
    """Epoch millis, the way Gmail reports internalDate."""
    return int(dt.timestamp() * 1000)


def make_attachment(
    total=None,
    tax=None,
    company=None,
    text="",
    success=True,
    error=None,
    filename="invoice.pdf",
    invoice_number=None,
    invoice_date=None,
):
    if not success:
        return ProcessedAttachment(
            filename=filename,
            mime_type="application/pdf",
            success=False,
            error=error or "PDF processing failed: broken file",
            processed_at=FIXED_NOW,
        )
    return ProcessedAttachment(
        filename=filename,
        mime_type="application/pdf",
        success=True,
        processing_method=ProcessingMethod.PDF_EXTRACT,
        extracted_text=text,
        invoice_data=InvoiceRecord(
            company_name=company,
            invoice_number=invoice_number,
            date=invoice_date,
            total_amount=Decimal(str(total)) if total is not None else None,
            tax_amount=Decimal(str(tax)) if tax is not None else None,
        ),
        processed_at=FIXED_NOW,
    )


def make_email(
    message_id,
    attachments,
    subject="Monthly bill",
    sender="billing@example.com",
    received=datetime(2024, 3, 15, 10, 0, tzinfo=UTC),
    is_processed=True,
):
    return ProcessedEmail(
        message_id=message_id,
        subject=subject,
        sender=sender,
        internal_date_ms=ms(received),
        attachments=tuple(attachments),
        is_processed=is_processed,
    )


def make_message(message_id, attachments=(), subject="חשבונית חודשית", sender="billing@example.com"):
    return EmailMessage(
        message_id=message_id,
        subject=subject,
        sender=sender,
        internal_date_ms=ms(datetime(2024, 3, 15, 10, 0, tzinfo=UTC)),
        attachments=tuple(
            AttachmentMetadata(attachment_id=att_id, filename=filename, mime_type=mime_type)
            for att_id, filename, mime_type in attachments
        ),
    )
