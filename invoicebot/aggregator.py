"""Batch totals, company set, category buckets and period detection."""

from __future__ import annotations

import logging
from datetime import UTC, tzinfo
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional

from .models import BatchSummary, ProcessedAttachment, ProcessedEmail
from .utils import format_date, from_epoch_millis

logger = logging.getLogger(__name__)


class Category(NamedTuple):
    label: str
    keywords: tuple[str, ...]


# Priority order: the first category with a keyword hit wins.
CATEGORIES: tuple[Category, ...] = (
    Category("חשמל ואנרגיה", ("חברת חשמל", "חשמל", "electric")),
    Category("מים וביוב", ("מים", "ביוב", "water")),
    Category("גז", ("גז",)),
    Category("תקשורת ואינטרנט", ("אינטרנט", "תקשורת", "סלולר", "פלאפון", "internet")),
    Category("ביטוח", ("ביטוח", "insurance")),
    Category("רכב ותחבורה", ("רכב", "דלק", "חניה", "parking")),
    Category("ציוד משרדי", ("משרד", "ציוד", "מחשב", "office")),
    Category("שכירות ודמי ניהול", ("שכירות", "דמי ניהול")),
    Category("שירותים מקצועיים", ("ייעוץ", "יעוץ", "שירות", "consulting")),
)
GENERAL_CATEGORY = "כללי"
UNCLASSIFIED_CATEGORY = "לא מסווג"
CATEGORY_ORDER: tuple[str, ...] = tuple(category.label for category in CATEGORIES) + (GENERAL_CATEGORY,)

PERIOD_SEPARATOR = " – "


def categorize(attachment: ProcessedAttachment, email: ProcessedEmail) -> str:
    """Classify one attachment by keyword containment over text, subject and company."""
    company = attachment.invoice_data.company_name if attachment.invoice_data else None
    haystack = " ".join(
        part for part in (attachment.extracted_text, email.subject, company) if part
    ).casefold()
    for category in CATEGORIES:
        if any(keyword.casefold() in haystack for keyword in category.keywords):
            return category.label
    return GENERAL_CATEGORY


def detect_period(emails: Iterable[ProcessedEmail], tz: tzinfo = UTC) -> Optional[str]:
    """Date span covered by the emails' internal timestamps."""
    stamps = sorted(email.internal_date_ms for email in emails)
    if not stamps:
        return None
    first, last = stamps[0], stamps[-1]
    first_email_date = format_date(from_epoch_millis(first), tz)
    if first == last:
        return first_email_date
    return f"{first_email_date}{PERIOD_SEPARATOR}{format_date(from_epoch_millis(last), tz)}"


def aggregate(emails: Iterable[ProcessedEmail], tz: tzinfo = UTC) -> BatchSummary:
    """Fold a snapshot of processed emails into a ``BatchSummary``.

    Only emails with at least one successful attachment contribute. Absent
    amounts are left out of the sums rather than counted as zero.
    """
    snapshot = tuple(emails)
    contributing = [email for email in snapshot if email.has_success]

    total_amount = Decimal(0)
    total_vat = Decimal(0)
    companies: dict[str, None] = {}
    buckets: dict[str, Decimal] = {}

    for email in contributing:
        for attachment in email.successful_attachments:
            record = attachment.invoice_data
            amount = record.total_amount if record else None
            if amount is not None:
                total_amount += amount
            if record and record.tax_amount is not None:
                total_vat += record.tax_amount
            if record and record.company_name:
                companies.setdefault(record.company_name, None)

            category = categorize(attachment, email)
            buckets[category] = buckets.get(category, Decimal(0)) + (amount or Decimal(0))

    categories = {label: buckets[label] for label in CATEGORY_ORDER if label in buckets}
    summary = BatchSummary(
        total_invoices=len(contributing),
        total_amount=total_amount,
        total_vat=total_vat,
        net_amount=total_amount - total_vat,
        unique_companies=len(companies),
        companies=tuple(companies),
        categories=categories,
        period=detect_period(contributing, tz),
    )
    logger.debug(
        "Aggregated %s of %s emails: total=%s vat=%s",
        summary.total_invoices,
        len(snapshot),
        summary.total_amount,
        summary.total_vat,
    )
    return summary
