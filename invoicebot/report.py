"""Summary email (subject, HTML, plain text) and CSV export."""

from __future__ import annotations

import csv
import io
from datetime import UTC, datetime, tzinfo
from decimal import Decimal
from typing import Iterable, Optional

from jinja2 import Environment

from .aggregator import UNCLASSIFIED_CATEGORY, categorize
from .models import BatchSummary, ProcessedEmail, SummaryEmail
from .utils import format_amount, format_date, format_time

CURRENCY = 'ש"ח'
STATUS_SUCCEEDED = "הצליח"
STATUS_FAILED_PREFIX = "שגיאה: "

CSV_COLUMNS = (
    "תאריך מייל",
    "שולח",
    "נושא",
    "קובץ",
    "שם חברה",
    "מספר חשבונית",
    "תאריך חשבונית",
    "סכום כולל",
    'מע"מ',
    'סכום לפני מע"מ',
    "קטגוריה",
    "סטטוס עיבוד",
)

HTML_TEMPLATE = """\
<!DOCTYPE html>
<html dir="rtl" lang="he">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>סיכום חשבוניות</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; direction: rtl; }
        .header { background: #f8f9fa; padding: 20px; border-radius: 8px; margin-bottom: 20px; }
        .summary-box { background: #e3f2fd; padding: 15px; border-radius: 8px; margin: 10px 0; }
        .invoice-item { border: 1px solid #ddd; margin: 10px 0; padding: 15px; border-radius: 8px; }
        .attachment { margin: 10px 0; padding: 10px; background: #f0f8f0; border-radius: 5px; }
        .attachment-failed { margin: 10px 0; padding: 10px; background: #fff0f0; border-radius: 5px; }
        .company-name { font-weight: bold; color: #1976d2; }
        .amount { font-weight: bold; color: #2e7d32; }
        .error { color: #d32f2f; }
        table { width: 100%; border-collapse: collapse; margin: 15px 0; }
        th, td { border: 1px solid #ddd; padding: 8px; text-align: right; }
        th { background-color: #f5f5f5; }
        .footer { margin-top: 30px; font-size: 12px; color: #666; }
    </style>
</head>
<body>
    <div class="header">
        <h1>סיכום חשבוניות</h1>
        <p><strong>תאריך יצירה:</strong> {{ generated_date }} {{ generated_time }}</p>
        {%- if period %}
        <p><strong>תקופה:</strong> {{ period }}</p>
        {%- endif %}
    </div>

    <div class="summary-box">
        <h2>סיכום כללי</h2>
        <ul>
            <li><strong>סה"כ חשבוניות:</strong> {{ summary.total_invoices }}</li>
            <li><strong>סה"כ לפני מע"מ:</strong> {{ summary.net_amount | money }}</li>
            <li><strong>סה"כ מע"מ:</strong> {{ summary.total_vat | money }}</li>
            <li><strong>סה"כ כולל מע"מ:</strong> {{ summary.total_amount | money }}</li>
            <li><strong>חברות שונות:</strong> {{ summary.unique_companies }}</li>
        </ul>
    </div>
    {%- if categories %}

    <div class="summary-box">
        <h2>פירוט לפי קטגוריות</h2>
        <table>
            <thead>
                <tr>
                    <th>קטגוריה</th>
                    <th>סכום</th>
                </tr>
            </thead>
            <tbody>
                {%- for label, amount in categories %}
                <tr>
                    <td>{{ label }}</td>
                    <td class="amount">{{ amount | money }}</td>
                </tr>
                {%- endfor %}
            </tbody>
        </table>
    </div>
    {%- endif %}

    <h2>פירוט חשבוניות</h2>
    {%- for email in emails %}
    <div class="invoice-item">
        <h3>{{ email.subject }}</h3>
        <p><strong>מאת:</strong> {{ email.sender }}</p>
        <p><strong>תאריך:</strong> {{ email.received | local_date }}</p>
        {%- for att in email.successful_attachments %}
        {%- set record = att.invoice_data %}
        <div class="attachment">
            <p><strong>{{ att.filename }}</strong></p>
            {%- if record.company_name %}
            <p class="company-name">{{ record.company_name }}</p>
            {%- endif %}
            {%- if record.invoice_number %}
            <p><strong>מספר חשבונית:</strong> {{ record.invoice_number }}</p>
            {%- endif %}
            {%- if record.date %}
            <p><strong>תאריך חשבונית:</strong> {{ record.date }}</p>
            {%- endif %}
            {%- if record.total_amount is not none %}
            <p class="amount">{{ record.total_amount | money }}</p>
            {%- endif %}
            {%- if record.tax_amount is not none %}
            <p><strong>מע"מ:</strong> {{ record.tax_amount | money }}</p>
            {%- endif %}
        </div>
        {%- endfor %}
        {%- for att in email.failed_attachments %}
        <div class="attachment-failed">
            <p class="error"><strong>{{ att.filename }}</strong> - שגיאה: {{ att.error }}</p>
        </div>
        {%- endfor %}
    </div>
    {%- endfor %}

    <div class="footer">
        <p>נוצר אוטומטית על ידי InvoiceBot | {{ generated_iso }}</p>
    </div>
</body>
</html>
"""

TEXT_TEMPLATE = """\
סיכום חשבוניות - InvoiceBot
===============================================

תאריך יצירה: {{ generated_date }} {{ generated_time }}
{%- if period %}
תקופה: {{ period }}
{%- endif %}

סיכום כללי:
---------------------------
• סה"כ חשבוניות: {{ summary.total_invoices }}
• סה"כ לפני מע"מ: {{ summary.net_amount | money }}
• סה"כ מע"מ: {{ summary.total_vat | money }}
• סה"כ כולל מע"מ: {{ summary.total_amount | money }}
• חברות שונות: {{ summary.unique_companies }}
{%- if categories %}

פירוט לפי קטגוריות:
---------------------------
{%- for label, amount in categories %}
• {{ label }}: {{ amount | money }}
{%- endfor %}
{%- endif %}

פירוט חשבוניות:
===============================================
{%- for email in emails %}

{{ loop.index }}. {{ email.subject }}
   מאת: {{ email.sender }}
   תאריך: {{ email.received | local_date }}
   קבצים מצורפים:
{%- for att in email.successful_attachments %}
{%- set record = att.invoice_data %}
   * {{ att.filename }}
{%- if record.company_name %}
      חברה: {{ record.company_name }}
{%- endif %}
{%- if record.invoice_number %}
      מס' חשבונית: {{ record.invoice_number }}
{%- endif %}
{%- if record.date %}
      תאריך חשבונית: {{ record.date }}
{%- endif %}
{%- if record.total_amount is not none %}
      סכום: {{ record.total_amount | money }}
{%- endif %}
{%- if record.tax_amount is not none %}
      מע"מ: {{ record.tax_amount | money }}
{%- endif %}
{%- endfor %}
{%- if email.failed_attachments %}
   שגיאות:
{%- for att in email.failed_attachments %}
   x {{ att.filename }} - שגיאה: {{ att.error }}
{%- endfor %}
{%- endif %}
{%- endfor %}

------------------------------------------
נוצר אוטומטית על ידי InvoiceBot
{{ generated_iso }}
"""


def money(value: Decimal) -> str:
    return f"{format_amount(value)} {CURRENCY}"


def _environment(autoescape: bool, tz: tzinfo) -> Environment:
    env = Environment(autoescape=autoescape, keep_trailing_newline=False)
    env.filters["money"] = money
    env.filters["local_date"] = lambda value: format_date(value, tz)
    return env


def render_subject(summary: BatchSummary, period: Optional[str], generated_at: datetime, tz: tzinfo = UTC) -> str:
    period_label = period or summary.period or format_date(generated_at, tz)
    return (
        f"סיכום חשבוניות {period_label} - {summary.total_invoices} חשבוניות, "
        f'סה"כ {format_amount(summary.total_amount)} {CURRENCY}'
    )


def render(
    summary: BatchSummary,
    emails: Iterable[ProcessedEmail],
    period: Optional[str] = None,
    generated_at: Optional[datetime] = None,
    tz: tzinfo = UTC,
) -> SummaryEmail:
    """Render the accountant summary. Only emails with a successful attachment get a block."""
    generated_at = generated_at or datetime.now(tz=UTC)
    contributing = [email for email in emails if email.has_success]
    context = {
        "summary": summary,
        "period": period or summary.period,
        "categories": [(label, amount) for label, amount in summary.categories.items() if amount != 0],
        "emails": contributing,
        "generated_date": format_date(generated_at, tz),
        "generated_time": format_time(generated_at, tz),
        "generated_iso": generated_at.isoformat(),
    }
    html_body = _environment(True, tz).from_string(HTML_TEMPLATE).render(**context)
    text_body = _environment(False, tz).from_string(TEXT_TEMPLATE).render(**context)
    return SummaryEmail(
        subject=render_subject(summary, period, generated_at, tz),
        html_body=html_body,
        text_body=text_body.strip(),
    )


def export_csv(emails: Iterable[ProcessedEmail], tz: tzinfo = UTC) -> str:
    """One row per attachment across all given emails.

    Text columns are quoted and amounts are written bare. An absent amount is
    ``None``, which ``QUOTE_STRINGS`` writes as an unquoted empty cell.
    The byte-order marker is added when the file is written, not here.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_STRINGS, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for email in emails:
        email_date = format_date(email.received, tz)
        for att in email.attachments:
            prefix = [email_date, email.sender or "", email.subject or "", att.filename or ""]
            if att.success:
                record = att.invoice_data
                net_amount = None
                if record.total_amount is not None:
                    net_amount = record.total_amount - (record.tax_amount or Decimal(0))
                writer.writerow(
                    prefix
                    + [
                        record.company_name or "",
                        record.invoice_number or "",
                        record.date or "",
                        record.total_amount,
                        record.tax_amount,
                        net_amount,
                        categorize(att, email),
                        STATUS_SUCCEEDED,
                    ]
                )
            else:
                writer.writerow(
                    prefix
                    + ["", "", "", None, None, None, UNCLASSIFIED_CATEGORY, f"{STATUS_FAILED_PREFIX}{att.error}"]
                )
    return buffer.getvalue()
