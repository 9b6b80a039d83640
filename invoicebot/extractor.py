"""Rule-based extraction of invoice fields from raw document text.

Each field owns an ordered tuple of ``FieldRule`` entries, most specific first.
A rule pairs a compiled pattern with a converter; the first rule whose pattern
matches *and* whose converter yields a value wins. A converter returning
``None`` (an unparseable date, an empty capture) lets the next rule try.

Everything here is a pure function of the input text: no I/O, no clock, no
configuration, so results are reproducible in tests.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Callable, NamedTuple, Optional

from .models import CustomerInfo, InvoiceRecord, LineItem

logger = logging.getLogger(__name__)

FLAGS = re.IGNORECASE

# Shekel markers, both with an ASCII double quote and with gershayim.
SHEKEL = r'(?:ש"ח|ש״ח|₪)'
CURRENCY = r'(?:ש"ח|ש״ח|₪|ils|nis|shekel)'
AMOUNT = r"([0-9][0-9,]*(?:\.[0-9]+)?)"
TOTAL_LABEL = r'(?:סה"כ|סה״כ|סכום כולל|total)'
VAT_LABEL = r'(?:מע"מ|מע״מ|vat|tax)'


class FieldRule(NamedTuple):
    pattern: re.Pattern
    convert: Callable[[str], object]


class ValidationWarning(str, Enum):
    """Advisory findings about an assembled record. Never fatal."""

    MISSING_COMPANY_NAME = "לא נמצא שם חברה"
    INVALID_TOTAL_AMOUNT = "לא נמצא סכום תקין"
    MISSING_DATE = "לא נמצא תאריך"


def _clean_text(value: str) -> Optional[str]:
    cleaned = value.strip()
    return cleaned or None


def _parse_amount(value: str) -> Optional[Decimal]:
    try:
        amount = Decimal(value.replace(",", ""))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def _parse_date(value: str) -> Optional[str]:
    """Day-first ``D/M/Y`` (dots, slashes or hyphens) to ISO ``YYYY-MM-DD``."""
    parts = re.split(r"[/\-]", value.replace(".", "/"))
    if len(parts) != 3:
        return None
    day, month, year = parts
    if len(year) == 2:
        year = f"20{year}"
    elif len(year) != 4:
        return None
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        logger.debug("Discarding invalid date candidate %r", value)
        return None


def _rule(pattern: str, convert: Callable[[str], object], flags: int = FLAGS) -> FieldRule:
    return FieldRule(re.compile(pattern, flags), convert)


COMPANY_NAME_RULES = (
    _rule(r"(?:חברה|חברת|ח\.פ\.?|מ\.ח\.ח\.?|שם העסק)[:\s]+(.+?)(?:\n|ח\.פ|מ\.ח\.ח|$)", _clean_text),
    _rule(r'^(.+?)(?:בע"מ|בע״מ|ושות\'|ושותפים|עמותה)', _clean_text, FLAGS | re.MULTILINE),
    _rule(r"(?:מאת|אצל|שם)[:\s]+(.+?)(?:\n|$)", _clean_text),
)

COMPANY_ID_RULES = (
    _rule(r'(?:ח\.פ\.?|ח"פ|ח״פ|מ\.ח\.ח\.?|עוסק מורשה)[:\s#]*([0-9]{9})(?![0-9])', str),
    _rule(r"(?:company|registration|tax)(?:\s*(?:id|no\.?|number))?[:\s#]*([0-9]{9})(?![0-9])", str),
)

INVOICE_NUMBER_RULES = (
    _rule(
        r"(?:מספר חשבונית|חשבונית\s+מס['׳]?|חשבונית|invoice\s*(?:no\.?|number|#)?|inv\.?)"
        r"[:\s#]*([A-Z0-9\-_]+)",
        _clean_text,
    ),
    _rule(r"(?:מס['׳]|מספר)[:\s]*([0-9]+)", _clean_text),
)

DATE_RULES = (
    _rule(r"(?:תאריך|date)[:\s]*([0-9]{1,2}[/\-.][0-9]{1,2}[/\-.][0-9]{2,4})(?![0-9])", _parse_date),
    _rule(r"(?<![0-9])([0-9]{1,2}[/\-.][0-9]{1,2}[/\-.][0-9]{4})(?![0-9])", _parse_date),
)

TOTAL_AMOUNT_RULES = (
    _rule(TOTAL_LABEL + r"(?:\s+לתשלום)?[:\s]*" + AMOUNT + r"[:\s]*" + CURRENCY, _parse_amount),
    _rule(TOTAL_LABEL + r"(?:\s+לתשלום)?[:\s]*₪\s*" + AMOUNT, _parse_amount),
    _rule(r"(?:לתשלום|לחיוב)[:\s]*" + AMOUNT + r"[:\s]*" + SHEKEL, _parse_amount),
    _rule(AMOUNT + r"[:\s]*" + SHEKEL + r"[ \t]*(?:\n|$)", _parse_amount),
)

TAX_AMOUNT_RULES = (
    # The optional rate ("17%") is skipped so the captured figure is the amount.
    _rule(VAT_LABEL + r"(?:\s*[0-9]+(?:\.[0-9]+)?\s*%)?[\s:\-]*" + AMOUNT + r"[:\s]*" + CURRENCY, _parse_amount),
    _rule(VAT_LABEL + r"(?:\s*[0-9]+(?:\.[0-9]+)?\s*%)?[\s:\-]*₪\s*" + AMOUNT, _parse_amount),
)

ITEM_PATTERN = re.compile(r"(.+?)\s+([0-9][0-9,]*(?:\.[0-9]+)?)\s*" + SHEKEL, FLAGS)

# One shared list: addressee and address both fill ``customer_info.name``.
CUSTOMER_RULES = (
    _rule(r"(?:לכבוד|לקוח|customer)[:\s]+(.+?)(?:\n|$)", _clean_text),
    _rule(r"(?:כתובת|address)[:\s]+(.+?)(?:\n|$)", _clean_text),
)


def first_match(rules: tuple[FieldRule, ...], text: str):
    """Return the converted value of the first rule that yields one, else ``None``."""
    if not text:
        return None
    for rule in rules:
        match = rule.pattern.search(text)
        if not match or not match.group(1):
            continue
        value = rule.convert(match.group(1))
        if value is not None:
            return value
    return None


def extract_company_name(text: str) -> Optional[str]:
    return first_match(COMPANY_NAME_RULES, text)


def extract_company_id(text: str) -> Optional[str]:
    """Nine-digit company/dealer number, kept as a string."""
    return first_match(COMPANY_ID_RULES, text)


def extract_invoice_number(text: str) -> Optional[str]:
    return first_match(INVOICE_NUMBER_RULES, text)


def extract_date(text: str) -> Optional[str]:
    return first_match(DATE_RULES, text)


def extract_total_amount(text: str) -> Optional[Decimal]:
    return first_match(TOTAL_AMOUNT_RULES, text)


def extract_tax_amount(text: str) -> Optional[Decimal]:
    return first_match(TAX_AMOUNT_RULES, text)


def extract_items(text: str) -> tuple[LineItem, ...]:
    """Every line shaped like ``<description> <amount> ש"ח``, in document order."""
    items: list[LineItem] = []
    for line in (text or "").splitlines():
        match = ITEM_PATTERN.search(line)
        if not match:
            continue
        description = match.group(1).strip(" \t:-–")
        amount = _parse_amount(match.group(2))
        if not description or amount is None:
            continue
        items.append(LineItem(description=description, amount=amount))
    return tuple(items)


def extract_customer_info(text: str) -> CustomerInfo:
    return CustomerInfo(name=first_match(CUSTOMER_RULES, text))


def extract_invoice_data(text: str) -> InvoiceRecord:
    """Assemble an ``InvoiceRecord`` from independently extracted fields."""
    return InvoiceRecord(
        company_name=extract_company_name(text),
        company_id=extract_company_id(text),
        invoice_number=extract_invoice_number(text),
        date=extract_date(text),
        total_amount=extract_total_amount(text),
        tax_amount=extract_tax_amount(text),
        items=extract_items(text),
        customer_info=extract_customer_info(text),
    )


def validate_invoice_data(record: InvoiceRecord) -> list[ValidationWarning]:
    warnings: list[ValidationWarning] = []
    if not record.company_name:
        warnings.append(ValidationWarning.MISSING_COMPANY_NAME)
    if record.total_amount is None or record.total_amount <= 0:
        warnings.append(ValidationWarning.INVALID_TOTAL_AMOUNT)
    if not record.date:
        warnings.append(ValidationWarning.MISSING_DATE)
    return warnings
