"""Utility helpers shared across modules."""

from __future__ import annotations

from datetime import UTC, date, datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from hashlib import sha256


def from_epoch_millis(value: int | str) -> datetime:
    """Convert Gmail's ``internalDate`` (epoch millis) into an aware UTC datetime."""
    return datetime.fromtimestamp(int(value) / 1000, tz=UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Force a datetime into UTC without altering instant."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def gmail_date(value: date) -> str:
    """Format a date the way Gmail search operators expect (YYYY/MM/DD)."""
    return f"{value.year:04d}/{value.month:02d}/{value.day:02d}"


def format_date(value: datetime | date, tz: tzinfo | None = None) -> str:
    """Day-first short date (``15.3.2024``), converted to ``tz`` when given."""
    if isinstance(value, datetime) and tz is not None:
        value = ensure_utc(value).astimezone(tz)
    return f"{value.day}.{value.month}.{value.year}"


def format_time(value: datetime, tz: tzinfo | None = None) -> str:
    if tz is not None:
        value = ensure_utc(value).astimezone(tz)
    return value.strftime("%H:%M:%S")


def format_amount(value: Decimal) -> str:
    """Thousands separators, at most two decimals, trailing zeros dropped."""
    rounded = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{rounded:,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def sha256_hex(payload: bytes) -> str:
    """Convenience wrapper for hex digests."""
    return sha256(payload).hexdigest()
