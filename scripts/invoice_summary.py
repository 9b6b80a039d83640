"""Entry point that scans Gmail for invoices and writes a bookkeeping summary."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from datetime import UTC, datetime, timedelta
from pathlib import Path

from dotenv import load_dotenv

# Ensure project root is on sys.path when running as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from invoicebot.aggregator import aggregate
from invoicebot.backends import CachedExtractor, OcrTextExtractor, PdfTextExtractor
from invoicebot.batch import InvoiceBatch
from invoicebot.config import Settings
from invoicebot.gmail_client import GmailClient, build_search_query
from invoicebot.message_filter import MessageFilter
from invoicebot.models import EmailMessage, ProcessedEmail, ProcessingMethod
from invoicebot.output import write_artifacts
from invoicebot.processor import AttachmentProcessor
from invoicebot.report import export_csv, render
from invoicebot.text_cache import TextCache
from invoicebot.utils import ensure_utc

load_dotenv()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Summarize Gmail invoice attachments for the accountant.")
    parser.add_argument("--since", type=parse_datetime, help="ISO8601 timestamp (UTC) to start from")
    parser.add_argument("--until", type=parse_datetime, help="ISO8601 timestamp (UTC) to stop at")
    parser.add_argument(
        "--since-days",
        type=int,
        help="Shortcut for '--since' expressed as N days ago (integers only)",
    )
    parser.add_argument("--max-messages", type=int, help="Limit how many messages to inspect")
    parser.add_argument("--search", help="Only keep emails whose subject or sender contains this text")
    parser.add_argument("--period", help="Period label for the summary (defaults to the detected span)")
    parser.add_argument("--output-dir", type=Path, help="Directory for the HTML/text/CSV files")
    parser.add_argument("--dry-run", action="store_true", help="List matching emails without downloading")
    return parser


def parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(UTC)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid ISO timestamp: {value}") from exc


def resolve_since(args: argparse.Namespace) -> datetime | None:
    if args.since and args.since_days:
        raise SystemExit("Use either --since or --since-days, not both.")
    if args.since:
        return ensure_utc(args.since)
    if args.since_days:
        return datetime.now(tz=UTC) - timedelta(days=args.since_days)
    return None


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def open_text_cache(settings: Settings) -> TextCache | None:
    if not settings.text_cache_enabled:
        return None
    return TextCache(settings.text_cache_db)


def build_processor(settings: Settings, cache: TextCache | None = None) -> AttachmentProcessor:
    pdf_extract = PdfTextExtractor()
    ocr_extract = OcrTextExtractor(languages=settings.ocr_languages)
    if cache is not None:
        pdf_extract = CachedExtractor(pdf_extract, cache, ProcessingMethod.PDF_EXTRACT)
        ocr_extract = CachedExtractor(ocr_extract, cache, ProcessingMethod.OCR)
    return AttachmentProcessor(pdf_extract=pdf_extract, ocr_extract=ocr_extract)


def run_batch(batch: InvoiceBatch, messages: list[EmailMessage]) -> list[ProcessedEmail]:
    """Process the batch with Ctrl-C bound to cancellation, then restore the old handler."""
    cancel_event = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda *_: cancel_event.set())
    try:
        results = batch.process_messages(messages, cancel_event)
    finally:
        signal.signal(signal.SIGINT, previous_handler)
    return [email for email in results if email.is_processed]


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    settings = Settings()
    configure_logging(settings.log_level)
    since = resolve_since(args)
    until = ensure_utc(args.until) if args.until else None

    gmail_client = GmailClient(settings)
    message_filter = MessageFilter(args.search)
    query = build_search_query(
        settings.gmail_search_keywords,
        after=since.date() if since else None,
        before=until.date() if until else None,
    )
    messages = message_filter.select(gmail_client.iter_messages(query, max_messages=args.max_messages))
    logging.info("Found %s emails with possible invoices", len(messages))

    if args.dry_run:
        for message in messages:
            logging.info(
                "[DRY-RUN] Would process '%s' from %s (%s attachments: %s)",
                message.subject,
                message.sender,
                len(message.attachments),
                ", ".join(attachment.filename for attachment in message.attachments),
            )
        return

    cache = open_text_cache(settings)
    try:
        batch = InvoiceBatch(gmail_client, build_processor(settings, cache), settings.processing_max_workers)
        processed = run_batch(batch, messages)
    finally:
        if cache is not None:
            cache.close()

    tz = settings.tz
    summary = aggregate(processed, tz=tz)
    report = render(summary, processed, period=args.period, tz=tz)
    csv_text = export_csv(processed, tz=tz)
    stamp = datetime.now(tz=tz).date().isoformat()
    written = write_artifacts(args.output_dir or settings.output_dir, report, csv_text, stamp)

    attachments = [attachment for email in processed for attachment in email.attachments]
    succeeded = sum(1 for attachment in attachments if attachment.success)
    logging.info("Summary subject: %s", report.subject)
    logging.info(
        "Run complete: emails=%s attachments_succeeded=%s attachments_failed=%s files=%s",
        len(processed),
        succeeded,
        len(attachments) - succeeded,
        len(written),
    )


if __name__ == "__main__":
    main()
