"""Write rendered artifacts to disk."""

from __future__ import annotations

import logging
from pathlib import Path

from .models import SummaryEmail

logger = logging.getLogger(__name__)


def write_artifacts(output_dir: Path, report: SummaryEmail, csv_text: str, stamp: str) -> list[Path]:
    """Save the HTML and text summaries and the CSV export; return the paths written.

    The CSV gets a UTF-8 byte-order marker so spreadsheets detect the encoding.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    html_path = output_dir / f"invoice-summary-{stamp}.html"
    text_path = output_dir / f"invoice-summary-{stamp}.txt"
    csv_path = output_dir / f"invoices-export-{stamp}.csv"

    html_path.write_text(report.html_body, encoding="utf-8")
    text_path.write_text(report.text_body, encoding="utf-8")
    with csv_path.open("w", encoding="utf-8-sig", newline="") as fh:
        fh.write(csv_text)

    written = [html_path, text_path, csv_path]
    for path in written:
        logger.info("Wrote %s", path)
    return written
