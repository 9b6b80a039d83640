import importlib.util
import signal
import sqlite3
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from invoicebot.config import Settings
from tests.helpers import make_message

SCRIPT_PATH = Path(__file__).resolve().parents[1] / "scripts" / "invoice_summary.py"


@pytest.fixture(scope="module")
def script():
    spec = importlib.util.spec_from_file_location("invoice_summary", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        gmail_access_token="token",
        text_cache_enabled=True,
        text_cache_db=tmp_path / "cache.db",
        output_dir=tmp_path / "out",
        report_timezone="UTC",
    )


def test_run_batch_restores_previous_sigint_handler(script):
    before = signal.getsignal(signal.SIGINT)
    seen = {}

    def process_messages(messages, cancel_event):
        handler = signal.getsignal(signal.SIGINT)
        seen["bound"] = handler is not before
        handler(signal.SIGINT, None)
        seen["cancelled"] = cancel_event.is_set()
        return []

    batch = MagicMock()
    batch.process_messages.side_effect = process_messages

    script.run_batch(batch, [make_message("m1")])

    assert seen == {"bound": True, "cancelled": True}
    assert signal.getsignal(signal.SIGINT) is before


def test_run_batch_restores_handler_when_batch_raises(script):
    before = signal.getsignal(signal.SIGINT)
    batch = MagicMock()
    batch.process_messages.side_effect = RuntimeError("boom")

    with pytest.raises(RuntimeError):
        script.run_batch(batch, [])

    assert signal.getsignal(signal.SIGINT) is before


def test_run_batch_keeps_processed_emails_only(script):
    processed, skipped = MagicMock(is_processed=True), MagicMock(is_processed=False)
    batch = MagicMock()
    batch.process_messages.return_value = [processed, skipped]

    assert script.run_batch(batch, []) == [processed]


def test_open_text_cache_disabled(script, settings):
    assert script.open_text_cache(settings.model_copy(update={"text_cache_enabled": False})) is None


def test_main_closes_text_cache_and_writes_artifacts(script, settings, monkeypatch):
    gmail = MagicMock()
    gmail.iter_messages.return_value = iter([])
    opened = []
    real_cache = script.TextCache

    def tracking_cache(path):
        cache = real_cache(path)
        opened.append(cache)
        return cache

    monkeypatch.setattr(script, "Settings", lambda: settings)
    monkeypatch.setattr(script, "GmailClient", lambda _settings: gmail)
    monkeypatch.setattr(script, "TextCache", tracking_cache)
    monkeypatch.setattr(sys, "argv", ["invoice_summary.py"])

    script.main()

    assert len(opened) == 1
    with pytest.raises(sqlite3.ProgrammingError):
        opened[0]._conn.execute("select 1")
    assert len(list((settings.output_dir).iterdir())) == 3
