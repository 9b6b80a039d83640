import threading
from unittest.mock import MagicMock

from invoicebot.batch import InvoiceBatch
from invoicebot.errors import AttachmentSourceError
from tests.helpers import make_message


def _source(content=b"bytes"):
    source = MagicMock()
    source.download_attachment.return_value = content
    return source


def test_every_attachment_is_processed_in_listing_order(processor):
    messages = [
        make_message("m1", [("a1", "first.pdf", "application/pdf"), ("a2", "second.png", "image/png")]),
        make_message("m2", [("a3", "third.pdf", "application/pdf")]),
    ]

    results = InvoiceBatch(_source(), processor, max_workers=4).process_messages(messages)

    assert [email.message_id for email in results] == ["m1", "m2"]
    assert [att.filename for att in results[0].attachments] == ["first.pdf", "second.png"]
    assert [att.filename for att in results[1].attachments] == ["third.pdf"]
    assert all(email.is_processed for email in results)
    assert all(att.success for email in results for att in email.attachments)


def test_download_failure_is_isolated(processor):
    source = MagicMock()
    source.download_attachment.side_effect = lambda message_id, attachment_id: (
        _raise(AttachmentSourceError("attachment gone")) if attachment_id == "bad" else b"ok"
    )
    message = make_message("m1", [("bad", "lost.pdf", "application/pdf"), ("good", "fine.pdf", "application/pdf")])

    email = InvoiceBatch(source, processor).process_email(message)

    lost, fine = email.attachments
    assert lost.success is False
    assert lost.error == "attachment gone"
    assert lost.attachment_id == "bad"
    assert fine.success is True
    assert email.is_processed is True
    assert email.has_success is True


def test_unsupported_attachment_does_not_stop_siblings(processor):
    message = make_message("m1", [("a1", "notes.txt", "text/plain"), ("a2", "bill.pdf", "application/pdf")])

    email = InvoiceBatch(_source(), processor).process_email(message)

    assert [att.success for att in email.attachments] == [False, True]
    assert email.failed_attachments[0].error == "Unsupported file type: text/plain"


def test_email_without_attachments_is_processed_but_contributes_nothing(processor):
    email = InvoiceBatch(_source(), processor).process_email(make_message("m1"))

    assert email.is_processed is True
    assert email.attachments == ()
    assert email.has_success is False


def test_cancel_before_start_processes_nothing(processor):
    cancel = threading.Event()
    cancel.set()
    source = _source()
    messages = [make_message("m1", [("a1", "x.pdf", "application/pdf")]), make_message("m2")]

    results = InvoiceBatch(source, processor).process_messages(messages, cancel)

    source.download_attachment.assert_not_called()
    assert [email.is_processed for email in results] == [False, False]


def test_cancel_mid_batch_keeps_completed_results(processor):
    cancel = threading.Event()
    source = MagicMock()

    def download(message_id, attachment_id):
        cancel.set()
        return b"bytes"

    source.download_attachment.side_effect = download
    messages = [
        make_message("m1", [("a1", "one.pdf", "application/pdf")]),
        make_message("m2", [("a2", "two.pdf", "application/pdf")]),
    ]

    results = InvoiceBatch(source, processor, max_workers=1).process_messages(messages, cancel)

    assert source.download_attachment.call_count == 1
    assert results[0].is_processed is True
    assert results[0].attachments[0].success is True
    assert results[1].is_processed is False
    assert results[1].attachments == ()


def _raise(exc):
    raise exc
