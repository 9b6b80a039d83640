from invoicebot.message_filter import MessageFilter
from tests.helpers import make_message


def test_empty_search_keeps_everything():
    messages = [make_message("m1"), make_message("m2", subject="")]

    assert MessageFilter(None).select(messages) == messages
    assert MessageFilter("   ").select(messages) == messages


def test_matches_subject_case_insensitively():
    message = make_message("m1", subject="Electric Bill March")

    assert MessageFilter("electric").matches(message)
    assert not MessageFilter("water").matches(message)


def test_matches_sender():
    message = make_message("m1", sender="Billing <invoices@iec.co.il>")

    assert MessageFilter("iec.co.il").matches(message)


def test_select_preserves_order():
    messages = [
        make_message("m1", subject="חשבונית חשמל"),
        make_message("m2", subject="newsletter"),
        make_message("m3", subject="חשבונית מים"),
    ]

    selected = MessageFilter("חשבונית").select(messages)

    assert [message.message_id for message in selected] == ["m1", "m3"]
