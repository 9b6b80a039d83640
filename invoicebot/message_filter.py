"""Local search over listed emails before processing."""

from __future__ import annotations

import logging
from typing import Iterable

from .models import EmailMessage

logger = logging.getLogger(__name__)


class MessageFilter:
    """Keep emails whose subject or sender contains the search text."""

    def __init__(self, search: str | None = None) -> None:
        self.search = (search or "").strip().casefold()

    def matches(self, message: EmailMessage) -> bool:
        if not self.search:
            return True
        subject = (message.subject or "").casefold()
        sender = (message.sender or "").casefold()
        if self.search in subject or self.search in sender:
            return True
        logger.debug("Message %s did not match search '%s'", message.message_id, self.search)
        return False

    def select(self, messages: Iterable[EmailMessage]) -> list[EmailMessage]:
        return [message for message in messages if self.matches(message)]
