"""Concurrent processing of the attachments of a batch of selected emails."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from collections import defaultdict
from typing import Iterable, Optional, Protocol

from .models import AttachmentMetadata, EmailMessage, ProcessedAttachment, ProcessedEmail, RawAttachment
from .processor import AttachmentProcessor

logger = logging.getLogger(__name__)


class AttachmentSource(Protocol):
    def download_attachment(self, message_id: str, attachment_id: str) -> bytes: ...


class InvoiceBatch:
    """Fan attachments out to a thread pool and collect per-email outcomes.

    Each attachment is downloaded and processed independently; a failure is
    recorded on that attachment only. Setting ``cancel_event`` stops further
    attachments from starting while keeping every result already produced.
    """

    def __init__(
        self,
        source: AttachmentSource,
        processor: AttachmentProcessor,
        max_workers: int = 4,
    ) -> None:
        self.source = source
        self.processor = processor
        self.max_workers = max(1, max_workers)

    def process_messages(
        self,
        messages: Iterable[EmailMessage],
        cancel_event: Optional[threading.Event] = None,
    ) -> list[ProcessedEmail]:
        messages = list(messages)
        cancel_event = cancel_event or threading.Event()
        jobs = [
            (message_index, position, attachment)
            for message_index, message in enumerate(messages)
            for position, attachment in enumerate(message.attachments)
        ]
        outcomes: dict[int, list[tuple[int, ProcessedAttachment]]] = defaultdict(list)
        workers = max(1, min(len(jobs) or 1, self.max_workers))
        logger.info(
            "Processing %d attachments from %d emails using %d worker threads",
            len(jobs),
            len(messages),
            workers,
        )

        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._run_job, messages[message_index], attachment, cancel_event): (
                    message_index,
                    position,
                )
                for message_index, position, attachment in jobs
            }
            for future in concurrent.futures.as_completed(futures):
                result = future.result()
                if result is None:
                    continue
                message_index, position = futures[future]
                outcomes[message_index].append((position, result))

        processed: list[ProcessedEmail] = []
        for message_index, message in enumerate(messages):
            attachments = [result for _, result in sorted(outcomes.get(message_index, []), key=lambda pair: pair[0])]
            if message.attachments:
                attempted = bool(attachments)
            else:
                attempted = not cancel_event.is_set()
            processed.append(ProcessedEmail.from_message(message, attachments, is_processed=attempted))

        if cancel_event.is_set():
            logger.warning(
                "Batch cancelled: %d of %d attachments completed",
                sum(len(items) for items in outcomes.values()),
                len(jobs),
            )
        return processed

    def process_email(self, message: EmailMessage) -> ProcessedEmail:
        return self.process_messages([message])[0]

    def _run_job(
        self,
        message: EmailMessage,
        attachment: AttachmentMetadata,
        cancel_event: threading.Event,
    ) -> Optional[ProcessedAttachment]:
        if cancel_event.is_set():
            return None
        try:
            content = self.source.download_attachment(message.message_id, attachment.attachment_id)
        except Exception as exc:
            logger.error(
                "Error processing attachment %s of message %s: %s",
                attachment.filename,
                message.message_id,
                exc,
            )
            return ProcessedAttachment(
                filename=attachment.filename,
                mime_type=attachment.mime_type,
                success=False,
                error=str(exc),
                processed_at=self.processor.clock(),
                attachment_id=attachment.attachment_id,
            )
        return self.processor.process(
            RawAttachment(
                filename=attachment.filename,
                mime_type=attachment.mime_type,
                content=content,
                attachment_id=attachment.attachment_id,
            )
        )
