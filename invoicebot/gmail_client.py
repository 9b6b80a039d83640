"""Gmail REST helper focused on message + attachment retrieval."""

from __future__ import annotations

import base64
import json
import logging
from datetime import date
from typing import Any, Iterator, Optional, Sequence

import requests
from requests import Response

from .config import Settings
from .errors import AttachmentSourceError, GmailError
from .models import AttachmentMetadata, EmailMessage
from .utils import gmail_date

logger = logging.getLogger(__name__)


def build_search_query(
    keywords: Sequence[str],
    after: Optional[date] = None,
    before: Optional[date] = None,
) -> str:
    """OR the keywords together and append Gmail ``after:``/``before:`` operators."""
    query = " OR ".join(keywords)
    if after:
        query += f" after:{gmail_date(after)}"
    if before:
        query += f" before:{gmail_date(before)}"
    return query.strip()


class GmailClient:
    """Thin wrapper over the Gmail v1 REST API.

    Token acquisition and refresh belong to the surrounding application; the
    client only reads an access token from settings or the token file.
    """

    GMAIL_BASE = "https://gmail.googleapis.com/gmail/v1"

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.user_id = settings.gmail_user_id

    def iter_messages(
        self,
        query: str,
        max_messages: Optional[int] = None,
    ) -> Iterator[EmailMessage]:
        """Yield matching messages with their attachment metadata.

        Messages whose details cannot be fetched are logged and skipped.
        """
        limit = max_messages or self.settings.gmail_max_results
        url = f"{self._messages_root()}/messages"
        params: dict[str, Any] = {"q": query, "maxResults": min(self.settings.gmail_page_size, limit)}
        logger.info("Searching Gmail with query: %s", query)

        yielded = 0
        while True:
            payload = self._get(url, params=params).json()
            for ref in payload.get("messages", []):
                try:
                    message = self.get_message(ref["id"])
                except (GmailError, requests.RequestException) as exc:
                    logger.error("Error getting email details for %s: %s", ref.get("id"), exc)
                    continue
                yield message
                yielded += 1
                if yielded >= limit:
                    return

            page_token = payload.get("nextPageToken")
            if not page_token:
                return
            params = {**params, "pageToken": page_token}

    def get_message(self, message_id: str) -> EmailMessage:
        url = f"{self._messages_root()}/messages/{message_id}"
        raw = self._get(url, params={"format": "full"}).json()
        return self._to_message(raw)

    def download_attachment(self, message_id: str, attachment_id: str) -> bytes:
        """Download and decode attachment bytes."""
        url = f"{self._messages_root()}/messages/{message_id}/attachments/{attachment_id}"
        try:
            payload = self._get(url).json()
        except (GmailError, requests.RequestException) as exc:
            raise AttachmentSourceError(f"Attachment download failed: {exc}") from exc
        data = payload.get("data")
        if data is None:
            raise AttachmentSourceError(f"Attachment {attachment_id} returned no data")
        return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))

    def _get(self, url: str, params: dict | None = None) -> Response:
        headers = {"Authorization": f"Bearer {self._access_token()}"}
        resp = self.session.get(url, headers=headers, params=params, timeout=30)
        if resp.status_code >= 400:
            logger.error("Gmail request failed (%s): %s", resp.status_code, resp.text)
            raise GmailError(f"Gmail request failed ({resp.status_code}): {url}")
        return resp

    def _access_token(self) -> str:
        if self.settings.gmail_access_token:
            return self.settings.gmail_access_token
        token_path = self.settings.gmail_token_file
        if not token_path.exists():
            raise GmailError(f"No valid token found at {token_path}. Need to authorize first.")
        tokens = json.loads(token_path.read_text(encoding="utf-8"))
        token = tokens.get("access_token") or tokens.get("token")
        if not token:
            raise GmailError(f"Token file {token_path} has no access_token")
        return token

    def _messages_root(self) -> str:
        return f"{self.GMAIL_BASE}/users/{self.user_id}"

    @staticmethod
    def _to_message(raw: dict) -> EmailMessage:
        payload = raw.get("payload") or {}
        headers = {
            header.get("name", "").lower(): header.get("value", "")
            for header in payload.get("headers", [])
        }
        attachments: list[AttachmentMetadata] = []
        GmailClient._collect_attachments(payload.get("parts"), attachments)
        return EmailMessage(
            message_id=raw["id"],
            thread_id=raw.get("threadId"),
            subject=headers.get("subject", ""),
            sender=headers.get("from", ""),
            date_header=headers.get("date"),
            internal_date_ms=int(raw.get("internalDate") or 0),
            snippet=raw.get("snippet"),
            attachments=tuple(attachments),
            raw=raw,
        )

    @staticmethod
    def _collect_attachments(parts: list[dict] | None, found: list[AttachmentMetadata]) -> None:
        for part in parts or []:
            body = part.get("body") or {}
            if part.get("filename") and body.get("attachmentId"):
                found.append(
                    AttachmentMetadata(
                        attachment_id=body["attachmentId"],
                        filename=part["filename"],
                        mime_type=part.get("mimeType", "application/octet-stream"),
                        size=body.get("size", 0),
                    )
                )
            GmailClient._collect_attachments(part.get("parts"), found)
