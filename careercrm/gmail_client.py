"""Gmail API client for listing and fetching job-related emails."""

import base64
import html
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from googleapiclient.discovery import build

from .auth import GMAIL_SCOPES, get_credentials
from .config import Config
from .errors import ListingError
from .models import EmailSummary

logger = logging.getLogger(__name__)

SUBJECT_KEYWORDS = [
    "application",
    "interview",
    "offer",
    "rejected",
    "assessment",
]

SENDER_KEYWORDS = [
    "recruiter",
    "talent",
    "careers",
]


def build_gmail_query(since_ms: int = 0) -> str:
    """Build Gmail search query for job-related emails newer than the watermark."""
    subjects = " OR ".join(SUBJECT_KEYWORDS)
    senders = " OR ".join(SENDER_KEYWORDS)
    query = f"(subject:({subjects}) OR from:({senders}))"

    if since_ms > 0:
        query += f" after:{since_ms // 1000}"
    return query


def strip_html(text: str) -> str:
    """Convert HTML to plain text."""
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<p[^>]*>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"</p>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", " ", text, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r"<[^>]+>", " ", text)
    text = html.unescape(text)
    text = re.sub(r"[ \t\r\f\v]+", " ", text)
    text = re.sub(r"\n\s*\n", "\n\n", text)
    return text.strip()


def decode_part(data: str) -> str:
    """Decode a base64url message part body."""
    return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")


def find_part(part: dict[str, Any], mime_type: str) -> Optional[str]:
    """Depth-first search for the first non-empty part of the given type."""
    if part.get("mimeType") == mime_type:
        data = part.get("body", {}).get("data", "")
        if data:
            return decode_part(data)

    for subpart in part.get("parts", []):
        text = find_part(subpart, mime_type)
        if text:
            return text
    return None


def get_email_body(message: dict[str, Any]) -> str:
    """Extract email body text, preferring text/plain over HTML and the snippet."""
    payload = message.get("payload", {})

    if "parts" in payload:
        text = find_part(payload, "text/plain")
        if text:
            return text
        markup = find_part(payload, "text/html")
        if markup:
            return strip_html(markup)
    else:
        body_data = payload.get("body", {}).get("data", "")
        if body_data:
            text = decode_part(body_data)
            if payload.get("mimeType") == "text/html":
                return strip_html(text)
            return text

    return message.get("snippet", "")


def get_email_headers(message: dict[str, Any]) -> dict[str, str]:
    """Extract common headers from email message."""
    headers = {}
    payload = message.get("payload", {})

    for header in payload.get("headers", []):
        name = header.get("name", "").lower()
        if name in ("from", "to", "subject", "date"):
            headers[name] = header.get("value", "")

    return headers


def get_email_date(message: dict[str, Any]) -> datetime:
    """Received time from internalDate, falling back to now."""
    internal = message.get("internalDate")
    if internal:
        return datetime.fromtimestamp(int(internal) / 1000, tz=timezone.utc)
    return datetime.now(timezone.utc)


class GmailSource:
    """Email source backed by the Gmail REST API."""

    def __init__(self, config: Config, service: Any = None):
        self.config = config
        self._service = service

    @property
    def service(self) -> Any:
        """Gmail API client, authenticating on first use."""
        if self._service is None:
            creds = get_credentials(self.config, GMAIL_SCOPES, "token.json")
            self._service = build("gmail", "v1", credentials=creds)
        return self._service

    def authenticate(self) -> None:
        """Force credential acquisition so callers can react to a fresh login."""
        _ = self.service

    def list_since(self, since_ms: int) -> list[str]:
        """List candidate message ids newer than the watermark.

        Results come back in the order Gmail returns them and are capped at
        ``config.max_results``; anything beyond the cap waits for a later cycle.
        Raises ListingError if the listing itself fails.
        """
        query = build_gmail_query(since_ms)
        logger.info(f"Listing emails with query: {query}")

        try:
            results = (
                self.service.users()
                .messages()
                .list(userId="me", q=query, maxResults=self.config.max_results)
                .execute()
            )
        except Exception as e:
            raise ListingError(f"Failed to list messages: {e}") from e

        ids = [m["id"] for m in results.get("messages", []) if m.get("id")]
        logger.info(f"Found {len(ids)} potential updates")
        return ids[: self.config.max_results]

    def fetch_details(self, message_id: str) -> Optional[EmailSummary]:
        """Fetch and decode one message. Returns None on any failure."""
        try:
            message = (
                self.service.users()
                .messages()
                .get(userId="me", id=message_id, format="full")
                .execute()
            )
            headers = get_email_headers(message)
            return EmailSummary(
                id=message_id,
                subject=headers.get("subject") or "No Subject",
                sender=headers.get("from") or "Unknown",
                snippet=message.get("snippet", ""),
                body=get_email_body(message),
                date=get_email_date(message),
            )
        except Exception as e:
            logger.warning(f"Failed to fetch email {message_id}: {e}")
            return None
