"""
Gmail gateway — creates drafts in the connected mailbox.

Drafts are never sent automatically; a person reviews them in Gmail.
The message is built with ``email.mime`` and posted base64url-encoded as
``message.raw`` to ``users/me/drafts``.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import requests

from wellspring.integrations.base import DEFAULT_TIMEOUT, BaseGateway

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://gmail.googleapis.com/gmail/v1"


@dataclass
class DraftResult:
    success: bool
    draft_id: str | None = None
    error: str | None = None


@dataclass
class DraftAttachment:
    """Attachment payload; ``content`` is base64-encoded."""

    filename: str
    mime_type: str
    content: str


def build_raw_message(
    to: list[str],
    cc: list[str],
    subject: str,
    body: str,
    attachment: DraftAttachment | None = None,
) -> str:
    """RFC 2822 message, base64url-encoded without padding."""
    text = MIMEText(body, "plain", "utf-8")
    if attachment is None:
        msg = text
    else:
        msg = MIMEMultipart()
        msg.attach(text)
        _, _, subtype = attachment.mime_type.partition("/")
        part = MIMEApplication(base64.b64decode(attachment.content), _subtype=subtype or "octet-stream")
        part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
        msg.attach(part)

    msg["To"] = ", ".join(to)
    if cc:
        msg["Cc"] = ", ".join(cc)
    msg["Subject"] = subject
    return base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii").rstrip("=")


class GmailGateway(BaseGateway):
    """Draft-only Gmail client authenticated with an OAuth access token."""

    service_name = "Gmail"

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        access_token: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(session=session, timeout=timeout)
        self.api_url = api_url.rstrip("/")
        self.access_token = access_token

    def is_connected(self) -> bool:
        return bool(self.access_token)

    def create_draft(
        self,
        to: list[str],
        cc: list[str],
        subject: str,
        body: str,
        attachment: DraftAttachment | None = None,
    ) -> DraftResult:
        if not self.is_connected():
            return DraftResult(success=False, error="Gmail not connected")

        raw = build_raw_message(to, cc, subject, body, attachment)
        result = self.send(
            "POST",
            f"{self.api_url}/users/me/drafts",
            {
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
            },
            json_body={"message": {"raw": raw}},
        )
        if not result.ok:
            logger.error("Gmail draft creation failed to=%s error=%s", to, result.error)
            return DraftResult(success=False, error=result.error)

        draft_id = (result.data or {}).get("id")
        logger.info("Gmail draft created id=%s to=%s", draft_id, to)
        return DraftResult(success=True, draft_id=draft_id)
