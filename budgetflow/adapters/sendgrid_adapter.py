"""SendGrid mail adapter."""
import logging
from typing import Optional

import httpx

from budgetflow.adapters.base import MailAdapter, MailDeliveryError
from budgetflow.config import settings

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class SendGridMailAdapter(MailAdapter):
    """Sends invites through the SendGrid v3 HTTP API."""

    def __init__(
        self,
        sender: str,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ):
        super().__init__(sender, **kwargs)
        self.api_key = api_key or settings.sendgrid_api_key
        if not self.api_key:
            raise ValueError("SendGrid API key required")
        self.timeout = kwargs.get("timeout", settings.mail_timeout_seconds)
        # Injected in tests (httpx.MockTransport)
        self.transport = transport

    def build_payload(self, to_email: str, group_name: str, invite_link: str) -> dict:
        return {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": self.sender},
            "subject": self.invite_subject(group_name),
            "content": [
                {"type": "text/plain", "value": self.invite_text(group_name, invite_link)},
                {"type": "text/html", "value": self.invite_html(group_name, invite_link)},
            ],
        }

    async def send_invite(self, to_email: str, group_name: str, invite_link: str) -> None:
        """Send one invite. SendGrid answers 202 Accepted on success."""
        payload = self.build_payload(to_email, group_name, invite_link)
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(SENDGRID_SEND_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise MailDeliveryError(f"SendGrid request failed: {e}") from e

        if r.status_code >= 300:
            body_snippet = (r.text or "")[:200]
            logger.warning(
                "SendGrid non-2xx: status=%s body=%s",
                r.status_code,
                body_snippet,
            )
            raise MailDeliveryError(f"SendGrid returned {r.status_code}")
