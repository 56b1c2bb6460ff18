"""Console mail adapter for development and tests: logs instead of sending."""
import logging
from typing import List, Tuple

from budgetflow.adapters.base import MailAdapter

logger = logging.getLogger(__name__)


class ConsoleMailAdapter(MailAdapter):
    """Logs each invite and keeps a copy in ``outbox``."""

    def __init__(self, sender: str = "no-reply@budgetflow.app", **kwargs):
        super().__init__(sender, **kwargs)
        self.outbox: List[Tuple[str, str, str]] = []

    async def send_invite(self, to_email: str, group_name: str, invite_link: str) -> None:
        self.outbox.append((to_email, group_name, invite_link))
        logger.info(
            "Invite email (console delivery)",
            extra={"to": to_email, "group_name": group_name, "invite_link": invite_link},
        )
