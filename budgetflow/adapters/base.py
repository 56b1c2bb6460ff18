"""Base mail adapter interface."""
import html
from abc import ABC, abstractmethod


class MailDeliveryError(Exception):
    """Raised when an invite email could not be handed to the provider."""


class MailAdapter(ABC):
    """Abstract base class for mail adapters."""

    def __init__(self, sender: str, **kwargs):
        """
        Initialize the adapter.

        Args:
            sender: From address for outgoing mail
            **kwargs: Additional provider-specific configuration
        """
        self.sender = sender
        self.config = kwargs

    @staticmethod
    def invite_subject(group_name: str) -> str:
        return f'You\'re invited to join "{group_name}" on BudgetFlow!'

    @staticmethod
    def invite_text(group_name: str, invite_link: str) -> str:
        return f'You\'ve been invited to the group "{group_name}". Click to join: {invite_link}'

    @staticmethod
    def invite_html(group_name: str, invite_link: str) -> str:
        group_name = html.escape(group_name)
        invite_link = html.escape(invite_link, quote=True)
        return (
            '<div style="font-family:sans-serif">'
            f'<h2>You\'ve been invited to <span style="color:#14b8a6">{group_name}</span>!</h2>'
            "<p>Click the button below to join:</p>"
            f'<a href="{invite_link}" style="background:#14b8a6;color:white;padding:10px 18px;'
            'text-decoration:none;border-radius:6px;margin:10px 0;display:inline-block">Join Group</a>'
            "<p>If you didn't expect this, just ignore this email.</p>"
            "</div>"
        )

    @abstractmethod
    async def send_invite(self, to_email: str, group_name: str, invite_link: str) -> None:
        """
        Send a group invite.

        Args:
            to_email: Recipient address
            group_name: Name of the group being joined
            invite_link: Link carrying the group id and invite token

        Raises:
            MailDeliveryError: If the message could not be sent
        """
        pass
