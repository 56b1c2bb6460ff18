"""Factory for creating mail adapters."""
from budgetflow.adapters.base import MailAdapter
from budgetflow.adapters.console import ConsoleMailAdapter
from budgetflow.adapters.sendgrid_adapter import SendGridMailAdapter
from budgetflow.config import settings


def get_mail_adapter(**kwargs) -> MailAdapter:
    """
    Create the mail adapter for the current settings.

    SendGrid when an API key is configured, console logging otherwise.
    """
    if settings.sendgrid_api_key:
        return SendGridMailAdapter(settings.email_from, api_key=settings.sendgrid_api_key, **kwargs)
    return ConsoleMailAdapter(settings.email_from, **kwargs)
