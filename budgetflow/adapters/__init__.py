from .base import MailAdapter, MailDeliveryError
from .console import ConsoleMailAdapter
from .sendgrid_adapter import SendGridMailAdapter
from .factory import get_mail_adapter

__all__ = [
    "MailAdapter",
    "MailDeliveryError",
    "ConsoleMailAdapter",
    "SendGridMailAdapter",
    "get_mail_adapter",
]
