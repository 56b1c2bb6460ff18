"""Invite token and link helpers."""
import secrets
from datetime import datetime, timedelta
from typing import List

from budgetflow.config import settings


def generate_invite_token() -> str:
    """Return a 64-character random hex token."""
    return secrets.token_hex(32)


def invite_expiry(issued_at: datetime) -> datetime:
    return issued_at + timedelta(days=settings.invite_expiry_days)


def build_invite_link(group_id: str, token: str) -> str:
    base = settings.frontend_url.rstrip("/")
    return f"{base}/accept-invite/{group_id}/{token}"


def plausible_emails(emails: List[str]) -> List[str]:
    """Keep non-blank entries that contain "@", stripped. Others are dropped silently."""
    return [e.strip() for e in emails if e and e.strip() and "@" in e]
