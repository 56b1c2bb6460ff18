from .log_config import KeyValueFormatter, configure_logging
from .invites import build_invite_link, generate_invite_token, invite_expiry, plausible_emails
from .security import (
    create_access_token,
    decode_access_token,
    get_current_user_id,
    hash_password,
    verify_password,
)

__all__ = [
    "KeyValueFormatter",
    "configure_logging",
    "build_invite_link",
    "generate_invite_token",
    "invite_expiry",
    "plausible_emails",
    "create_access_token",
    "decode_access_token",
    "get_current_user_id",
    "hash_password",
    "verify_password",
]
