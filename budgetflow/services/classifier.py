"""Rule-based chat assistant.

A message is resolved in four ordered stages and the first stage that
produces an answer wins:

1. Action patterns ("add 250 to groceries") log an expense transaction.
2. FAQ lookup: the message contains a trigger phrase, or is the start of one.
3. Keyword fallback: any word longer than 3 characters found inside a trigger.
4. A static help message.

Only stage 1 writes anything.
"""
import logging
import math
import re
import sqlite3
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Tuple

from budgetflow.config import settings
from budgetflow.models.chat import ChatReply
from budgetflow.models.transaction import TransactionBase
from budgetflow.services.faq import FAQ_ANSWERS

logger = logging.getLogger(__name__)

_AMOUNT = r"(\d+(?:\.\d{1,2})?)"

# Tried in this order; the first pattern that matches decides the outcome.
ACTION_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("add", re.compile(r"add\s+" + _AMOUNT + r"\s+(?:(?:to|for)\s+)?(\w+)")),
    ("spent", re.compile(r"spent\s+" + _AMOUNT + r"\s+(?:on\s+)?(\w+)")),
    ("paid", re.compile(r"paid\s+" + _AMOUNT + r"\s+(?:for\s+)?(\w+)")),
    ("expense", re.compile(r"expense\s+" + _AMOUNT + r"\s+(?:(?:to|on)\s+)?(\w+)")),
]

# A bare connector ("add 50 to") is not a category
_CONNECTOR_WORDS = frozenset({"to", "for", "on"})

KEYWORD_MIN_LENGTH = 4

INVALID_MESSAGE_REPLY = "Please provide a valid message."
INVALID_AMOUNT_REPLY = "Please provide a valid amount greater than 0."
MISSING_CATEGORY_REPLY = "Please specify a category (e.g., groceries, transport, entertainment)."
HELP_REPLY = (
    "I'm the BudgetFlow AI Assistant! I can help you with budgeting, finance, "
    "and managing your transactions.\n\n"
    "Try asking:\n"
    "- How do I create a budget?\n"
    "- How can I reduce my expenses?\n"
    "- Add 250 to groceries (to log a transaction)\n"
    "- What is the 50/30/20 rule?\n\n"
    "Or describe what you want to do, and I'll help!"
)


def is_valid_message(message: Any) -> bool:
    """A message must be a string with something other than whitespace in it."""
    return isinstance(message, str) and bool(message.strip())


def normalize(message: str) -> str:
    return message.strip().lower()


def format_amount(amount: float) -> str:
    """250.0 -> "250", 99.5 -> "99.5"."""
    return str(int(amount)) if amount.is_integer() else str(amount)


def match_action(text: str) -> Optional[Tuple[str, str, str]]:
    """
    Find the first action pattern that matches.

    Args:
        text: Normalized message

    Returns:
        (verb, raw_amount, raw_category) of the first matching pattern, or None
    """
    for verb, pattern in ACTION_PATTERNS:
        match = pattern.search(text)
        if match:
            return verb, match.group(1), match.group(2)
    return None


def find_faq_answer(text: str, faq: Mapping[str, str] = FAQ_ANSWERS) -> Optional[str]:
    """Stage 2: trigger contained in the message, or message is a prefix of the trigger."""
    for trigger, answer in faq.items():
        if trigger in text or trigger.startswith(text):
            return answer
    return None


def find_keyword_answer(text: str, faq: Mapping[str, str] = FAQ_ANSWERS) -> Optional[str]:
    """Stage 3: first trigger containing any sufficiently long word, words in message order."""
    for keyword in text.split():
        if len(keyword) < KEYWORD_MIN_LENGTH:
            continue
        for trigger, answer in faq.items():
            if keyword in trigger:
                return answer
    return None


class MessageClassifier:
    """Turns a chat message into a reply, logging an expense when asked to."""

    def __init__(self, transaction_store, faq: Mapping[str, str] = FAQ_ANSWERS):
        self.transaction_store = transaction_store
        self.faq = faq

    def classify(self, message: Any, user_id: str) -> ChatReply:
        """
        Resolve one chat message.

        Args:
            message: Raw message from the client (may be anything)
            user_id: Authenticated user who sent it

        Returns:
            ChatReply; ``transaction_added`` is True only when a transaction was stored
        """
        if not is_valid_message(message):
            return ChatReply(reply=INVALID_MESSAGE_REPLY, transaction_added=False)

        text = normalize(message)
        logger.info("Chat message received", extra={"user_id": user_id, "length": len(text)})

        action = match_action(text)
        if action is not None:
            return self._handle_action(action, user_id)

        answer = find_faq_answer(text, self.faq)
        if answer is None:
            answer = find_keyword_answer(text, self.faq)
        if answer is not None:
            return ChatReply(reply=answer, transaction_added=False)

        return ChatReply(reply=HELP_REPLY, transaction_added=False)

    def _handle_action(self, action: Tuple[str, str, str], user_id: str) -> ChatReply:
        verb, raw_amount, raw_category = action

        try:
            amount = float(raw_amount)
        except ValueError:
            amount = math.nan
        if not math.isfinite(amount) or amount <= 0:
            return ChatReply(reply=INVALID_AMOUNT_REPLY, transaction_added=False)

        category = raw_category.strip().lower()
        if not category or category in _CONNECTOR_WORDS:
            return ChatReply(reply=MISSING_CATEGORY_REPLY, transaction_added=False)

        shown = f"{settings.currency_symbol}{format_amount(amount)}"
        data = TransactionBase(
            amount=amount,
            type="expense",
            category=category,
            description=f"Added via chat: {shown} to {category}",
            date=datetime.now(timezone.utc),
        )
        try:
            tx = self.transaction_store.add_transaction(user_id, data, group_id=None)
        except sqlite3.Error as e:
            logger.exception("Chat transaction could not be stored", extra={"user_id": user_id})
            return ChatReply(
                reply=f"There was an issue adding the transaction. Please try again. Error: {e}",
                transaction_added=False,
            )

        logger.info(
            "Transaction created via chat",
            extra={"user_id": user_id, "transaction_id": tx.id, "verb": verb, "category": category},
        )
        return ChatReply(
            reply=f"Perfect! Added {shown} to {category}. Your budget has been updated!",
            transaction_added=True,
        )
