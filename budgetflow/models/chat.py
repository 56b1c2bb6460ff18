"""Chat assistant models."""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Inbound chat message. Left untyped so non-strings get a chat reply, not a 422."""

    message: Optional[Any] = Field(None, description="Free-text message")


class ChatReply(BaseModel):
    """Assistant reply plus whether a transaction was logged."""

    model_config = ConfigDict(populate_by_name=True)

    reply: str
    transaction_added: bool = Field(False, serialization_alias="transactionAdded")
