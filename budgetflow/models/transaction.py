"""Transaction data models."""
from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


TransactionType = Literal["income", "expense"]


class TransactionBase(BaseModel):
    """Fields a client supplies when creating or updating a transaction."""

    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Positive amount")
    type: TransactionType = Field(..., description="'income' or 'expense'")
    category: str = Field(..., min_length=1, description="Free-text category label")
    description: str = Field(default="", description="Optional note")
    date: datetime = Field(..., description="When the transaction happened")

    @field_validator("category")
    @classmethod
    def category_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("category must not be blank")
        return v.strip()


def group_scope(group_id):
    """Clients send "", "null" or null for personal (non-group) records."""
    if group_id in ("", "null"):
        return None
    return group_id


class TransactionCreate(TransactionBase):
    """Transaction creation payload. ``group_id`` set means a group transaction."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "amount": 45.99,
                "type": "expense",
                "category": "groceries",
                "description": "Weekly shop",
                "date": "2024-01-15T10:30:00Z",
                "group_id": None,
            }
        }
    )

    group_id: Optional[str] = Field(None, description="Group the transaction belongs to")

    @field_validator("group_id", mode="before")
    @classmethod
    def empty_group_is_personal(cls, v):
        return group_scope(v)


class TransactionUpdate(TransactionBase):
    """Full replacement of a transaction's editable fields."""


class Transaction(TransactionBase):
    """Stored transaction."""

    id: str
    user_id: str = Field(..., description="Owner")
    group_id: Optional[str] = None


class MemberSpend(BaseModel):
    user_id: str
    name: Optional[str] = None
    paid: float = 0.0


class GroupTransactionSummary(BaseModel):
    """Totals for a group's transactions."""

    group_id: str
    total_income: float
    total_expense: float
    transaction_count: int
    member_summary: Dict[str, MemberSpend] = Field(default_factory=dict, description="Keyed by user id")
    transactions: List[Transaction] = Field(default_factory=list)
