"""Budget models."""
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from budgetflow.models.transaction import group_scope


class BudgetFields(BaseModel):
    """Category limit payload."""

    category: str = Field(..., min_length=1, description="Category the limit applies to")
    limit: float = Field(..., ge=0, allow_inf_nan=False, description="Spending limit")

    @field_validator("category")
    @classmethod
    def category_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("category must not be blank")
        return v.strip()


class BudgetCreate(BudgetFields):
    group_id: Optional[str] = Field(None, description="Group budget when set")

    @field_validator("group_id", mode="before")
    @classmethod
    def empty_group_is_personal(cls, v):
        return group_scope(v)


class BudgetUpdate(BudgetFields):
    pass


class Budget(BaseModel):
    """Stored budget."""

    id: str
    user_id: str
    group_id: Optional[str] = None
    category: str
    limit: float


class BudgetUsage(Budget):
    """Budget with the amount spent so far in its category."""

    used: float = Field(0.0, description="Sum of matching expenses (case-insensitive category)")
