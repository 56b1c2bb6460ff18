"""User, auth and profile models."""
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, EmailStr, Field


Sex = Literal["M", "F", "O"]


class BudgetAllocation(BaseModel):
    """One entry of a user's budget plan."""

    category: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    percent: Optional[float] = Field(None, ge=0, le=100)


class User(BaseModel):
    """Stored user (password hash never leaves the storage layer in responses)."""

    id: str
    name: str
    email: str
    password_hash: str = Field(..., exclude=True)
    age: Optional[int] = None
    sex: Optional[Sex] = None
    salary: float = 0.0
    business_income: float = 0.0
    total_income: float = 0.0
    budgets: List[BudgetAllocation] = Field(default_factory=list)
    avatar: Optional[str] = None
    profile_complete: bool = False
    created_at: datetime


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserProfile(BaseModel):
    """Public view of a user."""

    id: str
    name: str
    email: str
    age: Optional[int] = None
    sex: Optional[Sex] = None
    salary: float = 0.0
    business_income: float = 0.0
    total_income: float = 0.0
    avatar: Optional[str] = None
    profile_complete: bool = False

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(**user.model_dump(exclude={"budgets", "created_at"}))


class LoginResponse(BaseModel):
    token: str
    user: UserProfile


class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=1)
    age: int = Field(..., ge=12, le=120)
    sex: Sex
    salary: float = Field(0.0, ge=0)
    business_income: float = Field(0.0, ge=0)
    total_income: float = Field(..., ge=0)
    email: Optional[EmailStr] = None
    avatar: Optional[str] = None


class ProfileResponse(BaseModel):
    message: str
    user: UserProfile


class ProfileCompleteResponse(BaseModel):
    profile_complete: bool
    profile: UserProfile


class BudgetsUpdate(BaseModel):
    budgets: List[BudgetAllocation]


class BudgetsResponse(BaseModel):
    message: str
    budgets: List[BudgetAllocation]


class IncomeUpdate(BaseModel):
    income: float = Field(..., ge=0, allow_inf_nan=False)


class IncomeResponse(BaseModel):
    message: Optional[str] = None
    income: float
