"""User accounts: registration, login, profile, income and budget plan."""
import logging
import sqlite3
from typing import List
from urllib.parse import quote

from budgetflow.errors import EmailAlreadyRegistered, NotFound, Unauthorized
from budgetflow.models.user import (
    BudgetAllocation,
    LoginResponse,
    ProfileUpdate,
    RegisterRequest,
    User,
    UserProfile,
)
from budgetflow.storage.database import Database
from budgetflow.utils.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


def default_avatar(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote(name)}&background=14b8a6&color=fff"


def is_profile_complete(user: User) -> bool:
    return bool(user.name and user.age and user.sex)


class UserService:
    """Account management on top of the user store."""

    def __init__(self, db: Database):
        self.db = db

    def _get_user(self, user_id: str) -> User:
        user = self.db.users.get_user(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def register(self, data: RegisterRequest) -> User:
        email = str(data.email)
        if self.db.users.get_user_by_email(email) is not None:
            raise EmailAlreadyRegistered("Email already registered.")
        try:
            user = self.db.users.create_user(data.name, email, hash_password(data.password))
        except sqlite3.IntegrityError:
            # Lost a race with another registration for the same email
            raise EmailAlreadyRegistered("Email already registered.")
        logger.info("User registered", extra={"user_id": user.id})
        return user

    def login(self, email: str, password: str) -> LoginResponse:
        user = self.db.users.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login failed")
            raise Unauthorized("Invalid email or password.")
        token = create_access_token(user.id, user.email)
        logger.info("Login successful", extra={"user_id": user.id})
        profile = UserProfile.from_user(user)
        if not profile.avatar:
            profile.avatar = default_avatar(user.name)
        return LoginResponse(token=token, user=profile)

    def get_profile(self, user_id: str) -> UserProfile:
        return UserProfile.from_user(self._get_user(user_id))

    def update_profile(self, user_id: str, data: ProfileUpdate) -> UserProfile:
        current = self._get_user(user_id)
        email = str(data.email) if data.email else current.email
        owner = self.db.users.get_user_by_email(email)
        if owner is not None and owner.id != user_id:
            raise EmailAlreadyRegistered("Email already registered.")
        try:
            user = self.db.users.update_user(
                user_id,
                name=data.name,
                age=data.age,
                sex=data.sex,
                salary=data.salary,
                business_income=data.business_income,
                total_income=data.total_income,
                email=email,
                avatar=data.avatar or default_avatar(data.name),
                profile_complete=True,
            )
        except sqlite3.IntegrityError:
            raise EmailAlreadyRegistered("Email already registered.")
        if user is None:
            raise NotFound("User not found")
        logger.info("Profile updated", extra={"user_id": user_id})
        return UserProfile.from_user(user)

    def profile_complete(self, user_id: str) -> bool:
        return is_profile_complete(self._get_user(user_id))

    def delete_profile(self, user_id: str) -> None:
        if not self.db.users.delete_user(user_id):
            raise NotFound("User not found")
        logger.info("User deleted", extra={"user_id": user_id})

    def get_income(self, user_id: str) -> float:
        return self._get_user(user_id).total_income

    def set_income(self, user_id: str, income: float) -> float:
        user = self.db.users.update_user(user_id, total_income=income)
        if user is None:
            raise NotFound("User not found")
        logger.info("Income updated", extra={"user_id": user_id})
        return user.total_income

    def get_budget_plan(self, user_id: str) -> List[BudgetAllocation]:
        return self._get_user(user_id).budgets

    def set_budget_plan(self, user_id: str, budgets: List[BudgetAllocation]) -> List[BudgetAllocation]:
        user = self.db.users.update_user(user_id, budgets=budgets)
        if user is None:
            raise NotFound("User not found")
        logger.info("Budget plan saved", extra={"user_id": user_id, "entries": len(budgets)})
        return user.budgets
