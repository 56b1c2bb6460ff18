from .classifier import MessageClassifier
from .membership import GroupService
from .transactions import TransactionService
from .budgets import BudgetService
from .users import UserService

__all__ = [
    "MessageClassifier",
    "GroupService",
    "TransactionService",
    "BudgetService",
    "UserService",
]
