"""Budget service: category limits with derived usage."""
import logging
from typing import List, Optional

from budgetflow.errors import NotFound
from budgetflow.models.budget import Budget, BudgetCreate, BudgetUpdate, BudgetUsage
from budgetflow.services.membership import GroupService
from budgetflow.storage.database import Database

logger = logging.getLogger(__name__)


class BudgetService:
    """Personal budgets belong to their user; group budgets are read by members, written by admins."""

    def __init__(self, db: Database, groups: GroupService):
        self.db = db
        self.groups = groups

    def list_budgets(self, user_id: str, group_id: Optional[str] = None) -> List[BudgetUsage]:
        """Budgets with ``used`` = expenses in the same category (case-insensitive)."""
        if group_id:
            self.groups.require_member(group_id, user_id)
            budgets = self.db.budgets.get_budgets(group_id=group_id)
            used = self.db.transactions.sum_expenses_by_category(group_id=group_id)
        else:
            budgets = self.db.budgets.get_budgets(user_id=user_id)
            used = self.db.transactions.sum_expenses_by_category(user_id=user_id)

        return [
            BudgetUsage(**b.model_dump(), used=used.get(b.category.lower(), 0.0))
            for b in budgets
        ]

    def create_budget(self, user_id: str, data: BudgetCreate) -> Budget:
        if data.group_id:
            self.groups.require_admin(data.group_id, user_id)
        budget = self.db.budgets.add_budget(user_id, data.category, data.limit, group_id=data.group_id)
        logger.info("Budget created", extra={"budget_id": budget.id, "user_id": user_id, "group_id": budget.group_id})
        return budget

    def _require_writable(self, budget_id: str, user_id: str) -> Budget:
        budget = self.db.budgets.get_budget(budget_id)
        if budget is None:
            raise NotFound("Budget not found.")
        if budget.group_id:
            self.groups.require_admin(budget.group_id, user_id)
        elif budget.user_id != user_id:
            # Someone else's personal budget is reported as missing
            raise NotFound("Budget not found.")
        return budget

    def update_budget(self, budget_id: str, user_id: str, data: BudgetUpdate) -> Budget:
        self._require_writable(budget_id, user_id)
        updated = self.db.budgets.update_budget(budget_id, data.category, data.limit)
        if updated is None:
            raise NotFound("Budget not found.")
        logger.info("Budget updated", extra={"budget_id": budget_id, "user_id": user_id})
        return updated

    def delete_budget(self, budget_id: str, user_id: str) -> None:
        self._require_writable(budget_id, user_id)
        if not self.db.budgets.delete_budget(budget_id):
            raise NotFound("Budget not found.")
        logger.info("Budget deleted", extra={"budget_id": budget_id, "user_id": user_id})
