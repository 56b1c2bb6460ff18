"""Transaction service: personal and group transactions."""
import logging
from typing import List, Optional

from budgetflow.errors import Forbidden, NotFound
from budgetflow.models.transaction import (
    GroupTransactionSummary,
    MemberSpend,
    Transaction,
    TransactionCreate,
    TransactionUpdate,
)
from budgetflow.services.membership import GroupService
from budgetflow.storage.database import Database

logger = logging.getLogger(__name__)


class TransactionService:
    """CRUD over transactions with ownership and group-membership checks."""

    def __init__(self, db: Database, groups: GroupService):
        self.db = db
        self.groups = groups

    def list_transactions(self, user_id: str, group_id: Optional[str] = None) -> List[Transaction]:
        """Personal transactions, or every transaction of a group the user belongs to."""
        if group_id:
            self.groups.require_member(group_id, user_id)
            return self.db.transactions.get_transactions(group_id=group_id)
        return self.db.transactions.get_transactions(user_id=user_id)

    def create_transaction(self, user_id: str, data: TransactionCreate) -> Transaction:
        if data.group_id:
            self.groups.require_member(data.group_id, user_id)
        tx = self.db.transactions.add_transaction(user_id, data, group_id=data.group_id)
        logger.info(
            "Transaction created",
            extra={"transaction_id": tx.id, "user_id": user_id, "group_id": tx.group_id},
        )
        return tx

    def _require_editable(self, tx_id: str, user_id: str) -> Transaction:
        """Owner may always edit; group transactions also by the group's admins."""
        tx = self.db.transactions.get_transaction(tx_id)
        if tx is None:
            raise NotFound("Transaction not found")
        if tx.user_id == user_id:
            return tx
        if tx.group_id:
            group = self.db.groups.get_group(tx.group_id)
            if group is not None and group.is_admin(user_id):
                return tx
        raise Forbidden("Unauthorized")

    def update_transaction(self, tx_id: str, user_id: str, data: TransactionUpdate) -> Transaction:
        self._require_editable(tx_id, user_id)
        updated = self.db.transactions.update_transaction(tx_id, data)
        if updated is None:
            raise NotFound("Transaction not found")
        logger.info("Transaction updated", extra={"transaction_id": tx_id, "user_id": user_id})
        return updated

    def delete_transaction(self, tx_id: str, user_id: str) -> None:
        self._require_editable(tx_id, user_id)
        if not self.db.transactions.delete_transaction(tx_id):
            raise NotFound("Transaction not found")
        logger.info("Transaction deleted", extra={"transaction_id": tx_id, "user_id": user_id})

    def group_summary(self, group_id: str, user_id: str) -> GroupTransactionSummary:
        """Income/expense totals and what each member paid."""
        group = self.groups.require_member(group_id, user_id)
        transactions = self.db.transactions.get_transactions(group_id=group_id)

        names = {m.user_id: m.name for m in group.members}
        total_income = 0.0
        total_expense = 0.0
        member_summary = {}
        for tx in transactions:
            if tx.type == "income":
                total_income += tx.amount
                continue
            total_expense += tx.amount
            spend = member_summary.get(tx.user_id)
            if spend is None:
                spend = MemberSpend(user_id=tx.user_id, name=names.get(tx.user_id))
                member_summary[tx.user_id] = spend
            spend.paid += tx.amount

        return GroupTransactionSummary(
            group_id=group_id,
            total_income=total_income,
            total_expense=total_expense,
            transaction_count=len(transactions),
            member_summary=member_summary,
            transactions=transactions,
        )
