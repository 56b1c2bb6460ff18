"""Tests for request model validation."""
import pytest
from pydantic import ValidationError

from budgetflow.models.budget import BudgetCreate
from budgetflow.models.transaction import TransactionCreate, group_scope


@pytest.mark.parametrize("value, expected", [("", None), ("null", None), (None, None), ("g1", "g1")])
def test_group_scope(value, expected):
    assert group_scope(value) == expected


def test_create_models_treat_null_group_as_personal():
    tx = TransactionCreate(amount=5, type="expense", category="food", date="2024-01-15T10:30:00Z", group_id="null")
    budget = BudgetCreate(category="food", limit=50, group_id="")

    assert tx.group_id is None
    assert budget.group_id is None


def test_transaction_schema_example():
    example = TransactionCreate.model_json_schema()["example"]
    assert example["category"] == "groceries"
    assert example["group_id"] is None


def test_blank_category_rejected():
    with pytest.raises(ValidationError):
        BudgetCreate(category="   ", limit=10)
