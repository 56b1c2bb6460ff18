"""BudgetFlow budgeting API."""
