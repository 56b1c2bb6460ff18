from .database import (
    Database,
    UserStore,
    TransactionStore,
    BudgetStore,
    GroupStore,
    configure_db,
    get_db,
)

__all__ = [
    "Database",
    "UserStore",
    "TransactionStore",
    "BudgetStore",
    "GroupStore",
    "configure_db",
    "get_db",
]
