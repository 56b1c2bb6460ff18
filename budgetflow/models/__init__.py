from .transaction import (
    Transaction,
    TransactionCreate,
    TransactionUpdate,
    GroupTransactionSummary,
    MemberSpend,
)
from .group import (
    Group,
    Member,
    Invite,
    GroupCreate,
    InviteRequest,
    AcceptInviteRequest,
    GroupCreateResponse,
    InviteResponse,
    GroupMembersResponse,
    RoleInfo,
    MessageResponse,
    MemberChangeResponse,
)
from .budget import Budget, BudgetCreate, BudgetUpdate, BudgetUsage
from .user import (
    User,
    UserProfile,
    BudgetAllocation,
    RegisterRequest,
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    ProfileResponse,
    ProfileCompleteResponse,
    BudgetsUpdate,
    BudgetsResponse,
    IncomeUpdate,
    IncomeResponse,
)
from .chat import ChatRequest, ChatReply

__all__ = [
    "Transaction",
    "TransactionCreate",
    "TransactionUpdate",
    "GroupTransactionSummary",
    "MemberSpend",
    "Group",
    "Member",
    "Invite",
    "GroupCreate",
    "InviteRequest",
    "AcceptInviteRequest",
    "GroupCreateResponse",
    "InviteResponse",
    "GroupMembersResponse",
    "RoleInfo",
    "MessageResponse",
    "MemberChangeResponse",
    "Budget",
    "BudgetCreate",
    "BudgetUpdate",
    "BudgetUsage",
    "User",
    "UserProfile",
    "BudgetAllocation",
    "RegisterRequest",
    "LoginRequest",
    "LoginResponse",
    "ProfileUpdate",
    "ProfileResponse",
    "ProfileCompleteResponse",
    "BudgetsUpdate",
    "BudgetsResponse",
    "IncomeUpdate",
    "IncomeResponse",
    "ChatRequest",
    "ChatReply",
]
