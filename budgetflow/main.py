"""FastAPI main application."""
import logging
import sqlite3
from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from budgetflow.adapters import MailAdapter, get_mail_adapter
from budgetflow.config import settings
from budgetflow.errors import BudgetFlowError, StorageFailure
from budgetflow.models import (
    AcceptInviteRequest,
    Budget,
    BudgetCreate,
    BudgetUpdate,
    BudgetUsage,
    BudgetAllocation,
    BudgetsResponse,
    BudgetsUpdate,
    ChatReply,
    ChatRequest,
    Group,
    GroupCreate,
    GroupCreateResponse,
    GroupMembersResponse,
    GroupTransactionSummary,
    IncomeResponse,
    IncomeUpdate,
    InviteRequest,
    InviteResponse,
    LoginRequest,
    LoginResponse,
    MemberChangeResponse,
    MessageResponse,
    ProfileCompleteResponse,
    ProfileResponse,
    ProfileUpdate,
    RegisterRequest,
    RoleInfo,
    Transaction,
    TransactionCreate,
    TransactionUpdate,
    UserProfile,
)
from budgetflow.models.transaction import group_scope
from budgetflow.services import (
    BudgetService,
    GroupService,
    MessageClassifier,
    TransactionService,
    UserService,
)
from budgetflow.services.classifier import is_valid_message
from budgetflow.storage.database import Database, get_db
from budgetflow.utils.log_config import configure_logging
from budgetflow.utils.security import get_current_user_id

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

mail_adapter = get_mail_adapter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_database() -> Database:
    return get_db()


def get_mailer() -> MailAdapter:
    return mail_adapter


def get_group_service(
    db: Database = Depends(get_database),
    mailer: MailAdapter = Depends(get_mailer),
) -> GroupService:
    return GroupService(db, mailer)


def get_transaction_service(
    db: Database = Depends(get_database),
    groups: GroupService = Depends(get_group_service),
) -> TransactionService:
    return TransactionService(db, groups)


def get_budget_service(
    db: Database = Depends(get_database),
    groups: GroupService = Depends(get_group_service),
) -> BudgetService:
    return BudgetService(db, groups)


def get_user_service(db: Database = Depends(get_database)) -> UserService:
    return UserService(db)


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

@app.exception_handler(BudgetFlowError)
async def domain_error_handler(request: Request, exc: BudgetFlowError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(sqlite3.Error)
async def storage_error_handler(request: Request, exc: sqlite3.Error):
    logger.exception("Storage failure", extra={"path": request.url.path})
    error = StorageFailure("Something went wrong while accessing storage. Please try again.")
    return JSONResponse(status_code=error.status_code, content={"error": error.to_dict()})


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "BudgetFlow API", "version": "1.0.0"}


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@app.post("/api/auth/register", status_code=201, response_model=MessageResponse)
def register(request: RegisterRequest, users: UserService = Depends(get_user_service)):
    users.register(request)
    return MessageResponse(message="User registered successfully. Please login.")


@app.post("/api/auth/login", response_model=LoginResponse)
def login(request: LoginRequest, users: UserService = Depends(get_user_service)):
    return users.login(str(request.email), request.password)


# ---------------------------------------------------------------------------
# User profile, income and budget plan
# ---------------------------------------------------------------------------

@app.get("/api/user/profile", response_model=UserProfile)
async def get_profile(
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    return users.get_profile(user_id)


@app.post("/api/user/profile", response_model=ProfileResponse)
async def update_profile(
    request: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    profile = users.update_profile(user_id, request)
    return ProfileResponse(message="Profile updated successfully", user=profile)


@app.delete("/api/user/profile", response_model=MessageResponse)
async def delete_profile(
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    users.delete_profile(user_id)
    return MessageResponse(message="User profile deleted successfully")


@app.get("/api/user/profile-complete", response_model=ProfileCompleteResponse)
async def profile_complete(
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    return ProfileCompleteResponse(
        profile_complete=users.profile_complete(user_id),
        profile=users.get_profile(user_id),
    )


@app.get("/api/user/income", response_model=IncomeResponse)
async def get_income(
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    return IncomeResponse(income=users.get_income(user_id))


@app.put("/api/user/income", response_model=IncomeResponse)
async def set_income(
    request: IncomeUpdate,
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    income = users.set_income(user_id, request.income)
    return IncomeResponse(message="Income updated successfully", income=income)


@app.get("/api/user/budgets", response_model=List[BudgetAllocation])
async def get_budget_plan(
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    return users.get_budget_plan(user_id)


@app.post("/api/user/budgets", response_model=BudgetsResponse)
async def save_budget_plan(
    request: BudgetsUpdate,
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    budgets = users.set_budget_plan(user_id, request.budgets)
    return BudgetsResponse(message="Budgets saved successfully", budgets=budgets)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

@app.get("/api/transactions", response_model=List[Transaction])
async def list_transactions(
    group_id: Optional[str] = Query(None, description="Group transactions when set"),
    user_id: str = Depends(get_current_user_id),
    transactions: TransactionService = Depends(get_transaction_service),
):
    """Personal transactions, or a group's transactions when ``group_id`` is given."""
    return transactions.list_transactions(user_id, group_scope(group_id))


@app.post("/api/transactions", status_code=201, response_model=Transaction)
async def create_transaction(
    request: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    transactions: TransactionService = Depends(get_transaction_service),
):
    return transactions.create_transaction(user_id, request)


@app.put("/api/transactions/{tx_id}", response_model=Transaction)
async def update_transaction(
    tx_id: str,
    request: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
    transactions: TransactionService = Depends(get_transaction_service),
):
    return transactions.update_transaction(tx_id, user_id, request)


@app.delete("/api/transactions/{tx_id}")
async def delete_transaction(
    tx_id: str,
    user_id: str = Depends(get_current_user_id),
    transactions: TransactionService = Depends(get_transaction_service),
):
    transactions.delete_transaction(tx_id, user_id)
    return {"message": "Transaction deleted", "deleted_id": tx_id}


@app.get("/api/transactions/group/{group_id}/summary", response_model=GroupTransactionSummary)
async def group_transaction_summary(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    transactions: TransactionService = Depends(get_transaction_service),
):
    return transactions.group_summary(group_id, user_id)


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------

@app.get("/api/budgets", response_model=List[BudgetUsage])
async def list_budgets(
    group_id: Optional[str] = Query(None, description="Group budgets when set"),
    user_id: str = Depends(get_current_user_id),
    budgets: BudgetService = Depends(get_budget_service),
):
    return budgets.list_budgets(user_id, group_scope(group_id))


@app.post("/api/budgets", status_code=201, response_model=Budget)
async def create_budget(
    request: BudgetCreate,
    user_id: str = Depends(get_current_user_id),
    budgets: BudgetService = Depends(get_budget_service),
):
    return budgets.create_budget(user_id, request)


@app.put("/api/budgets/{budget_id}", response_model=Budget)
async def update_budget(
    budget_id: str,
    request: BudgetUpdate,
    user_id: str = Depends(get_current_user_id),
    budgets: BudgetService = Depends(get_budget_service),
):
    return budgets.update_budget(budget_id, user_id, request)


@app.delete("/api/budgets/{budget_id}", response_model=MessageResponse)
async def delete_budget(
    budget_id: str,
    user_id: str = Depends(get_current_user_id),
    budgets: BudgetService = Depends(get_budget_service),
):
    budgets.delete_budget(budget_id, user_id)
    return MessageResponse(message="Budget deleted.")


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------

@app.post("/api/groups", status_code=201, response_model=GroupCreateResponse)
async def create_group(
    request: GroupCreate,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    """
    Create a group and invite the given emails.

    Invite emails go out after the response is sent; a delivery failure
    leaves the invite in place.
    """
    group, invites = groups.create_group(request.name, user_id, request.members)
    if invites:
        background_tasks.add_task(groups.dispatch_invites, group.id, group.name, invites)
    return GroupCreateResponse(
        group=group,
        invites_sent=len(invites),
        message=f'Group "{group.name}" created! Invites sent to {len(invites)} members.',
    )


@app.get("/api/groups", response_model=List[Group])
async def list_groups(
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    return groups.list_groups(user_id)


@app.get("/api/groups/{group_id}", response_model=Group)
async def get_group(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    return groups.get_group(group_id, user_id)


@app.delete("/api/groups/{group_id}", response_model=MessageResponse)
async def delete_group(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    groups.delete_group(group_id, user_id)
    return MessageResponse(message="Group and all associated data deleted successfully")


@app.post("/api/groups/{group_id}/invites", status_code=201, response_model=InviteResponse)
async def invite_members(
    group_id: str,
    request: InviteRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    group, invites = groups.invite_members(group_id, request.emails, user_id)
    if invites:
        background_tasks.add_task(groups.dispatch_invites, group.id, group.name, invites)
    return InviteResponse(
        invites=invites,
        invites_sent=len(invites),
        message=f"Invites sent to {len(invites)} members.",
    )


@app.post("/api/groups/{group_id}/accept-invite")
async def accept_invite(
    group_id: str,
    request: AcceptInviteRequest,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    group = groups.accept_invite(group_id, request.token, user_id)
    return {
        "success": True,
        "group": {"id": group.id, "name": group.name, "members": [m.model_dump() for m in group.members]},
        "message": f"Successfully joined {group.name}!",
    }


@app.get("/api/groups/{group_id}/members", response_model=GroupMembersResponse)
async def list_members(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    return groups.list_members(group_id, user_id)


@app.delete("/api/groups/{group_id}/members/{member_id}", response_model=MessageResponse)
async def remove_member(
    group_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    groups.remove_member(group_id, member_id, user_id)
    return MessageResponse(message="Member removed from group")


@app.post("/api/groups/{group_id}/members/{member_id}/promote", response_model=MemberChangeResponse)
async def promote_member(
    group_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    member = groups.promote_member(group_id, member_id, user_id)
    return MemberChangeResponse(message="Member promoted to admin", member=member)


@app.post("/api/groups/{group_id}/members/{member_id}/demote", response_model=MemberChangeResponse)
async def demote_member(
    group_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    member = groups.demote_member(group_id, member_id, user_id)
    return MemberChangeResponse(message="Admin demoted to member", member=member)


@app.get("/api/groups/{group_id}/my-role", response_model=RoleInfo)
async def my_role(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    return groups.get_role(group_id, user_id)


@app.post("/api/groups/{group_id}/leave", response_model=MessageResponse)
async def leave_group(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    groups: GroupService = Depends(get_group_service),
):
    groups.leave_group(group_id, user_id)
    return MessageResponse(message="Successfully left the group")


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

@app.post("/api/chat", response_model=ChatReply)
async def chat(
    request: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    db: Database = Depends(get_database),
):
    """Rule-based assistant: logs "add 250 to groceries"-style expenses or answers FAQs."""
    reply = MessageClassifier(db.transactions).classify(request.message, user_id)
    if not is_valid_message(request.message):
        return JSONResponse(status_code=400, content=reply.model_dump(by_alias=True))
    return reply


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
