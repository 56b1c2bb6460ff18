"""API endpoint tests."""


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "BudgetFlow API"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

def test_register_and_login(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Alice", "email": "alice@budgetmail.com", "password": "secret123"},
    )
    assert response.status_code == 201
    assert response.json()["success"] is True

    response = client.post("/api/auth/login", json={"email": "alice@budgetmail.com", "password": "secret123"})
    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["user"]["email"] == "alice@budgetmail.com"
    assert data["user"]["avatar"].startswith("https://ui-avatars.com/api/?name=Alice")
    assert "password_hash" not in data["user"]


def test_duplicate_registration(client, signup):
    signup("Alice", "alice@budgetmail.com")

    response = client.post(
        "/api/auth/register",
        json={"name": "Alice Again", "email": "alice@budgetmail.com", "password": "secret123"},
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EmailAlreadyRegistered"


def test_bad_login(client, signup):
    signup("Alice", "alice@budgetmail.com")

    response = client.post("/api/auth/login", json={"email": "alice@budgetmail.com", "password": "wrong-pass"})
    assert response.status_code == 401
    assert response.json()["error"]["kind"] == "Unauthorized"


def test_register_validation(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "A", "email": "not-an-email", "password": "123"},
    )
    assert response.status_code == 422


def test_missing_token(client):
    response = client.get("/api/transactions")
    assert response.status_code == 401
    assert response.json()["error"] == {
        "kind": "Unauthorized",
        "code": "Unauthorized",
        "message": "Access denied. No token provided.",
    }


def test_invalid_token(client):
    response = client.get("/api/transactions", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid token."


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

def test_chat_logs_expense(client, signup):
    _, headers = signup("Alice", "alice@budgetmail.com")

    response = client.post("/api/chat", json={"message": "add 250 to groceries"}, headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["transactionAdded"] is True
    assert "groceries" in data["reply"]

    transactions = client.get("/api/transactions", headers=headers).json()
    assert len(transactions) == 1
    assert transactions[0]["amount"] == 250
    assert transactions[0]["category"] == "groceries"
    assert transactions[0]["type"] == "expense"
    assert transactions[0]["group_id"] is None


def test_chat_answers_faq(client, signup):
    _, headers = signup("Alice", "alice@budgetmail.com")

    response = client.post("/api/chat", json={"message": "What is the 50/30/20 rule?"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["transactionAdded"] is False
    assert client.get("/api/transactions", headers=headers).json() == []


def test_chat_rejects_blank_message(client, signup):
    _, headers = signup("Alice", "alice@budgetmail.com")

    for body in ({"message": "   "}, {"message": 5}, {}):
        response = client.post("/api/chat", json=body, headers=headers)
        assert response.status_code == 400
        assert response.json() == {"reply": "Please provide a valid message.", "transactionAdded": False}


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------

def test_group_flow(client, signup, mailer):
    alice_id, alice = signup("Alice", "alice@budgetmail.com")
    bob_id, bob = signup("Bob", "bob@budgetmail.com")

    response = client.post(
        "/api/groups",
        json={"name": "Trip", "members": ["bob@budgetmail.com", "nobody"]},
        headers=alice,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["invites_sent"] == 1
    group_id = data["group"]["id"]
    token = data["group"]["invites"][0]["invite_token"]
    assert len(mailer.outbox) == 1
    assert mailer.outbox[0][2].endswith(f"/accept-invite/{group_id}/{token}")

    # Bob cannot see the group before joining
    assert client.get(f"/api/groups/{group_id}", headers=bob).status_code == 403

    response = client.post(f"/api/groups/{group_id}/accept-invite", json={"token": token}, headers=bob)
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert {m["user_id"] for m in response.json()["group"]["members"]} == {alice_id, bob_id}

    response = client.post(f"/api/groups/{group_id}/accept-invite", json={"token": token}, headers=bob)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "AlreadyMember"

    role = client.get(f"/api/groups/{group_id}/my-role", headers=bob).json()
    assert role == {"role": "member", "isAdmin": False, "isCreator": False, "isMember": True}

    members = client.get(f"/api/groups/{group_id}/members", headers=bob).json()
    assert members["total_members"] == 2
    assert members["group_creator_id"] == alice_id

    # plain members see no invite tokens
    assert client.get(f"/api/groups/{group_id}", headers=bob).json()["invites"] == []

    response = client.post(f"/api/groups/{group_id}/members/{alice_id}/demote", headers=bob)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CannotDemoteCreator"

    response = client.post(f"/api/groups/{group_id}/members/{bob_id}/promote", headers=bob)
    assert response.status_code == 403

    response = client.post(f"/api/groups/{group_id}/members/{bob_id}/promote", headers=alice)
    assert response.status_code == 200
    assert response.json()["member"]["role"] == "admin"

    response = client.delete(f"/api/groups/{group_id}", headers=bob)
    assert response.status_code == 403

    client.post(
        "/api/transactions",
        json={"amount": 60, "type": "expense", "category": "fuel", "date": "2024-06-01T08:00:00Z", "group_id": group_id},
        headers=bob,
    )
    response = client.delete(f"/api/groups/{group_id}", headers=alice)
    assert response.status_code == 200

    response = client.get(f"/api/transactions?group_id={group_id}", headers=bob)
    assert response.status_code == 404
    assert client.get("/api/groups", headers=bob).json() == []


def test_group_requires_name(client, signup):
    _, alice = signup("Alice", "alice@budgetmail.com")

    response = client.post("/api/groups", json={"name": "  "}, headers=alice)
    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "Validation"


def test_invite_more_members(client, signup, mailer):
    _, alice = signup("Alice", "alice@budgetmail.com")
    group_id = client.post("/api/groups", json={"name": "Flat"}, headers=alice).json()["group"]["id"]
    assert mailer.outbox == []

    response = client.post(
        f"/api/groups/{group_id}/invites",
        json={"emails": ["carol@budgetmail.com", "dan@budgetmail.com"]},
        headers=alice,
    )
    assert response.status_code == 201
    assert response.json()["invites_sent"] == 2
    assert [entry[0] for entry in mailer.outbox] == ["carol@budgetmail.com", "dan@budgetmail.com"]


def test_leave_and_remove(client, signup):
    alice_id, alice = signup("Alice", "alice@budgetmail.com")
    bob_id, bob = signup("Bob", "bob@budgetmail.com")
    group = client.post(
        "/api/groups", json={"name": "Flat", "members": ["bob@budgetmail.com"]}, headers=alice
    ).json()["group"]
    token = group["invites"][0]["invite_token"]
    client.post(f"/api/groups/{group['id']}/accept-invite", json={"token": token}, headers=bob)

    response = client.post(f"/api/groups/{group['id']}/leave", headers=alice)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CreatorCannotLeave"

    response = client.delete(f"/api/groups/{group['id']}/members/{alice_id}", headers=alice)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CannotRemoveSelf"

    response = client.delete(f"/api/groups/{group['id']}/members/{bob_id}", headers=alice)
    assert response.status_code == 200

    response = client.post(f"/api/groups/{group['id']}/leave", headers=bob)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "NotAMember"


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

def test_transaction_crud(client, signup):
    _, alice = signup("Alice", "alice@budgetmail.com")
    _, bob = signup("Bob", "bob@budgetmail.com")

    response = client.post(
        "/api/transactions",
        json={"amount": 45.5, "type": "expense", "category": " food ", "date": "2024-01-15T10:30:00Z", "group_id": ""},
        headers=alice,
    )
    assert response.status_code == 201
    tx = response.json()
    assert tx["category"] == "food"
    assert tx["group_id"] is None

    response = client.put(
        f"/api/transactions/{tx['id']}",
        json={"amount": 50, "type": "expense", "category": "food", "date": "2024-01-15T10:30:00Z"},
        headers=alice,
    )
    assert response.status_code == 200
    assert response.json()["amount"] == 50

    assert client.delete(f"/api/transactions/{tx['id']}", headers=bob).status_code == 403

    response = client.delete(f"/api/transactions/{tx['id']}", headers=alice)
    assert response.status_code == 200
    assert response.json()["deleted_id"] == tx["id"]
    assert client.delete(f"/api/transactions/{tx['id']}", headers=alice).status_code == 404


def test_transaction_validation(client, signup):
    _, alice = signup("Alice", "alice@budgetmail.com")

    response = client.post(
        "/api/transactions",
        json={"amount": -5, "type": "expense", "category": "food", "date": "2024-01-15T10:30:00Z"},
        headers=alice,
    )
    assert response.status_code == 422

    response = client.post(
        "/api/transactions",
        json={"amount": 5, "type": "refund", "category": "food", "date": "2024-01-15T10:30:00Z"},
        headers=alice,
    )
    assert response.status_code == 422


def test_group_transactions_need_membership(client, signup):
    _, alice = signup("Alice", "alice@budgetmail.com")
    _, bob = signup("Bob", "bob@budgetmail.com")
    group_id = client.post("/api/groups", json={"name": "Flat"}, headers=alice).json()["group"]["id"]

    response = client.post(
        "/api/transactions",
        json={"amount": 5, "type": "expense", "category": "food", "date": "2024-01-15T10:30:00Z", "group_id": group_id},
        headers=bob,
    )
    assert response.status_code == 403
    assert client.get(f"/api/transactions?group_id={group_id}", headers=bob).status_code == 403


def test_group_summary(client, signup):
    alice_id, alice = signup("Alice", "alice@budgetmail.com")
    bob_id, bob = signup("Bob", "bob@budgetmail.com")
    group = client.post(
        "/api/groups", json={"name": "Trip", "members": ["bob@budgetmail.com"]}, headers=alice
    ).json()["group"]
    token = group["invites"][0]["invite_token"]
    client.post(f"/api/groups/{group['id']}/accept-invite", json={"token": token}, headers=bob)

    for headers, amount, type_ in ((alice, 100, "expense"), (bob, 40, "expense"), (bob, 500, "income")):
        client.post(
            "/api/transactions",
            json={"amount": amount, "type": type_, "category": "trip", "date": "2024-02-01T10:00:00Z", "group_id": group["id"]},
            headers=headers,
        )

    summary = client.get(f"/api/transactions/group/{group['id']}/summary", headers=bob).json()
    assert summary["total_expense"] == 140
    assert summary["total_income"] == 500
    assert summary["transaction_count"] == 3
    assert summary["member_summary"][alice_id]["paid"] == 100
    assert summary["member_summary"][bob_id] == {"user_id": bob_id, "name": "Bob", "paid": 40}


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------

def test_budget_usage(client, signup):
    _, alice = signup("Alice", "alice@budgetmail.com")
    _, bob = signup("Bob", "bob@budgetmail.com")

    response = client.post("/api/budgets", json={"category": "Groceries", "limit": 300}, headers=alice)
    assert response.status_code == 201
    budget_id = response.json()["id"]
    client.post("/api/chat", json={"message": "add 120 to groceries"}, headers=alice)

    budgets = client.get("/api/budgets", headers=alice).json()
    assert budgets == [
        {"id": budget_id, "user_id": budgets[0]["user_id"], "group_id": None,
         "category": "Groceries", "limit": 300, "used": 120},
    ]

    response = client.put(f"/api/budgets/{budget_id}", json={"category": "groceries", "limit": 350}, headers=alice)
    assert response.json()["limit"] == 350

    # someone else's budget looks missing
    assert client.delete(f"/api/budgets/{budget_id}", headers=bob).status_code == 404
    assert client.delete(f"/api/budgets/{budget_id}", headers=alice).status_code == 200
    assert client.get("/api/budgets", headers=alice).json() == []


def test_group_budgets_are_admin_only(client, signup):
    _, alice = signup("Alice", "alice@budgetmail.com")
    _, bob = signup("Bob", "bob@budgetmail.com")
    group = client.post(
        "/api/groups", json={"name": "Trip", "members": ["bob@budgetmail.com"]}, headers=alice
    ).json()["group"]
    token = group["invites"][0]["invite_token"]
    client.post(f"/api/groups/{group['id']}/accept-invite", json={"token": token}, headers=bob)

    response = client.post("/api/budgets", json={"category": "fuel", "limit": 80, "group_id": group["id"]}, headers=bob)
    assert response.status_code == 403

    response = client.post("/api/budgets", json={"category": "fuel", "limit": 80, "group_id": group["id"]}, headers=alice)
    assert response.status_code == 201

    budgets = client.get(f"/api/budgets?group_id={group['id']}", headers=bob).json()
    assert [b["category"] for b in budgets] == ["fuel"]


# ---------------------------------------------------------------------------
# User profile
# ---------------------------------------------------------------------------

def test_profile_lifecycle(client, signup):
    _, alice = signup("Alice", "alice@budgetmail.com")

    response = client.get("/api/user/profile-complete", headers=alice)
    assert response.json()["profile_complete"] is False

    response = client.post(
        "/api/user/profile",
        json={"name": "Alice", "age": 30, "sex": "F", "salary": 3000, "business_income": 500, "total_income": 3500},
        headers=alice,
    )
    assert response.status_code == 200
    assert response.json()["user"]["profile_complete"] is True
    assert client.get("/api/user/profile-complete", headers=alice).json()["profile_complete"] is True

    response = client.put("/api/user/income", json={"income": 4200}, headers=alice)
    assert response.json()["income"] == 4200
    assert client.get("/api/user/income", headers=alice).json()["income"] == 4200

    plan = [{"category": "rent", "amount": 1200, "percent": 30}]
    response = client.post("/api/user/budgets", json={"budgets": plan}, headers=alice)
    assert response.status_code == 200
    assert client.get("/api/user/budgets", headers=alice).json() == plan

    assert client.delete("/api/user/profile", headers=alice).status_code == 200
    assert client.get("/api/user/profile", headers=alice).status_code == 404


def test_profile_age_bounds(client, signup):
    _, alice = signup("Alice", "alice@budgetmail.com")

    response = client.post(
        "/api/user/profile",
        json={"name": "Alice", "age": 5, "sex": "F", "total_income": 0},
        headers=alice,
    )
    assert response.status_code == 422


def test_profile_email_taken_by_another_account(client, signup):
    signup("Alice", "alice@budgetmail.com")
    _, bob = signup("Bob", "bob@budgetmail.com")

    response = client.post(
        "/api/user/profile",
        json={"name": "Bob", "age": 31, "sex": "M", "total_income": 100, "email": "alice@budgetmail.com"},
        headers=bob,
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EmailAlreadyRegistered"
    assert client.get("/api/user/profile", headers=bob).json()["email"] == "bob@budgetmail.com"

    # re-submitting your own address is fine
    response = client.post(
        "/api/user/profile",
        json={"name": "Bob", "age": 31, "sex": "M", "total_income": 100, "email": "bob@budgetmail.com"},
        headers=bob,
    )
    assert response.status_code == 200


def test_password_endpoints_run_off_the_event_loop():
    """bcrypt work happens in sync endpoints, which FastAPI runs in its threadpool."""
    import inspect

    from budgetflow.main import login, register

    assert not inspect.iscoroutinefunction(register)
    assert not inspect.iscoroutinefunction(login)


def test_null_group_id_means_personal(client, signup):
    _, alice = signup("Alice", "alice@budgetmail.com")
    client.post("/api/budgets", json={"category": "rent", "limit": 900, "group_id": "null"}, headers=alice)
    client.post("/api/chat", json={"message": "paid 300 for rent"}, headers=alice)

    for query in ("", "null"):
        budgets = client.get(f"/api/budgets?group_id={query}", headers=alice)
        assert budgets.status_code == 200
        assert [(b["category"], b["used"]) for b in budgets.json()] == [("rent", 300)]

        transactions = client.get(f"/api/transactions?group_id={query}", headers=alice)
        assert transactions.status_code == 200
        assert len(transactions.json()) == 1
