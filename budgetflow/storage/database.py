"""Database storage layer using SQLite."""
import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

from budgetflow.config import settings
from budgetflow.models.budget import Budget
from budgetflow.models.group import Group, Invite, Member
from budgetflow.models.transaction import Transaction, TransactionBase
from budgetflow.models.user import BudgetAllocation, User

# Outcomes of GroupStore.redeem_invite
REDEEMED = "redeemed"
INVITE_USED = "invite_used"
ALREADY_MEMBER = "already_member"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(dt: datetime) -> str:
    """Normalise to UTC so stored strings sort chronologically."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _from_iso(s: str) -> datetime:
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class SQLiteStore:
    """Connection handling shared by every store."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        """Create this store's tables."""
        raise NotImplementedError

    @contextmanager
    def _get_conn(self):
        """Get database connection."""
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self):
        """Write transaction: all statements commit together or not at all."""
        with self._get_conn() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()


class UserStore(SQLiteStore):
    """Storage for users."""

    _UPDATABLE = {
        "name", "email", "age", "sex", "salary", "business_income",
        "total_income", "budgets", "avatar", "profile_complete",
    }

    def _init_db(self):
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    password_hash TEXT NOT NULL,
                    age INTEGER,
                    sex TEXT,
                    salary REAL NOT NULL DEFAULT 0,
                    business_income REAL NOT NULL DEFAULT 0,
                    total_income REAL NOT NULL DEFAULT 0,
                    budgets TEXT NOT NULL DEFAULT '[]',
                    avatar TEXT,
                    profile_complete INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            age=row["age"],
            sex=row["sex"],
            salary=row["salary"],
            business_income=row["business_income"],
            total_income=row["total_income"],
            budgets=[BudgetAllocation(**b) for b in json.loads(row["budgets"])],
            avatar=row["avatar"],
            profile_complete=bool(row["profile_complete"]),
            created_at=_from_iso(row["created_at"]),
        )

    def create_user(self, name: str, email: str, password_hash: str) -> User:
        """
        Insert a new user.

        Raises:
            sqlite3.IntegrityError: If the email is already registered
        """
        user_id = str(uuid.uuid4())
        with self._transaction() as conn:
            conn.execute("""
                INSERT INTO users (id, name, email, password_hash, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (user_id, name, email, password_hash, _to_iso(_utcnow())))
        return self.get_user(user_id)

    def get_user(self, user_id: str) -> Optional[User]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            return self._row_to_user(row) if row else None

    def update_user(self, user_id: str, **fields) -> Optional[User]:
        """Partial update. Returns None when the user does not exist."""
        unknown = set(fields) - self._UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update user fields: {sorted(unknown)}")
        if "budgets" in fields:
            fields["budgets"] = json.dumps([
                b.model_dump() if isinstance(b, BudgetAllocation) else b for b in fields["budgets"]
            ])
        if "profile_complete" in fields:
            fields["profile_complete"] = int(bool(fields["profile_complete"]))

        if fields:
            assignments = ", ".join(f"{k} = ?" for k in fields)
            with self._transaction() as conn:
                cur = conn.execute(
                    f"UPDATE users SET {assignments} WHERE id = ?",
                    (*fields.values(), user_id),
                )
                if cur.rowcount == 0:
                    return None
        return self.get_user(user_id)

    def delete_user(self, user_id: str) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            return cur.rowcount > 0


class TransactionStore(SQLiteStore):
    """Storage for transactions."""

    def _init_db(self):
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS transactions (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    group_id TEXT,
                    amount REAL NOT NULL,
                    category TEXT NOT NULL,
                    type TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    date TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tx_user_group
                ON transactions(user_id, group_id)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tx_group
                ON transactions(group_id)
            """)

    @staticmethod
    def _row_to_transaction(row: sqlite3.Row) -> Transaction:
        return Transaction(
            id=row["id"],
            user_id=row["user_id"],
            group_id=row["group_id"],
            amount=row["amount"],
            category=row["category"],
            type=row["type"],
            description=row["description"],
            date=_from_iso(row["date"]),
        )

    def add_transaction(
        self,
        user_id: str,
        data: TransactionBase,
        group_id: Optional[str] = None,
    ) -> Transaction:
        """Insert one transaction and return it."""
        tx_id = str(uuid.uuid4())
        with self._transaction() as conn:
            conn.execute("""
                INSERT INTO transactions
                (id, user_id, group_id, amount, category, type, description, date, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                tx_id,
                user_id,
                group_id,
                data.amount,
                data.category,
                data.type,
                data.description,
                _to_iso(data.date),
                _to_iso(_utcnow()),
            ))
        return self.get_transaction(tx_id)

    def get_transaction(self, tx_id: str) -> Optional[Transaction]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM transactions WHERE id = ?", (tx_id,)).fetchone()
            return self._row_to_transaction(row) if row else None

    def get_transactions(
        self,
        user_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> List[Transaction]:
        """
        Get transactions, newest first.

        With only ``user_id``: that user's personal transactions.
        With ``group_id``: every transaction of the group.
        """
        with self._get_conn() as conn:
            if group_id is not None:
                query = "SELECT * FROM transactions WHERE group_id = ?"
                params = [group_id]
            else:
                query = "SELECT * FROM transactions WHERE user_id = ? AND group_id IS NULL"
                params = [user_id]
            query += " ORDER BY date DESC, created_at DESC"
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_transaction(row) for row in rows]

    def update_transaction(self, tx_id: str, data: TransactionBase) -> Optional[Transaction]:
        with self._transaction() as conn:
            cur = conn.execute("""
                UPDATE transactions
                SET amount = ?, category = ?, type = ?, description = ?, date = ?
                WHERE id = ?
            """, (data.amount, data.category, data.type, data.description, _to_iso(data.date), tx_id))
            if cur.rowcount == 0:
                return None
        return self.get_transaction(tx_id)

    def delete_transaction(self, tx_id: str) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM transactions WHERE id = ?", (tx_id,))
            return cur.rowcount > 0

    def sum_expenses_by_category(
        self,
        user_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> Dict[str, float]:
        """Expense totals keyed by lower-cased category (same scoping as get_transactions)."""
        with self._get_conn() as conn:
            query = "SELECT LOWER(category) AS category, SUM(amount) AS used FROM transactions WHERE type = 'expense'"
            if group_id is not None:
                query += " AND group_id = ?"
                params = [group_id]
            else:
                query += " AND user_id = ? AND group_id IS NULL"
                params = [user_id]
            query += " GROUP BY LOWER(category)"
            rows = conn.execute(query, params).fetchall()
            return {row["category"]: row["used"] for row in rows}


class BudgetStore(SQLiteStore):
    """Storage for category budgets."""

    def _init_db(self):
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS budgets (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    group_id TEXT,
                    category TEXT NOT NULL,
                    limit_amount REAL NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

    @staticmethod
    def _row_to_budget(row: sqlite3.Row) -> Budget:
        return Budget(
            id=row["id"],
            user_id=row["user_id"],
            group_id=row["group_id"],
            category=row["category"],
            limit=row["limit_amount"],
        )

    def add_budget(self, user_id: str, category: str, limit: float, group_id: Optional[str] = None) -> Budget:
        budget_id = str(uuid.uuid4())
        with self._transaction() as conn:
            conn.execute("""
                INSERT INTO budgets (id, user_id, group_id, category, limit_amount, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (budget_id, user_id, group_id, category, limit, _to_iso(_utcnow())))
        return self.get_budget(budget_id)

    def get_budget(self, budget_id: str) -> Optional[Budget]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM budgets WHERE id = ?", (budget_id,)).fetchone()
            return self._row_to_budget(row) if row else None

    def get_budgets(self, user_id: Optional[str] = None, group_id: Optional[str] = None) -> List[Budget]:
        with self._get_conn() as conn:
            if group_id is not None:
                rows = conn.execute(
                    "SELECT * FROM budgets WHERE group_id = ? ORDER BY created_at",
                    (group_id,),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM budgets WHERE user_id = ? AND group_id IS NULL ORDER BY created_at",
                    (user_id,),
                ).fetchall()
            return [self._row_to_budget(row) for row in rows]

    def update_budget(self, budget_id: str, category: str, limit: float) -> Optional[Budget]:
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE budgets SET category = ?, limit_amount = ? WHERE id = ?",
                (category, limit, budget_id),
            )
            if cur.rowcount == 0:
                return None
        return self.get_budget(budget_id)

    def delete_budget(self, budget_id: str) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
            return cur.rowcount > 0


class GroupStore(SQLiteStore):
    """
    Storage for groups, their members and their invites.

    Members and invites are child rows, so each membership or invite change
    is one conditional statement instead of a rewrite of the whole group.
    """

    def _init_db(self):
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS groups (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_by TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS group_members (
                    group_id TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
                    user_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    status TEXT NOT NULL,
                    joined_at TEXT NOT NULL,
                    PRIMARY KEY (group_id, user_id)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS group_invites (
                    group_id TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
                    email TEXT NOT NULL,
                    invite_token TEXT NOT NULL UNIQUE,
                    status TEXT NOT NULL,
                    invited_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    accepted_by TEXT
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_members_user
                ON group_members(user_id)
            """)

    def _insert_invites(self, conn: sqlite3.Connection, group_id: str, invites: List[Invite]):
        conn.executemany("""
            INSERT INTO group_invites (group_id, email, invite_token, status, invited_at, expires_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, [
            (group_id, inv.email, inv.invite_token, inv.status, _to_iso(inv.invited_at), _to_iso(inv.expires_at))
            for inv in invites
        ])

    def _load_group(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Group:
        member_rows = conn.execute("""
            SELECT m.user_id, m.role, m.status, u.name, u.email
            FROM group_members m
            LEFT JOIN users u ON u.id = m.user_id
            WHERE m.group_id = ?
            ORDER BY m.joined_at, m.rowid
        """, (row["id"],)).fetchall()
        invite_rows = conn.execute("""
            SELECT * FROM group_invites WHERE group_id = ? ORDER BY invited_at, rowid
        """, (row["id"],)).fetchall()
        return Group(
            id=row["id"],
            name=row["name"],
            created_by=row["created_by"],
            created_at=_from_iso(row["created_at"]),
            members=[
                Member(
                    user_id=m["user_id"],
                    role=m["role"],
                    status=m["status"],
                    name=m["name"],
                    email=m["email"],
                )
                for m in member_rows
            ],
            invites=[
                Invite(
                    email=i["email"],
                    invite_token=i["invite_token"],
                    status=i["status"],
                    invited_at=_from_iso(i["invited_at"]),
                    expires_at=_from_iso(i["expires_at"]),
                )
                for i in invite_rows
            ],
        )

    def create_group(self, name: str, created_by: str, invites: List[Invite]) -> Group:
        """Insert a group with its creator as the single admin member, plus invites."""
        group_id = str(uuid.uuid4())
        now = _to_iso(_utcnow())
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO groups (id, name, created_by, created_at) VALUES (?, ?, ?, ?)",
                (group_id, name, created_by, now),
            )
            conn.execute("""
                INSERT INTO group_members (group_id, user_id, role, status, joined_at)
                VALUES (?, ?, 'admin', 'active', ?)
            """, (group_id, created_by, now))
            self._insert_invites(conn, group_id, invites)
        return self.get_group(group_id)

    def get_group(self, group_id: str) -> Optional[Group]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM groups WHERE id = ?", (group_id,)).fetchone()
            return self._load_group(conn, row) if row else None

    def get_groups_for_user(self, user_id: str) -> List[Group]:
        """Groups the user created or belongs to."""
        with self._get_conn() as conn:
            rows = conn.execute("""
                SELECT * FROM groups
                WHERE created_by = ?
                   OR id IN (SELECT group_id FROM group_members WHERE user_id = ?)
                ORDER BY created_at
            """, (user_id, user_id)).fetchall()
            return [self._load_group(conn, row) for row in rows]

    def add_invites(self, group_id: str, invites: List[Invite]) -> None:
        with self._transaction() as conn:
            self._insert_invites(conn, group_id, invites)

    def redeem_invite(self, group_id: str, token: str, user_id: str) -> str:
        """
        Flip a pending invite to accepted and add the user as a member, atomically.

        Returns REDEEMED, INVITE_USED (the invite was no longer pending) or
        ALREADY_MEMBER (the user joined in the meantime). Nothing is written
        unless the result is REDEEMED.
        """
        with self._transaction() as conn:
            cur = conn.execute("""
                UPDATE group_invites SET status = 'accepted', accepted_by = ?
                WHERE group_id = ? AND invite_token = ? AND status = 'pending'
            """, (user_id, group_id, token))
            if cur.rowcount == 0:
                return INVITE_USED
            cur = conn.execute("""
                INSERT OR IGNORE INTO group_members (group_id, user_id, role, status, joined_at)
                VALUES (?, ?, 'member', 'active', ?)
            """, (group_id, user_id, _to_iso(_utcnow())))
            if cur.rowcount == 0:
                conn.rollback()
                return ALREADY_MEMBER
        return REDEEMED

    def set_member_role(self, group_id: str, user_id: str, role: str, expected_role: str) -> bool:
        """Change a member's role only if it currently equals ``expected_role``."""
        with self._transaction() as conn:
            cur = conn.execute("""
                UPDATE group_members SET role = ?
                WHERE group_id = ? AND user_id = ? AND role = ?
            """, (role, group_id, user_id, expected_role))
            return cur.rowcount > 0

    def remove_member(self, group_id: str, user_id: str) -> bool:
        with self._transaction() as conn:
            cur = conn.execute(
                "DELETE FROM group_members WHERE group_id = ? AND user_id = ?",
                (group_id, user_id),
            )
            return cur.rowcount > 0

    def delete_group_cascade(self, group_id: str) -> Dict[str, int]:
        """Delete a group's budgets, transactions and the group itself in one transaction."""
        with self._transaction() as conn:
            budgets = conn.execute("DELETE FROM budgets WHERE group_id = ?", (group_id,)).rowcount
            transactions = conn.execute("DELETE FROM transactions WHERE group_id = ?", (group_id,)).rowcount
            # members and invites go with the group (ON DELETE CASCADE)
            groups = conn.execute("DELETE FROM groups WHERE id = ?", (group_id,)).rowcount
        return {"budgets": budgets, "transactions": transactions, "groups": groups}


class Database:
    """All stores sharing one SQLite file."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.users = UserStore(db_path)
        self.transactions = TransactionStore(db_path)
        self.budgets = BudgetStore(db_path)
        self.groups = GroupStore(db_path)


# Global instance
_db: Optional[Database] = None


def get_db() -> Database:
    """Get the database, opening it on first use."""
    global _db
    if _db is None:
        _db = Database(settings.database_path)
    return _db


def configure_db(db_path: str) -> Database:
    """Point the global database at another file (used by tests and scripts)."""
    global _db
    _db = Database(db_path)
    return _db
