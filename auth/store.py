"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper (same as tasks/store.py).
AccountStore is the repository; _row_to_account is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Passwords are stored as given (no hashing) -- login is an exact match on
  (username, password).

DB path: auth/taskboard_auth.db (sibling to tasks/taskboard_tasks.db).

Layer rule: no imports from api/.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import Account

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'taskboard_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password", String(255), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode; set per-connection because SQLite PRAGMAs are not inherited."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore()
        account = store.create_account(Account(username="yusuke", password="toguro"))
        match = store.find_by_credentials("yusuke", "toguro")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def reset_schema(self) -> None:
        """Drop and recreate every table. Destroys all accounts."""
        _metadata.drop_all(self.engine)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_account(self, account: Account) -> Account:
        """Insert a new account and return it with its assigned ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.insert().values(username=account.username, password=account.password))
            conn.commit()
        return Account(id=result.inserted_primary_key[0], username=account.username, password=account.password)

    def update_account(self, account_id: int, username: str, password: str) -> int:
        """Overwrite username and password. Returns the number of rows changed (0 or 1)."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == account_id).values(username=username, password=password)
            )
            conn.commit()
        return result.rowcount

    def delete_account(self, account_id: int) -> int:
        """Permanently delete an account. Returns the number of rows removed (0 or 1)."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == account_id))
            conn.commit()
        return result.rowcount

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, account_id: int) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def list_accounts(self) -> list[Account]:
        """Return all accounts ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_account(r) for r in rows]

    def find_by_credentials(self, username: str, password: str) -> Account | None:
        """Exact, case-sensitive match on both fields. Returns None if nothing matches."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.username == username) & (_users.c.password == password))
            ).fetchone()
        return _row_to_account(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


def _row_to_account(row) -> Account:
    return Account(id=row.id, username=row.username, password=row.password)
