"""
tasks/store.py -- SQLAlchemy-backed persistence layer for tasks.

Uses SQLAlchemy Core (not ORM) so the dataclass in tasks/models.py remains
the authoritative domain representation.

Pattern: Repository + Data Mapper. TaskStore is the repository; _row_to_task
is the mapper. Route handlers never touch SQL directly.

Completion is tracked in a separate done_tasks table rather than a flag on
tasks: marking a task done inserts a record (its id is returned to the
caller), undo deletes it, and "ongoing" means "has no done record".

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TaskStore()
    task = store.insert_task(Task(title="Write report", details="Q3"))
    store.mark_done(task.id)
    store.find_ongoing()
    store.close()
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from tasks.models import Task

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'taskboard_tasks.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_tasks = Table(
    "tasks",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("details", Text, nullable=False, server_default=""),
)

_done_tasks = Table(
    "done_tasks",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("task_id", Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("done_at", String(32), nullable=False),
)


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """WAL for concurrent readers; foreign_keys so deleting a task drops its done record."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TaskStore:
    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        _metadata.create_all(self.engine)

    def reset_schema(self) -> None:
        """Drop and recreate every table. Destroys all tasks."""
        _metadata.drop_all(self.engine)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_task(self, task: Task) -> Task:
        """Insert a task and return it with its assigned ID."""
        with self.engine.connect() as conn:
            result = conn.execute(_tasks.insert().values(title=task.title, details=task.details))
            conn.commit()
        return Task(id=result.inserted_primary_key[0], title=task.title, details=task.details)

    def update_task(self, task_id: int, title: str, details: str) -> int:
        """Overwrite title and details. Returns rows changed (0 when the id is unknown)."""
        with self.engine.connect() as conn:
            result = conn.execute(_tasks.update().where(_tasks.c.id == task_id).values(title=title, details=details))
            conn.commit()
        return result.rowcount

    def delete_task(self, task_id: int) -> int:
        """Delete a task (and its done record). Returns rows removed."""
        with self.engine.connect() as conn:
            conn.execute(_done_tasks.delete().where(_done_tasks.c.task_id == task_id))
            result = conn.execute(_tasks.delete().where(_tasks.c.id == task_id))
            conn.commit()
        return result.rowcount

    def mark_done(self, task_id: int) -> int:
        """Record the task as done and return the done record's id.

        Returns 0 when the task does not exist or is already done.
        """
        with self.engine.connect() as conn:
            exists = conn.execute(select(_tasks.c.id).where(_tasks.c.id == task_id)).fetchone()
            if exists is None:
                return 0
            try:
                result = conn.execute(_done_tasks.insert().values(task_id=task_id, done_at=_now_iso()))
                conn.commit()
            except IntegrityError:
                conn.rollback()
                return 0
        return result.inserted_primary_key[0]

    def undo(self, task_id: int) -> int:
        """Remove the task's done record. Returns rows removed (0 when it was not done)."""
        with self.engine.connect() as conn:
            result = conn.execute(_done_tasks.delete().where(_done_tasks.c.task_id == task_id))
            conn.commit()
        return result.rowcount

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_all(self) -> list[Task]:
        with self.engine.connect() as conn:
            rows = conn.execute(_tasks.select().order_by(_tasks.c.id)).fetchall()
        return [_row_to_task(r) for r in rows]

    def find_ongoing(self) -> list[Task]:
        """Tasks with no done record, ordered by id."""
        done_ids = select(_done_tasks.c.task_id)
        with self.engine.connect() as conn:
            rows = conn.execute(
                _tasks.select().where(_tasks.c.id.not_in(done_ids)).order_by(_tasks.c.id)
            ).fetchall()
        return [_row_to_task(r) for r in rows]

    def find_by_pattern(self, title: str) -> list[Task]:
        """Tasks whose title contains `title` (SQL LIKE, case-insensitive on SQLite)."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _tasks.select().where(_tasks.c.title.like(f"%{title}%")).order_by(_tasks.c.id)
            ).fetchall()
        return [_row_to_task(r) for r in rows]

    def find_by_id(self, task_id: int) -> Optional[Task]:
        with self.engine.connect() as conn:
            row = conn.execute(_tasks.select().where(_tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


def _row_to_task(row) -> Task:
    return Task(id=row.id, title=row.title, details=row.details)
