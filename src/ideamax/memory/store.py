"""Durable storage layer for users, ideas, tasks, and subtasks."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional, Sequence

from ..errors import StoreUnavailable
from .schema import Idea, ItemStatus, Subtask, Task, User, utc_now

DEFAULT_DB_PATH = Path("data/ideamax.sqlite")
LOGGER = logging.getLogger(__name__)


def _as_iso(timestamp: datetime) -> str:
    """Serialise a timestamp to a timezone-aware ISO 8601 string."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).isoformat()


def _as_optional_iso(timestamp: Optional[datetime]) -> Optional[str]:
    return _as_iso(timestamp) if timestamp is not None else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp produced by `_as_iso`."""
    if not value:
        return None
    return datetime.fromisoformat(value)


class PlanStore:
    """SQLite-backed persistence for ideas and their task hierarchy.

    Rows are never hard-deleted: ``deleted_at`` marks a row as logically
    removed and reads skip such rows unless ``include_deleted`` is set.
    Every ``sqlite3`` failure surfaces as :class:`StoreUnavailable`.
    """

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH) -> None:
        self.db_path = Path(db_path).resolve()
        self._conn: Optional[sqlite3.Connection] = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise StoreUnavailable(f"Cannot create database directory {self.db_path.parent}: {error}") from error
        try:
            self._conn = self._open_connection()
            self._bootstrap()
        except sqlite3.Error as error:
            self.close()
            raise StoreUnavailable(f"Cannot open database {self.db_path}: {error}") from error
        LOGGER.debug("Opened plan store at %s", self.db_path)

    def close(self) -> None:
        if getattr(self, "_conn", None) is not None:
            try:
                self._conn.close()
            finally:
                self._conn = None

    def __enter__(self) -> "PlanStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _open_connection(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self.db_path))
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        return connection

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "PlanStore":
        paths = config.get("paths") or {}
        db_path = paths.get("db_path")
        if db_path:
            return cls(Path(db_path))

        data_path = paths.get("data") or "data"
        return cls(Path(data_path) / "ideamax.sqlite")

    def _bootstrap(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL,
                password_hash TEXT,
                created_at TEXT NOT NULL,
                deleted_at TEXT
            );

            CREATE TABLE IF NOT EXISTS ideas (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                plan TEXT,
                completion_level REAL NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                deleted_at TEXT,
                FOREIGN KEY(user_id) REFERENCES users(id)
            );
            CREATE INDEX IF NOT EXISTS idx_ideas_user
                ON ideas(user_id, created_at);

            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                idea_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                phase TEXT,
                status INTEGER NOT NULL DEFAULT 0,
                "order" INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                deleted_at TEXT,
                FOREIGN KEY(idea_id) REFERENCES ideas(id)
            );
            CREATE INDEX IF NOT EXISTS idx_tasks_idea_order
                ON tasks(idea_id, "order");

            CREATE TABLE IF NOT EXISTS subtasks (
                id TEXT PRIMARY KEY,
                task_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                status INTEGER NOT NULL DEFAULT 0,
                "order" INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                deleted_at TEXT,
                FOREIGN KEY(task_id) REFERENCES tasks(id)
            );
            CREATE INDEX IF NOT EXISTS idx_subtasks_task_order
                ON subtasks(task_id, "order");
            """
        )
        self._conn.commit()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except sqlite3.Error as error:
            self._conn.rollback()
            raise StoreUnavailable(f"Store write failed: {error}") from error
        except Exception:
            self._conn.rollback()
            raise

    def _query(self, query: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        try:
            return self._conn.execute(query, params).fetchall()
        except sqlite3.Error as error:
            raise StoreUnavailable(f"Store read failed: {error}") from error

    # User operations -----------------------------------------------------------------
    def create_user(self, user: User) -> User:
        with self._transaction():
            self._conn.execute(
                """
                INSERT INTO users (id, name, email, password_hash, created_at, deleted_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user.id,
                    user.name,
                    user.email,
                    user.password_hash,
                    _as_iso(user.created_at),
                    _as_optional_iso(user.deleted_at),
                ),
            )
        return user

    def get_user(self, user_id: str, *, include_deleted: bool = False) -> Optional[User]:
        query = "SELECT * FROM users WHERE id = ?"
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        rows = self._query(query, (user_id,))
        if not rows:
            return None
        row = rows[0]
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=_from_iso(row["created_at"]),
            deleted_at=_from_iso(row["deleted_at"]),
        )

    # Idea operations -----------------------------------------------------------------
    def create_idea(self, idea: Idea) -> Idea:
        with self._transaction():
            self._conn.execute(
                """
                INSERT INTO ideas (
                    id, user_id, title, description, plan, completion_level, created_at, deleted_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    idea.id,
                    idea.user_id,
                    idea.title,
                    idea.description,
                    idea.plan,
                    idea.completion_level,
                    _as_iso(idea.created_at),
                    _as_optional_iso(idea.deleted_at),
                ),
            )
        return idea

    def get_idea(self, idea_id: str, *, include_deleted: bool = False) -> Optional[Idea]:
        query = "SELECT * FROM ideas WHERE id = ?"
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        rows = self._query(query, (idea_id,))
        if not rows:
            return None
        return self._row_to_idea(rows[0])

    def list_ideas(self, *, user_id: Optional[str] = None, include_deleted: bool = False) -> List[Idea]:
        query = "SELECT * FROM ideas"
        clauses = []
        params: List[Any] = []
        if user_id:
            clauses.append("user_id = ?")
            params.append(user_id)
        if not include_deleted:
            clauses.append("deleted_at IS NULL")
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at ASC"
        return [self._row_to_idea(row) for row in self._query(query, params)]

    def soft_delete_idea(self, idea_id: str) -> bool:
        with self._transaction():
            cursor = self._conn.execute(
                "UPDATE ideas SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                (_as_iso(utc_now()), idea_id),
            )
        return cursor.rowcount > 0

    # Task operations -----------------------------------------------------------------
    def create_task(self, task: Task) -> Task:
        with self._transaction():
            self._conn.execute(
                """
                INSERT INTO tasks (
                    id, idea_id, title, description, phase, status, "order", created_at, deleted_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    task.idea_id,
                    task.title,
                    task.description,
                    task.phase,
                    int(task.status),
                    task.order,
                    _as_iso(task.created_at),
                    _as_optional_iso(task.deleted_at),
                ),
            )
        return task

    def get_task(self, task_id: str, *, include_deleted: bool = False) -> Optional[Task]:
        query = "SELECT * FROM tasks WHERE id = ?"
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        rows = self._query(query, (task_id,))
        if not rows:
            return None
        return self._row_to_task(rows[0])

    def list_tasks(self, idea_id: str, *, include_deleted: bool = False) -> List[Task]:
        query = "SELECT * FROM tasks WHERE idea_id = ?"
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        query += ' ORDER BY "order" ASC, created_at ASC'
        return [self._row_to_task(row) for row in self._query(query, (idea_id,))]

    # Subtask operations --------------------------------------------------------------
    def create_subtasks(self, subtasks: Sequence[Subtask]) -> List[Subtask]:
        """Insert a batch of subtasks in a single transaction."""
        records = list(subtasks)
        if not records:
            return []
        with self._transaction():
            self._conn.executemany(
                """
                INSERT INTO subtasks (
                    id, task_id, title, description, status, "order", created_at, deleted_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        record.id,
                        record.task_id,
                        record.title,
                        record.description,
                        int(record.status),
                        record.order,
                        _as_iso(record.created_at),
                        _as_optional_iso(record.deleted_at),
                    )
                    for record in records
                ],
            )
        return records

    def list_subtasks(self, task_id: str, *, include_deleted: bool = False) -> List[Subtask]:
        query = "SELECT * FROM subtasks WHERE task_id = ?"
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        query += ' ORDER BY "order" ASC, created_at ASC'
        return [self._row_to_subtask(row) for row in self._query(query, (task_id,))]

    def _row_to_idea(self, row: sqlite3.Row) -> Idea:
        return Idea(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            plan=row["plan"],
            completion_level=row["completion_level"],
            created_at=_from_iso(row["created_at"]),
            deleted_at=_from_iso(row["deleted_at"]),
        )

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            idea_id=row["idea_id"],
            title=row["title"],
            description=row["description"],
            phase=row["phase"],
            status=ItemStatus(row["status"]),
            order=row["order"],
            created_at=_from_iso(row["created_at"]),
            deleted_at=_from_iso(row["deleted_at"]),
        )

    def _row_to_subtask(self, row: sqlite3.Row) -> Subtask:
        return Subtask(
            id=row["id"],
            task_id=row["task_id"],
            title=row["title"],
            description=row["description"],
            status=ItemStatus(row["status"]),
            order=row["order"],
            created_at=_from_iso(row["created_at"]),
            deleted_at=_from_iso(row["deleted_at"]),
        )
