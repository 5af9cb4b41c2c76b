from __future__ import annotations

import json
import os
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Generator, List, Optional

from .models import TaskEntity, UserEntity, utcnow
from .repositories import ListQuery, TaskRepository, new_id
from .schemas import TaskCreate, TaskUpdate
from .users import UserRepository


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    owner_id: str = "owner_id"
    title: str = "title"
    description: str = "description"
    due_date: str = "due_date"
    is_completed: str = "is_completed"
    tags: str = "tags"
    priority: str = "priority"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


@dataclass(frozen=True)
class _UserCols:
    table: str = "users"
    id: str = "id"
    name: str = "name"
    email: str = "email"
    password_hash: str = "password_hash"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()
_USERS = _UserCols()


def _dt_to_text(value: Optional[datetime]) -> Optional[str]:
    # Fixed width so that lexical order matches chronological order
    return None if value is None else value.isoformat(timespec="microseconds")


def _text_to_dt(value: Optional[str]) -> Optional[datetime]:
    return None if value is None else datetime.fromisoformat(value)


class _SQLiteStore(ABC):
    """Connection handling shared by the sqlite repositories."""

    def __init__(self, db_path: str, clock: Callable[[], datetime] = utcnow) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._clock = clock
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    @abstractmethod
    def _init_db(self) -> None:
        """Create tables and indexes if they do not exist."""


class SQLiteTaskRepository(_SQLiteStore, TaskRepository):
    """
    Lightweight SQLite repository implementing the TaskRepository interface.
    Tags are stored as a JSON array.
    """

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.owner_id} TEXT NOT NULL,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.description} TEXT NULL,
                    {_COLS.due_date} TEXT NULL,
                    {_COLS.is_completed} INTEGER NOT NULL DEFAULT 0,
                    {_COLS.tags} TEXT NOT NULL DEFAULT '[]',
                    {_COLS.priority} TEXT NOT NULL DEFAULT 'medium',
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_owner_completed "
                f"ON {_COLS.table}({_COLS.owner_id}, {_COLS.is_completed})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_owner_due "
                f"ON {_COLS.table}({_COLS.owner_id}, {_COLS.due_date})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_owner_created "
                f"ON {_COLS.table}({_COLS.owner_id}, {_COLS.created_at})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_COLS.id]),
            "owner_id": str(row[_COLS.owner_id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description],
            "due_date": _text_to_dt(row[_COLS.due_date]),
            "is_completed": bool(row[_COLS.is_completed]),
            "tags": list(json.loads(row[_COLS.tags] or "[]")),
            "priority": str(row[_COLS.priority]),
            "created_at": _text_to_dt(row[_COLS.created_at]),  # type: ignore[typeddict-item]
            "updated_at": _text_to_dt(row[_COLS.updated_at]),  # type: ignore[typeddict-item]
        }

    def _fetch(self, conn: sqlite3.Connection, owner_id: str, task_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ? AND {_COLS.owner_id} = ?",
            (task_id, owner_id),
        ).fetchone()

    def create(self, owner_id: str, data: TaskCreate) -> TaskEntity:
        now = _dt_to_text(self._clock())
        task_id = new_id()
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.owner_id}, {_COLS.title}, {_COLS.description},
                    {_COLS.due_date}, {_COLS.is_completed}, {_COLS.tags}, {_COLS.priority},
                    {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    owner_id,
                    data.title,
                    data.description,
                    _dt_to_text(data.due_date),
                    json.dumps(list(data.tags)),
                    data.priority.value,
                    now,
                    now,
                ),
            )
            row = self._fetch(conn, owner_id, task_id)
            assert row is not None
            return self._row_to_entity(row)

    def get(self, owner_id: str, task_id: str) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = self._fetch(conn, owner_id, task_id)
            return self._row_to_entity(row) if row else None

    def update(self, owner_id: str, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = self._fetch(conn, owner_id, task_id)
            if not row:
                return None
            current = self._row_to_entity(row)
            current.update(data.changes())  # type: ignore[typeddict-item]

            conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = ?, {_COLS.description} = ?, {_COLS.due_date} = ?,
                    {_COLS.is_completed} = ?, {_COLS.tags} = ?, {_COLS.priority} = ?, {_COLS.updated_at} = ?
                WHERE {_COLS.id} = ? AND {_COLS.owner_id} = ?
                """,
                (
                    current["title"],
                    current["description"],
                    _dt_to_text(current["due_date"]),
                    1 if current["is_completed"] else 0,
                    json.dumps(list(current["tags"])),
                    current["priority"],
                    _dt_to_text(self._clock()),
                    task_id,
                    owner_id,
                ),
            )
            row2 = self._fetch(conn, owner_id, task_id)
            assert row2 is not None
            return self._row_to_entity(row2)

    def delete(self, owner_id: str, task_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ? AND {_COLS.owner_id} = ?",
                (task_id, owner_id),
            )
            return cur.rowcount > 0

    def toggle(self, owner_id: str, task_id: str) -> Optional[TaskEntity]:
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.is_completed} = 1 - {_COLS.is_completed}, {_COLS.updated_at} = ?
                WHERE {_COLS.id} = ? AND {_COLS.owner_id} = ?
                """,
                (_dt_to_text(self._clock()), task_id, owner_id),
            )
            if cur.rowcount == 0:
                return None
            row = self._fetch(conn, owner_id, task_id)
            assert row is not None
            return self._row_to_entity(row)

    def list(self, owner_id: str, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        q = query or ListQuery()
        clauses = [f"{_COLS.owner_id} = ?"]
        params: List[Any] = [owner_id]

        if q.completed is not None:
            clauses.append(f"{_COLS.is_completed} = ?")
            params.append(1 if q.completed else 0)

        if q.tag is not None:
            clauses.append(
                f"EXISTS (SELECT 1 FROM json_each({_COLS.table}.{_COLS.tags}) WHERE json_each.value = ?)"
            )
            params.append(q.tag)

        if q.priority is not None:
            clauses.append(f"{_COLS.priority} = ?")
            params.append(q.priority.value)

        window = q.due_window()
        if window is not None:
            start, end = window
            clauses.append(f"{_COLS.due_date} >= ?")
            params.append(_dt_to_text(start))
            if end is not None:
                clauses.append(f"{_COLS.due_date} < ?")
                params.append(_dt_to_text(end))

        where_sql = " AND ".join(clauses)
        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                WHERE {where_sql}
                ORDER BY {_COLS.created_at} DESC, rowid DESC
                """,
                params,
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]


class SQLiteUserRepository(_SQLiteStore, UserRepository):
    """SQLite-backed user store; emails are unique and stored lower-cased."""

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_USERS.table} (
                    {_USERS.id} TEXT PRIMARY KEY,
                    {_USERS.name} TEXT NOT NULL,
                    {_USERS.email} TEXT NOT NULL UNIQUE,
                    {_USERS.password_hash} TEXT NOT NULL,
                    {_USERS.created_at} TEXT NOT NULL,
                    {_USERS.updated_at} TEXT NOT NULL
                )
                """
            )

    def _row_to_entity(self, row: sqlite3.Row) -> UserEntity:
        return {
            "id": str(row[_USERS.id]),
            "name": str(row[_USERS.name]),
            "email": str(row[_USERS.email]),
            "password_hash": str(row[_USERS.password_hash]),
            "created_at": _text_to_dt(row[_USERS.created_at]),  # type: ignore[typeddict-item]
            "updated_at": _text_to_dt(row[_USERS.updated_at]),  # type: ignore[typeddict-item]
        }

    def create(self, name: str, email: str, password_hash: str) -> Optional[UserEntity]:
        now = _dt_to_text(self._clock())
        user_id = new_id()
        with self._conn() as conn:
            try:
                conn.execute(
                    f"""
                    INSERT INTO {_USERS.table} ({_USERS.id}, {_USERS.name}, {_USERS.email},
                        {_USERS.password_hash}, {_USERS.created_at}, {_USERS.updated_at})
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, name, email.strip().lower(), password_hash, now, now),
                )
            except sqlite3.IntegrityError:
                return None
            row = conn.execute(f"SELECT * FROM {_USERS.table} WHERE {_USERS.id} = ?", (user_id,)).fetchone()
            assert row is not None
            return self._row_to_entity(row)

    def get(self, user_id: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute(f"SELECT * FROM {_USERS.table} WHERE {_USERS.id} = ?", (user_id,)).fetchone()
            return self._row_to_entity(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT * FROM {_USERS.table} WHERE {_USERS.email} = ?", (email.strip().lower(),)
            ).fetchone()
            return self._row_to_entity(row) if row else None
