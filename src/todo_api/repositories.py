from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .errors import StoreError
from .models import TodoEntity
from .schemas import TodoCreate, TodoPatch
from .utils import format_timestamp, next_timestamp, normalize_bool, normalize_timestamp, utcnow


@dataclass(frozen=True)
class _Cols:
    table: str = "todo"
    id: str = "id"
    title: str = "title"
    completed: str = "completed"
    owner_id: str = "owner_id"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()

_MIN_ID = -(2**63)
_MAX_ID = 2**63 - 1


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Owner-scoped todo storage contract.

    Every single-item method takes the owner together with the id and must
    filter on both in the query itself.
    """

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[TodoEntity]:
        """Return the owner's todos, newest first."""

    @abstractmethod
    def create(self, owner_id: str, data: TodoCreate) -> TodoEntity:
        """Create and return a new TodoEntity owned by ``owner_id``."""

    @abstractmethod
    def get(self, owner_id: str, todo_id: int) -> Optional[TodoEntity]:
        """Return the todo, or None if missing or owned by someone else."""

    @abstractmethod
    def update(self, owner_id: str, todo_id: int, patch: TodoPatch) -> Optional[TodoEntity]:
        """Apply ``patch``. Return the updated entity or None if not found for this owner."""

    @abstractmethod
    def delete(self, owner_id: str, todo_id: int) -> bool:
        """Delete the todo. Return True if deleted, False if not found for this owner."""


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (sqlite3.Error, ValueError, OverflowError) as e:
        raise StoreError(f"{action} failed: {e}") from e


def _storable_id(todo_id: int) -> bool:
    """SQLite INTEGER keys are signed 64-bit; nothing outside that range exists."""
    return _MIN_ID <= todo_id <= _MAX_ID


def row_to_entity(row: sqlite3.Row) -> TodoEntity:
    """Normalize a raw row (0/1 flags, text timestamps) into a TodoEntity."""
    return {
        "id": int(row[_COLS.id]),
        "title": str(row[_COLS.title]),
        "completed": normalize_bool(row[_COLS.completed]),
        "owner_id": str(row[_COLS.owner_id]),
        "created_at": normalize_timestamp(row[_COLS.created_at]),
        "updated_at": normalize_timestamp(row[_COLS.updated_at]),
    }


class SQLiteRepository(Repository):
    """
    SQLite implementation working on a connection owned by the caller
    (one per request).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _select_owned(self, owner_id: str, todo_id: int) -> Optional[sqlite3.Row]:
        return self._conn.execute(
            f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ? AND {_COLS.owner_id} = ?",
            (todo_id, owner_id),
        ).fetchone()

    def list_for_owner(self, owner_id: str) -> List[TodoEntity]:
        with _store_errors("list"):
            rows = self._conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                WHERE {_COLS.owner_id} = ?
                ORDER BY {_COLS.created_at} DESC, {_COLS.id} DESC
                """,
                (owner_id,),
            ).fetchall()
            return [row_to_entity(r) for r in rows]

    def create(self, owner_id: str, data: TodoCreate) -> TodoEntity:
        now = format_timestamp(utcnow())
        with _store_errors("create"), self._conn:
            cur = self._conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.title}, {_COLS.completed}, {_COLS.owner_id},
                    {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, 0, ?, ?, ?)
                """,
                (data.title, owner_id, now, now),
            )
            row = self._select_owned(owner_id, cur.lastrowid)
            if row is None:
                raise StoreError("create failed: inserted row not readable")
            return row_to_entity(row)

    def get(self, owner_id: str, todo_id: int) -> Optional[TodoEntity]:
        if not _storable_id(todo_id):
            return None
        with _store_errors("get"):
            row = self._select_owned(owner_id, todo_id)
            return row_to_entity(row) if row else None

    def update(self, owner_id: str, todo_id: int, patch: TodoPatch) -> Optional[TodoEntity]:
        if not _storable_id(todo_id):
            return None
        with _store_errors("update"), self._conn:
            # Take the write lock before reading so updated_at is computed
            # from the value this write replaces.
            if not self._conn.in_transaction:
                self._conn.execute("BEGIN IMMEDIATE")
            row = self._select_owned(owner_id, todo_id)
            if row is None:
                return None

            # Only supplied columns are written; others keep whatever is stored
            changes = patch.changes()
            assignments: Dict[str, object] = {}
            if "title" in changes:
                assignments[_COLS.title] = changes["title"]
            if "completed" in changes:
                assignments[_COLS.completed] = 1 if changes["completed"] else 0
            previous = normalize_timestamp(row[_COLS.updated_at])
            assignments[_COLS.updated_at] = format_timestamp(next_timestamp(previous))

            set_sql = ", ".join(f"{col} = ?" for col in assignments)
            self._conn.execute(
                f"UPDATE {_COLS.table} SET {set_sql} WHERE {_COLS.id} = ? AND {_COLS.owner_id} = ?",
                (*assignments.values(), todo_id, owner_id),
            )
            updated = self._select_owned(owner_id, todo_id)
            return row_to_entity(updated) if updated else None

    def delete(self, owner_id: str, todo_id: int) -> bool:
        if not _storable_id(todo_id):
            return False
        with _store_errors("delete"), self._conn:
            cur = self._conn.execute(
                f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ? AND {_COLS.owner_id} = ?",
                (todo_id, owner_id),
            )
            return cur.rowcount > 0
