from __future__ import annotations

import os
import sqlite3
from threading import Lock
from typing import Generator

from fastapi import Request

from .logging_config import get_logger

logger = get_logger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS user (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        email_verified INTEGER NOT NULL DEFAULT 0,
        image TEXT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS session (
        id TEXT PRIMARY KEY,
        token TEXT NOT NULL UNIQUE,
        user_id TEXT NOT NULL REFERENCES user(id) ON DELETE CASCADE,
        expires_at TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        ip_address TEXT NULL,
        user_agent TEXT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS todo (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        owner_id TEXT NOT NULL REFERENCES user(id) ON DELETE CASCADE,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_session_user_id ON session(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_todo_owner_created ON todo(owner_id, created_at)",
)


# PUBLIC_INTERFACE
class Database:
    """
    Connection factory for the SQLite file backing users, sessions and todos.

    The schema is created lazily on the first connection so that building an
    app never touches the filesystem by itself.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._initialized = False
        self._init_lock = Lock()

    def connect(self) -> sqlite3.Connection:
        self._ensure_schema()
        return self._open()

    def _open(self) -> sqlite3.Connection:
        # Sync dependencies and endpoints may run on different worker threads
        conn = sqlite3.connect(self.path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _ensure_schema(self) -> None:
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            conn = self._open()
            try:
                with conn:
                    for statement in _SCHEMA:
                        conn.execute(statement)
            finally:
                conn.close()
            self._initialized = True
            logger.info("Database ready at %s", self.path)


# PUBLIC_INTERFACE
def get_connection(request: Request) -> Generator[sqlite3.Connection, None, None]:
    """
    FastAPI dependency yielding one connection per request.

    Writes commit inside the repositories' transaction blocks; the
    connection is always closed when the request finishes.
    """
    database: Database = request.app.state.database
    conn = database.connect()
    try:
        yield conn
    finally:
        conn.close()
