from __future__ import annotations

import secrets
import sqlite3
import uuid
from datetime import datetime, timedelta
from http.cookies import CookieError, SimpleCookie
from typing import Mapping, Optional

from fastapi import Depends, Request

from .db import get_connection
from .errors import AuthenticationRequired
from .logging_config import get_logger
from .models import Caller, SessionEntity, SessionLookup, UserEntity
from .settings import Settings
from .utils import format_timestamp, normalize_bool, normalize_timestamp, utcnow

logger = get_logger(__name__)

DEFAULT_SESSION_TTL = timedelta(days=7)


def _user_from_row(row: sqlite3.Row) -> UserEntity:
    return {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "email_verified": normalize_bool(row["email_verified"]),
        "image": row["image"],
        "created_at": normalize_timestamp(row["created_at"]),
        "updated_at": normalize_timestamp(row["updated_at"]),
    }


def _session_from_row(row: sqlite3.Row) -> SessionEntity:
    return {
        "id": row["id"],
        "token": row["token"],
        "user_id": row["user_id"],
        "expires_at": normalize_timestamp(row["expires_at"]),
        "created_at": normalize_timestamp(row["created_at"]),
        "updated_at": normalize_timestamp(row["updated_at"]),
        "ip_address": row["ip_address"],
        "user_agent": row["user_agent"],
    }


# PUBLIC_INTERFACE
def extract_session_token(headers: Mapping[str, str], cookie_name: str) -> Optional[str]:
    """
    Pull the session credential out of request headers.

    A bearer token in Authorization wins over the cookie. Signed cookie
    values of the form '<token>.<signature>' resolve by their token part.
    """
    headers = {k.lower(): v for k, v in headers.items()}
    authorization = headers.get("authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()

    raw_cookie = headers.get("cookie")
    if not raw_cookie:
        return None
    jar = SimpleCookie()
    try:
        jar.load(raw_cookie)
    except CookieError:
        return None
    morsel = jar.get(cookie_name)
    if morsel is None or not morsel.value:
        return None
    return morsel.value.split(".", 1)[0] or None


# PUBLIC_INTERFACE
class SessionDirectory:
    """
    Read access to identity records owned by the auth provider, plus the
    seeding helpers the provider integration (and tests) use to create them.
    """

    def __init__(self, conn: sqlite3.Connection, cookie_name: str = "session_token") -> None:
        self._conn = conn
        self._cookie_name = cookie_name

    def resolve_session(self, headers: Mapping[str, str]) -> Optional[SessionLookup]:
        """Return the user and session behind the request credential, or None."""
        token = extract_session_token(headers, self._cookie_name)
        if token is None:
            return None

        row = self._conn.execute("SELECT * FROM session WHERE token = ?", (token,)).fetchone()
        if row is None:
            return None
        session = _session_from_row(row)
        if session["expires_at"] <= utcnow():
            logger.debug("Session %s expired at %s", session["id"], session["expires_at"])
            return None

        user_row = self._conn.execute("SELECT * FROM user WHERE id = ?", (session["user_id"],)).fetchone()
        if user_row is None:
            return None
        return {"user": _user_from_row(user_row), "session": session}

    def create_user(self, name: str, email: str, user_id: Optional[str] = None) -> UserEntity:
        now = format_timestamp(utcnow())
        uid = user_id or uuid.uuid4().hex
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO user (id, name, email, email_verified, image, created_at, updated_at)
                VALUES (?, ?, ?, 0, NULL, ?, ?)
                """,
                (uid, name, email, now, now),
            )
        row = self._conn.execute("SELECT * FROM user WHERE id = ?", (uid,)).fetchone()
        return _user_from_row(row)

    def create_session(
        self,
        user_id: str,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> SessionEntity:
        now = utcnow()
        expiry = expires_at if expires_at is not None else now + ttl
        sid = uuid.uuid4().hex
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO session (id, token, user_id, expires_at, created_at, updated_at,
                    ip_address, user_agent)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    sid,
                    secrets.token_urlsafe(32),
                    user_id,
                    format_timestamp(expiry),
                    format_timestamp(now),
                    format_timestamp(now),
                    ip_address,
                    user_agent,
                ),
            )
        row = self._conn.execute("SELECT * FROM session WHERE id = ?", (sid,)).fetchone()
        return _session_from_row(row)


def get_session_directory(
    request: Request, conn: sqlite3.Connection = Depends(get_connection)
) -> SessionDirectory:
    settings: Settings = request.app.state.settings
    return SessionDirectory(conn, cookie_name=settings.session_cookie_name)


# PUBLIC_INTERFACE
def require_caller(
    request: Request, directory: SessionDirectory = Depends(get_session_directory)
) -> Caller:
    """
    Authorization gate.

    Resolves the caller from the request's session credential and attaches
    it to ``request.state.caller``. Raises AuthenticationRequired (401) when
    no live session or user is found, so the route body never runs.
    """
    found = directory.resolve_session(request.headers)
    if found is None:
        logger.debug("Rejected unauthenticated %s %s", request.method, request.url.path)
        raise AuthenticationRequired()

    caller = Caller(user_id=found["user"]["id"], user=found["user"], session=found["session"])
    request.state.caller = caller
    return caller
