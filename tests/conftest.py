import itertools
from dataclasses import dataclass, replace
from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

from todo_api.auth import SessionDirectory
from todo_api.main import create_app
from todo_api.models import SessionEntity, UserEntity
from todo_api.settings import get_settings

_user_seq = itertools.count(1)


@dataclass
class AuthedUser:
    user: UserEntity
    session: SessionEntity

    @property
    def id(self) -> str:
        return self.user["id"]

    @property
    def token(self) -> str:
        return self.session["token"]

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def settings(tmp_path):
    # Each test gets its own database file
    return replace(
        get_settings(),
        database_path=str(tmp_path / "todos.db"),
        openai_api_key=None,
        session_cookie_name="session_token",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def db_conn(app):
    conn = app.state.database.connect()
    yield conn
    conn.close()


@pytest.fixture
def directory(db_conn):
    return SessionDirectory(db_conn)


@pytest.fixture
def make_user(directory) -> Callable[..., AuthedUser]:
    """Factory creating a directory user with a live session."""

    def _make(name: str = "Test User") -> AuthedUser:
        n = next(_user_seq)
        user = directory.create_user(name=name, email=f"test-{n}@example.com")
        session = directory.create_session(user["id"], ip_address="127.0.0.1", user_agent="pytest")
        return AuthedUser(user=user, session=session)

    return _make


@pytest.fixture
def alice(make_user) -> AuthedUser:
    return make_user("Alice")


@pytest.fixture
def bob(make_user) -> AuthedUser:
    return make_user("Bob")


@pytest.fixture
def make_todo(client) -> Callable[..., dict]:
    """Factory creating a todo through the API as the given user."""

    def _make(owner: AuthedUser, title: str = "Test Todo") -> dict:
        res = client.post("/api/todos", json={"title": title}, headers=owner.headers)
        assert res.status_code == 201, res.text
        return res.json()

    return _make
