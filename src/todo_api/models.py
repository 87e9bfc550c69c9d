from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A todo row after normalization, as handed out by repositories.

    Fields:
    - id: Store-assigned integer identifier, unique across owners
    - title: Non-empty title (trimmed on input via schemas)
    - completed: Boolean completion flag
    - owner_id: Id of the user who created the todo; never changes
    - created_at: Creation timestamp (aware, UTC)
    - updated_at: Last update timestamp (aware, UTC)
    """

    id: int
    title: str
    completed: bool
    owner_id: str
    created_at: datetime
    updated_at: datetime


class UserEntity(TypedDict):
    """A directory user as stored by the identity provider."""

    id: str
    name: str
    email: str
    email_verified: bool
    image: Optional[str]
    created_at: datetime
    updated_at: datetime


class SessionEntity(TypedDict):
    """A directory session; ``token`` is the credential clients present."""

    id: str
    token: str
    user_id: str
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
    ip_address: Optional[str]
    user_agent: Optional[str]


class SessionLookup(TypedDict):
    user: UserEntity
    session: SessionEntity


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Caller:
    """The authenticated identity attached to a request by the auth gate."""

    user_id: str
    user: UserEntity
    session: SessionEntity
