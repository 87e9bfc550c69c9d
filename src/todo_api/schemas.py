from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from .utils import format_timestamp

TITLE_MAX_LENGTH = 200


def _validate_title(v: str) -> str:
    s = v.strip()
    if not s:
        raise ValueError("Title is required")
    if len(s) > TITLE_MAX_LENGTH:
        raise ValueError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return s


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item. The owner is never taken from the
    body; it comes from the authenticated caller.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Buy milk"}},
    )

    title: StrictStr = Field(..., description="Short title for the todo item")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _validate_title(v)


# PUBLIC_INTERFACE
class TodoPatch(BaseModel):
    """
    Partial update of a Todo item.

    Omitted fields (and explicit nulls) leave the stored value unchanged.
    Unknown fields are ignored.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"completed": True}},
    )

    title: Optional[StrictStr] = Field(default=None, description="Replacement title")
    completed: Optional[StrictBool] = Field(default=None, description="Completion status flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _validate_title(v)

    def changes(self) -> Dict[str, Any]:
        """Return only the fields the client supplied with a value."""
        return {
            name: getattr(self, name)
            for name in ("title", "completed")
            if name in self.model_fields_set and getattr(self, name) is not None
        }


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item. Keys are camelCase and
    timestamps use the canonical UTC form.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 123,
                "title": "Buy milk",
                "completed": False,
                "ownerId": "user_4f2a",
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-26T09:00:00.000001Z",
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    completed: bool = Field(..., description="Completion status flag")
    owner_id: str = Field(..., description="Id of the owning user")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class MessageOut(BaseModel):
    message: str


class ErrorOut(BaseModel):
    error: str


class ChatMessagePart(BaseModel):
    type: str
    text: Optional[str] = None


# PUBLIC_INTERFACE
class ChatMessage(BaseModel):
    """
    A chat message in either plain form (``content``) or UI form (``parts``).
    """

    role: Literal["system", "user", "assistant"]
    content: Optional[str] = None
    parts: Optional[List[ChatMessagePart]] = None

    def text(self) -> str:
        """Flatten to a single string; non-text parts are dropped."""
        if self.content is not None:
            return self.content
        return "".join(p.text or "" for p in (self.parts or []) if p.type == "text")


class ChatRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"messages": [{"role": "user", "content": "What should I do first today?"}]}
        }
    )

    messages: List[ChatMessage] = Field(..., min_length=1, description="Conversation so far")

    def to_provider_messages(self) -> List[Dict[str, str]]:
        return [{"role": m.role, "content": m.text()} for m in self.messages]
