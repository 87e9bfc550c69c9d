"""
Chat completion client.

Thin wrapper over the OpenAI SDK that streams completion text deltas. The
route layer depends on ``get_chat_client`` so tests can swap in a fake.
"""
from __future__ import annotations

from typing import Dict, Iterator, List, Optional

import openai
from fastapi import Request

from .errors import InternalFailure
from .logging_config import get_logger
from .settings import Settings

logger = get_logger(__name__)


class ChatNotConfigured(InternalFailure):
    """Raised when the chat endpoint is called without an API key."""

    default_message = "OpenAI API key not configured"


# PUBLIC_INTERFACE
class ChatClient:
    """Streams chat completions from an OpenAI-compatible API."""

    def __init__(self, api_key: str, model: str) -> None:
        self.model = model
        self._client = openai.OpenAI(api_key=api_key)

    def stream(self, messages: List[Dict[str, str]]) -> Iterator[str]:
        """
        Start a streamed completion and return an iterator of text deltas.

        The request is sent before this returns, so connection and auth
        errors surface here rather than halfway through the response body.
        """
        completion = self._client.chat.completions.create(
            model=self.model,
            messages=messages,  # type: ignore[arg-type]
            stream=True,
        )
        logger.debug("Chat stream opened: model=%s, messages=%d", self.model, len(messages))
        return _deltas(completion)


def _deltas(completion) -> Iterator[str]:
    # Bare text deltas, no SSE framing or UI message-stream envelope
    for chunk in completion:
        if not chunk.choices:
            continue
        content = chunk.choices[0].delta.content
        if content:
            yield content


# PUBLIC_INTERFACE
def get_chat_client(request: Request) -> Optional[ChatClient]:
    """
    FastAPI dependency returning the app's chat client, or None when no
    OPENAI_API_KEY is set. The route raises ChatNotConfigured in that case
    so a malformed body is still reported as a validation failure.
    """
    settings: Settings = request.app.state.settings
    api_key: Optional[str] = settings.openai_api_key
    if not api_key:
        return None

    client = getattr(request.app.state, "chat_client", None)
    if client is None:
        client = ChatClient(api_key=api_key, model=settings.chat_model)
        request.app.state.chat_client = client
    return client
