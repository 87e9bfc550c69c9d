from __future__ import annotations

from typing import Optional

import openai
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ..auth import require_caller
from ..errors import InternalFailure
from ..llm import ChatClient, ChatNotConfigured, get_chat_client
from ..logging_config import get_logger
from ..models import Caller
from ..schemas import ChatRequest, ErrorOut

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/chat",
    tags=["chat"],
    dependencies=[Depends(require_caller)],
    responses={
        401: {"model": ErrorOut, "description": "Authentication required"},
        500: {"model": ErrorOut, "description": "Chat unavailable or provider failure"},
    },
)


# PUBLIC_INTERFACE
@router.post(
    "",
    summary="Chat",
    description="Stream a chat completion for the given conversation as plain text.",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/plain": {}}, "description": "Streamed completion"}},
)
def chat(
    payload: ChatRequest,
    caller: Caller = Depends(require_caller),
    client: Optional[ChatClient] = Depends(get_chat_client),
) -> StreamingResponse:
    if client is None:
        raise ChatNotConfigured()
    try:
        deltas = client.stream(payload.to_provider_messages())
    except openai.OpenAIError:
        logger.exception("Chat request failed for user %s", caller.user_id)
        raise InternalFailure("Failed to process chat request")
    # Raw UTF-8 text as the model produces it, not server-sent events
    return StreamingResponse(deltas, media_type="text/plain; charset=utf-8")
