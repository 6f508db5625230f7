"""
Chat API endpoint.

Main interface between the browser chat UI and the model. Replies are sent as
a UI message stream (Server-Sent Events).
"""

import json
from typing import Any, AsyncGenerator
from uuid import uuid4

from fastapi import APIRouter, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse, StreamingResponse

from rorie.api.deps import AppSettings, ChatServiceDep, CurrentSession
from rorie.core.config import Settings
from rorie.core.exceptions import (
    InfrastructureError,
    LLMError,
    RateLimitExceededError,
    ValidationError,
)
from rorie.core.logger import logger
from rorie.core.session_cookie import apply_session_cookie
from rorie.models.chat import ChatRequest, HistoryMessage, QuotaResponse, RateLimitedResponse
from rorie.services.chat_service import ChatService, ChatTurn

router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable buffering for nginx
    "x-vercel-ai-ui-message-stream": "v1",
}


def _sse(payload: Any) -> str:
    """Encode one Server-Sent Event frame."""
    if isinstance(payload, str):
        return f"data: {payload}\n\n"
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _rate_limited_response(error: RateLimitExceededError, settings: Settings) -> JSONResponse:
    body = RateLimitedResponse(
        message=settings.RATE_LIMIT_MESSAGE,
        book_link=settings.RATE_LIMIT_BOOK_LINK,
        limit=error.limit,
        used=error.used,
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=body.model_dump(by_alias=True),
    )


async def ui_message_stream(chat_service: ChatService, turn: ChatTurn) -> AsyncGenerator[str, None]:
    """
    Frame the streamed reply as UI message stream events.

    Sequence: start, start-step, text-start, text-delta..., text-end,
    finish-step, finish, [DONE]. A provider failure replaces the tail with an
    error event.
    """
    message_id = f"msg-{uuid4().hex}"
    text_id = f"text-{uuid4().hex}"
    text_started = False

    yield _sse({"type": "start", "messageId": message_id})
    yield _sse({"type": "start-step"})
    try:
        async for delta in chat_service.stream_reply(turn):
            if not text_started:
                text_started = True
                yield _sse({"type": "text-start", "id": text_id})
            yield _sse({"type": "text-delta", "id": text_id, "delta": delta})

        if text_started:
            yield _sse({"type": "text-end", "id": text_id})
        yield _sse({"type": "finish-step"})
        yield _sse({"type": "finish"})
    except LLMError as e:
        yield _sse({"type": "error", "errorText": e.message})
    except Exception as e:
        logger.error(f"Chat stream failed: {e}", exc_info=True)
        yield _sse({"type": "error", "errorText": "An error occurred."})
    yield _sse("[DONE]")


@router.post("")
async def chat(
    request: ChatRequest,
    session: CurrentSession,
    chat_service: ChatServiceDep,
    settings: AppSettings,
):
    """
    Chat with Rorie.

    Stores the user's message, consumes one unit of the session quota and
    streams the reply. Sessions over their quota get HTTP 429.
    """
    try:
        turn = await chat_service.prepare_turn(session.session_id, request)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.message,
        )
    except RateLimitExceededError as e:
        return apply_session_cookie(_rate_limited_response(e, settings), session, settings)
    except InfrastructureError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {e.message}",
        )

    response = StreamingResponse(
        ui_message_stream(chat_service, turn),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
    return apply_session_cookie(response, session, settings)


@router.get("/quota", response_model=QuotaResponse)
async def get_quota(
    response: Response,
    session: CurrentSession,
    chat_service: ChatServiceDep,
    settings: AppSettings,
):
    """Message quota of the caller's session."""
    try:
        quota = await chat_service.get_quota(session.session_id)
    except InfrastructureError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {e.message}",
        )
    apply_session_cookie(response, session, settings)
    return QuotaResponse(limit=quota.limit, used=quota.used, remaining=quota.remaining)


@router.get("/messages", response_model=list[HistoryMessage])
async def list_messages(
    response: Response,
    session: CurrentSession,
    chat_service: ChatServiceDep,
    settings: AppSettings,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """Stored messages of the caller's session, oldest first."""
    apply_session_cookie(response, session, settings)
    if session.is_new:
        return []
    try:
        messages = await chat_service.list_history(session.session_id, limit=limit, offset=offset)
    except InfrastructureError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {e.message}",
        )
    return [HistoryMessage(id=m.id, role=m.role, content=m.content) for m in messages]
