"""Chat endpoints. Message text is filtered before it is stored or shown."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from servicehub.config import get_settings
from servicehub.core.content_filter import (
    filter_message_content,
    get_blocked_message,
    get_contact_attempt_warning,
)
from servicehub.core.errors import PersistenceError
from servicehub.db.session import get_session
from servicehub.schemas.messages import (
    FilterRequest,
    FilterResponse,
    MarkReadRequest,
    MarkReadResponse,
    MessageResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from servicehub.schemas.tracking import ErrorResponse
from servicehub.services import messaging

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/v1", tags=["messages"])


@router.post("/messages/filter", response_model=FilterResponse)
async def filter_message(request: FilterRequest) -> FilterResponse:
    """
    Run the content filter without storing anything.

    Lets the chat UI preview what the other participant would see.
    """
    language = request.language or settings.message_language
    result = filter_message_content(request.content)
    notice = get_blocked_message(result.blocked_reasons, language) or (
        get_contact_attempt_warning(result.blocked_reasons, language)
    )
    return FilterResponse(
        is_blocked=result.is_blocked,
        sanitized_content=result.sanitized_content,
        original_content=result.original_content,
        blocked_reasons=result.blocked_reasons,
        notice=notice,
    )


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=SendMessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        503: {"model": ErrorResponse, "description": "Service temporarily unavailable"},
    },
)
async def send_message(
    conversation_id: str,
    request: SendMessageRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SendMessageResponse:
    if not request.content.strip() and not request.file_url:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Message must have content or an attachment",
        )

    try:
        sent = await messaging.send_message(
            session,
            conversation_id=conversation_id,
            sender_id=request.sender_id,
            sender_type=request.sender_type,
            content=request.content,
            file_url=request.file_url,
            language=request.language,
        )
    except PersistenceError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable",
        )

    return SendMessageResponse(
        message=MessageResponse.model_validate(sent.message),
        blocked_reasons=sent.filter_result.blocked_reasons,
        notice=sent.notice,
    )


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=list[MessageResponse],
)
async def list_messages(
    conversation_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> list[MessageResponse]:
    messages = await messaging.list_messages(session, conversation_id)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post(
    "/conversations/{conversation_id}/read",
    response_model=MarkReadResponse,
    responses={
        503: {"model": ErrorResponse, "description": "Service temporarily unavailable"},
    },
)
async def mark_as_read(
    conversation_id: str,
    request: MarkReadRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MarkReadResponse:
    try:
        updated = await messaging.mark_as_read(session, conversation_id, request.reader_id)
    except PersistenceError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable",
        )
    return MarkReadResponse(updated=updated)
