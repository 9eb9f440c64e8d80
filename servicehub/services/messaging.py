"""Chat message service: every message passes the content filter before storage."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from servicehub.config import get_settings
from servicehub.core.content_filter import (
    ContentFilterResult,
    filter_message_content,
    get_blocked_message,
    get_contact_attempt_warning,
)
from servicehub.core.errors import PersistenceError
from servicehub.db.models import ChatMessage

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class SentMessage:
    message: ChatMessage
    filter_result: ContentFilterResult
    notice: str  # "" when there is nothing to tell the sender


async def send_message(
    session: AsyncSession,
    conversation_id: str,
    sender_id: str,
    sender_type: str,
    content: str,
    file_url: Optional[str] = None,
    language: Optional[str] = None,
) -> SentMessage:
    """
    Filter and store a chat message.

    The stored content is always the sanitized text. The original text is
    kept only when something was redacted, for moderation audits.

    Raises:
        PersistenceError: the insert failed
    """
    language = language or settings.message_language
    result = filter_message_content(content)

    message = ChatMessage(
        conversation_id=conversation_id,
        sender_id=sender_id,
        sender_type=sender_type,
        content=result.sanitized_content,
        is_blocked=result.is_blocked,
        original_content=content if result.is_blocked else None,
        blocked_reasons=",".join(result.blocked_reasons),
        message_type="image" if file_url else "text",
        file_url=file_url,
    )
    session.add(message)
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Message insert failed: {type(e).__name__}: {e}")
        raise PersistenceError(str(e)) from e
    await session.refresh(message)

    # Safe log: ids and tags only, never content
    logger.info(
        f"Message stored: conversation={conversation_id}, id={message.id}, "
        f"blocked={result.is_blocked}, reasons={result.blocked_reasons}"
    )

    notice = get_blocked_message(result.blocked_reasons, language) or (
        get_contact_attempt_warning(result.blocked_reasons, language)
    )
    return SentMessage(message=message, filter_result=result, notice=notice)


async def list_messages(session: AsyncSession, conversation_id: str) -> list[ChatMessage]:
    """Messages of a conversation, oldest first."""
    result = await session.exec(
        select(ChatMessage)
        .where(ChatMessage.conversation_id == conversation_id)
        .order_by(ChatMessage.created_at)
    )
    return list(result)


async def mark_as_read(session: AsyncSession, conversation_id: str, reader_id: str) -> int:
    """Mark messages sent by the other participant as read. Returns how many changed."""
    result = await session.exec(
        select(ChatMessage)
        .where(ChatMessage.conversation_id == conversation_id)
        .where(ChatMessage.sender_id != reader_id)
        .where(ChatMessage.is_read == False)  # noqa: E712
    )
    unread = list(result)

    for message in unread:
        message.is_read = True
        session.add(message)

    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Mark as read failed: {type(e).__name__}: {e}")
        raise PersistenceError(str(e)) from e

    return len(unread)
