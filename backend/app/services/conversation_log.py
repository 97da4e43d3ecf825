"""Durable conversation log (PostgreSQL).

Independent of the in-memory SessionStore: a voice turn never waits on it.
Conversations are keyed by a long-lived identifier chosen by the caller.

Usage:
    async with get_session_context() as db:
        log = ConversationLogService(db)
        await log.ensure_conversation_exists(conversation_id)
        await log.save_message(conversation_id, "user", "hello")
        history = await log.get_conversation_history(conversation_id)
"""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

from sqlalchemy import select, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.domains.voice.session_store import VALID_ROLES
from app.models.conversation import Conversation, Message

logger = logging.getLogger("db")


class ConversationLogService:
    """Append-only message log on top of an AsyncSession.

    The caller owns the transaction (see ``get_session_context``).
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def health_check(self) -> None:
        """Raise if the database cannot answer ``SELECT 1``."""
        await self._session.execute(text("SELECT 1"))

    async def ensure_conversation_exists(self, conversation_id: UUID) -> None:
        """Insert the conversation row unless it already exists."""
        stmt = (
            insert(Conversation)
            .values(id=conversation_id)
            .on_conflict_do_nothing(index_elements=[Conversation.id])
        )
        await self._session.execute(stmt)

    async def save_message(
        self,
        conversation_id: UUID,
        role: str,
        content: str,
        tokens_used: int | None = None,
    ) -> UUID:
        """Append a message and return its id."""
        if role not in VALID_ROLES:
            raise ValueError(f"Invalid role: {role!r}")

        message = Message(
            id=uuid4(),
            conversation_id=conversation_id,
            role=role,
            content=content,
            tokens_used=tokens_used,
        )
        self._session.add(message)
        await self._session.flush()

        logger.debug(
            "Conversation message saved",
            extra={
                "service": "db",
                "session_id": str(conversation_id),
                "metadata": {"role": role, "message_id": str(message.id)},
            },
        )
        return message.id

    async def get_conversation_history(self, conversation_id: UUID) -> list[Message]:
        """Messages of a conversation, oldest first."""
        result = await self._session.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc())
        )
        return list(result.scalars().all())
