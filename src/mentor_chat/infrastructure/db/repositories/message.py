from __future__ import annotations

from typing import Iterable
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mentor_chat.domain.entities.message import Message, NewMessage
from mentor_chat.infrastructure.db.mappers import message as mapper
from mentor_chat.infrastructure.db.models import MessageModel
from mentor_chat.infrastructure.db.repositories._errors import store_errors


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @store_errors
    async def list_for_conversation(self, conversation_id: UUID) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.connection_id == conversation_id)
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @store_errors
    async def insert(self, message: NewMessage) -> Message:
        stmt = (
            insert(MessageModel)
            .values(
                connection_id=message.conversation_id,
                sender_id=message.sender_id,
                content=message.body,
            )
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        return mapper.model_to_entity(result.scalar_one())

    @store_errors
    async def mark_read(
        self,
        conversation_id: UUID,
        reader_id: UUID,
        ids: Iterable[UUID],
    ) -> list[Message]:
        ids = list(ids)
        if not ids:
            return []
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.id.in_(ids),
                MessageModel.connection_id == conversation_id,
                MessageModel.sender_id != reader_id,
                MessageModel.read.is_(False),
            )
            .values(read=True)
            .returning(MessageModel)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]
