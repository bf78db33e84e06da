from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mentor_chat.domain.entities.connection import Connection
from mentor_chat.infrastructure.db.mappers import connection as mapper
from mentor_chat.infrastructure.db.models import ConnectionModel
from mentor_chat.infrastructure.db.repositories._errors import store_errors


class ConnectionReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @store_errors
    async def get_by_id(self, connection_id: UUID) -> Connection | None:
        result = await self._session.execute(
            select(ConnectionModel).where(ConnectionModel.id == connection_id)
        )
        model = result.unique().scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None
