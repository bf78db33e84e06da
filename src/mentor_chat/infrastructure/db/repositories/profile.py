from __future__ import annotations

from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mentor_chat.domain.entities.profile import Profile
from mentor_chat.infrastructure.db.mappers import profile as mapper
from mentor_chat.infrastructure.db.models import ProfileModel
from mentor_chat.infrastructure.db.repositories._errors import store_errors


class ProfileReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @store_errors
    async def get_by_id(self, user_id: UUID) -> Profile | None:
        model = await self._session.get(ProfileModel, user_id)
        return mapper.model_to_entity(model) if model else None

    @store_errors
    async def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, Profile]:
        ids = list(user_ids)
        if not ids:
            return {}
        result = await self._session.execute(
            select(ProfileModel).where(ProfileModel.id.in_(ids))
        )
        return {m.id: mapper.model_to_entity(m) for m in result.scalars().all()}
