from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mentor_chat.application.repositories.outbox import OutboxRecord
from mentor_chat.infrastructure.db.models import OutboxMessageModel
from mentor_chat.infrastructure.db.repositories._errors import store_errors


class OutboxWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @store_errors
    async def add(self, event_type: str, conversation_id: UUID, payload: dict[str, Any]) -> None:
        self._session.add(
            OutboxMessageModel(
                event_type=event_type,
                conversation_id=conversation_id,
                payload=payload,
            )
        )
        await self._session.flush()

    @store_errors
    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        # id order keeps events of one row in commit order
        stmt = (
            select(OutboxMessageModel)
            .where(
                OutboxMessageModel.status.in_(["pending", "failed"]),
                (
                    OutboxMessageModel.next_retry_at.is_(None)
                    | (OutboxMessageModel.next_retry_at <= datetime.now(timezone.utc))
                ),
            )
            .order_by(OutboxMessageModel.id.asc())
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        result = await self._session.execute(stmt)
        rows = result.scalars().all()

        if rows:
            await self._session.execute(
                update(OutboxMessageModel)
                .where(OutboxMessageModel.id.in_([r.id for r in rows]))
                .values(status="processing")
                .execution_options(synchronize_session=False)
            )
            await self._session.flush()

        return [
            OutboxRecord(
                id=r.id,
                event_type=r.event_type,
                conversation_id=r.conversation_id,
                payload=r.payload,
                attempts=r.attempts,
            )
            for r in rows
        ]

    @store_errors
    async def mark_sent(self, ids: list[int]) -> None:
        if not ids:
            return
        await self._session.execute(
            update(OutboxMessageModel)
            .where(OutboxMessageModel.id.in_(ids))
            .values(status="sent")
            .execution_options(synchronize_session=False)
        )

    @store_errors
    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        await self._session.execute(
            update(OutboxMessageModel)
            .where(OutboxMessageModel.id == record_id)
            .values(
                status="failed",
                attempts=OutboxMessageModel.attempts + 1,
                next_retry_at=next_retry_at,
            )
            .execution_options(synchronize_session=False)
        )

    @store_errors
    async def mark_dead(self, ids: list[int]) -> None:
        if not ids:
            return
        await self._session.execute(
            update(OutboxMessageModel)
            .where(OutboxMessageModel.id.in_(ids))
            .values(status="dead")
            .execution_options(synchronize_session=False)
        )
