from __future__ import annotations

from typing import Iterable, Protocol
from uuid import UUID

from mentor_chat.domain.entities.message import Message, NewMessage


class MessageReader(Protocol):
    async def list_for_conversation(self, conversation_id: UUID) -> list[Message]:
        """All messages of the conversation, oldest first."""
        ...


class MessageWriter(Protocol):
    async def insert(self, message: NewMessage) -> Message:
        """Insert and return the stored row with its durable id and timestamp."""
        ...

    async def mark_read(
        self,
        conversation_id: UUID,
        reader_id: UUID,
        ids: Iterable[UUID],
    ) -> list[Message]:
        """Flip ``read`` on unread messages not authored by ``reader_id``.

        Returns only the rows that actually changed.
        """
        ...
