from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID

from mentor_chat.domain.entities.message import Message
from mentor_chat.domain.value_objects.ids import DurableId, EntryKey, ProvisionalId

OWN_SENDER_FALLBACK = "You"


@dataclass(frozen=True, slots=True)
class ConversationEntry:
    """A message as it appears in a conversation view."""

    key: EntryKey
    conversation_id: UUID
    sender_id: UUID
    body: str
    created_at: datetime
    read: bool = False
    sender_name: str | None = None

    @property
    def is_provisional(self) -> bool:
        return isinstance(self.key, ProvisionalId)

    @property
    def durable_id(self) -> UUID | None:
        if isinstance(self.key, DurableId):
            return self.key.id
        return None

    @classmethod
    def from_message(cls, message: Message, sender_name: str | None = None) -> ConversationEntry:
        return cls(
            key=DurableId(message.id),
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            body=message.body,
            created_at=message.created_at,
            read=message.read,
            sender_name=sender_name,
        )

    @classmethod
    def provisional(
        cls,
        conversation_id: UUID,
        sender_id: UUID,
        body: str,
        created_at: datetime,
    ) -> ConversationEntry:
        return cls(
            key=ProvisionalId(),
            conversation_id=conversation_id,
            sender_id=sender_id,
            body=body,
            created_at=created_at,
            read=False,
            sender_name=OWN_SENDER_FALLBACK,
        )

    def with_read(self, read: bool) -> ConversationEntry:
        return replace(self, read=read)
