from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    """A durable message row as stored."""

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    body: str
    created_at: datetime
    read: bool = False


@dataclass(frozen=True, slots=True)
class NewMessage:
    """Insert payload: the store assigns ``id`` and ``created_at``."""

    conversation_id: UUID
    sender_id: UUID
    body: str
