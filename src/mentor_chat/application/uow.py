from __future__ import annotations

from typing import Protocol

from mentor_chat.application.repositories.connection import ConnectionReader
from mentor_chat.application.repositories.message import MessageReader, MessageWriter
from mentor_chat.application.repositories.outbox import OutboxWriter
from mentor_chat.application.repositories.profile import ProfileReader


class UnitOfWork(Protocol):
    connections: ConnectionReader
    profiles: ProfileReader
    messages: MessageReader
    messages_w: MessageWriter
    outbox: OutboxWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
