from __future__ import annotations

from typing import Protocol
from uuid import UUID

from mentor_chat.domain.entities.connection import Connection


class ConnectionReader(Protocol):
    async def get_by_id(self, connection_id: UUID) -> Connection | None:
        """Connection with both participants' display names attached."""
        ...
