from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Connection:
    id: UUID
    mentor_id: UUID
    mentee_id: UUID
    status: str
    created_at: datetime
    mentor_name: str | None = None
    mentee_name: str | None = None

    def has_member(self, user_id: UUID) -> bool:
        return user_id in (self.mentor_id, self.mentee_id)

    def counterpart_name(self, user_id: UUID) -> str | None:
        """Display name of the other side of the connection."""
        if user_id == self.mentor_id:
            return self.mentee_name
        return self.mentor_name
