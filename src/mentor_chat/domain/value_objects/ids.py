"""Identity of a conversation entry.

An entry is either provisional (created locally at submit time and owned by
the local view only) or durable (assigned by the store on insert). Change
feed events only ever carry durable ids.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TypeAlias
from uuid import UUID


@dataclass(frozen=True, slots=True)
class ProvisionalId:
    local_id: UUID = field(default_factory=uuid.uuid4)

    def __str__(self) -> str:
        return f"temp-{self.local_id}"


@dataclass(frozen=True, slots=True)
class DurableId:
    id: UUID

    def __str__(self) -> str:
        return str(self.id)


EntryKey: TypeAlias = ProvisionalId | DurableId
