from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from mentor_chat.domain.entities.message import Message
from mentor_chat.domain.events.message_changed import MessageChanged
from mentor_chat.domain.value_objects.enums import ChangeKind


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


class MessageRow(BaseModel):
    """Row snapshot as carried on the change feed."""

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    body: str
    created_at: datetime
    read: bool = False

    def to_entity(self) -> Message:
        return Message(**self.model_dump())


def serialize_event(event_type: str, payload: dict[str, Any]) -> str:
    envelope = {"event": event_type, "data": payload}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    data = json.loads(raw)
    return data["event"], data["data"]


def decode_change(raw: str | bytes) -> MessageChanged:
    """Parse a feed envelope. Raises ValueError/KeyError on malformed input."""
    event_type, data = deserialize_event(raw)
    row = MessageRow.model_validate(data)
    return MessageChanged(kind=ChangeKind(event_type), message=row.to_entity())
