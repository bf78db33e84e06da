"""WebSocket message envelope models."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Sequence
from uuid import UUID

from pydantic import BaseModel

from mentor_chat.domain import presentation
from mentor_chat.domain.entities.entry import ConversationEntry


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # message.send | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # view.snapshot | message.sent | error | pong
    data: dict[str, Any] = {}


class EntryOut(BaseModel):
    id: str
    provisional: bool
    sender_id: str
    sender_name: str | None
    body: str
    created_at: datetime
    read: bool
    delivery: str
    own: bool = False
    time_label: str = ""
    date_separator: str | None = None
    grouped: bool = False

    @classmethod
    def from_entry(
        cls,
        entry: ConversationEntry,
        previous: ConversationEntry | None = None,
        *,
        viewer_id: UUID | None = None,
        window: timedelta = presentation.DEFAULT_GROUP_WINDOW,
        now: datetime | None = None,
    ) -> EntryOut:
        separator = None
        if presentation.needs_date_separator(entry, previous):
            separator = presentation.format_date_separator(entry.created_at, now)
        return cls(
            id=str(entry.key),
            provisional=entry.is_provisional,
            sender_id=str(entry.sender_id),
            sender_name=entry.sender_name,
            body=entry.body,
            created_at=entry.created_at,
            read=entry.read,
            delivery=presentation.delivery_state(entry).value,
            own=viewer_id is not None and presentation.is_own(entry, viewer_id),
            time_label=presentation.format_message_time(entry.created_at, now),
            date_separator=separator,
            grouped=presentation.groups_with_previous(entry, previous, window),
        )


def render_entries(
    entries: Sequence[ConversationEntry],
    viewer_id: UUID | None,
    window: timedelta = presentation.DEFAULT_GROUP_WINDOW,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    rows = []
    previous = None
    for entry in entries:
        out = EntryOut.from_entry(entry, previous, viewer_id=viewer_id, window=window, now=now)
        rows.append(out.model_dump(mode="json"))
        previous = entry
    return rows
