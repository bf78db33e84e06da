"""Display helpers for a conversation view.

Pure functions over adjacent entries. They decide layout only and carry no
consistency guarantees.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo
from uuid import UUID

from mentor_chat.domain.entities.entry import ConversationEntry
from mentor_chat.domain.value_objects.enums import DeliveryState

DEFAULT_GROUP_WINDOW = timedelta(minutes=5)


def _local_date(ts: datetime, tz: tzinfo | None) -> date:
    if tz is not None and ts.tzinfo is not None:
        ts = ts.astimezone(tz)
    return ts.date()


def needs_date_separator(
    current: ConversationEntry,
    previous: ConversationEntry | None,
    tz: tzinfo | None = None,
) -> bool:
    if previous is None:
        return True
    return _local_date(current.created_at, tz) != _local_date(previous.created_at, tz)


def groups_with_previous(
    current: ConversationEntry,
    previous: ConversationEntry | None,
    window: timedelta = DEFAULT_GROUP_WINDOW,
) -> bool:
    """Same sender and posted within ``window`` of the previous entry."""
    if previous is None:
        return False
    return (
        current.sender_id == previous.sender_id
        and current.created_at - previous.created_at < window
    )


def is_own(entry: ConversationEntry, viewer_id: UUID) -> bool:
    return entry.sender_id == viewer_id


def delivery_state(entry: ConversationEntry) -> DeliveryState:
    if entry.is_provisional:
        return DeliveryState.PENDING
    if entry.read:
        return DeliveryState.READ
    return DeliveryState.SENT


def _clock(ts: datetime) -> str:
    return f"{ts.hour % 12 or 12}:{ts:%M %p}"


def _relative_day(ts: datetime, now: datetime | None) -> tuple[datetime, int | None]:
    now = now or datetime.now(timezone.utc)
    if ts.tzinfo is not None and now.tzinfo is not None:
        ts = ts.astimezone(now.tzinfo)
    delta = (now.date() - ts.date()).days
    return ts, delta if delta in (0, 1) else None


def format_message_time(ts: datetime, now: datetime | None = None) -> str:
    ts, days_ago = _relative_day(ts, now)
    if days_ago == 0:
        return _clock(ts)
    if days_ago == 1:
        return f"Yesterday {_clock(ts)}"
    return f"{ts:%b} {ts.day}, {_clock(ts)}"


def format_date_separator(ts: datetime, now: datetime | None = None) -> str:
    ts, days_ago = _relative_day(ts, now)
    if days_ago == 0:
        return "Today"
    if days_ago == 1:
        return "Yesterday"
    return f"{ts:%B} {ts.day}, {ts.year}"
