"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable
from uuid import UUID

import pytest

from mentor_chat.application.dto.principal import Principal
from mentor_chat.application.exceptions import StoreError
from mentor_chat.application.ports.change_feed import OnChange
from mentor_chat.application.repositories.outbox import OutboxRecord
from mentor_chat.domain.entities.connection import Connection
from mentor_chat.domain.entities.message import Message, NewMessage
from mentor_chat.domain.entities.profile import Profile
from mentor_chat.domain.events.message_changed import MessageChanged
from mentor_chat.domain.value_objects.enums import ConnectionStatus

MENTOR_ID = UUID("00000000-0000-0000-0000-00000000000a")
MENTEE_ID = UUID("00000000-0000-0000-0000-00000000000b")
STRANGER_ID = UUID("00000000-0000-0000-0000-00000000000c")

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def mentor_principal() -> Principal:
    return Principal(user_id=MENTOR_ID)


@pytest.fixture
def mentee_principal() -> Principal:
    return Principal(user_id=MENTEE_ID)


@pytest.fixture
def stranger_principal() -> Principal:
    return Principal(user_id=STRANGER_ID)


def make_connection(
    *,
    connection_id: UUID | None = None,
    mentor_id: UUID = MENTOR_ID,
    mentee_id: UUID = MENTEE_ID,
) -> Connection:
    return Connection(
        id=connection_id or uuid.uuid4(),
        mentor_id=mentor_id,
        mentee_id=mentee_id,
        status=ConnectionStatus.ACCEPTED,
        created_at=T0 - timedelta(days=7),
        mentor_name="Ada Mentor",
        mentee_name="Ben Mentee",
    )


def make_message(
    *,
    conversation_id: UUID,
    sender_id: UUID = MENTEE_ID,
    body: str = "hello",
    created_at: datetime = T0,
    read: bool = False,
    message_id: UUID | None = None,
) -> Message:
    return Message(
        id=message_id or uuid.uuid4(),
        conversation_id=conversation_id,
        sender_id=sender_id,
        body=body,
        created_at=created_at,
        read=read,
    )


@dataclass
class FixedClock:
    current: datetime = T0 + timedelta(hours=1)

    def now(self) -> datetime:
        return self.current


@dataclass
class FakeConnectionReader:
    _store: dict[UUID, Connection] = field(default_factory=dict)
    fail: bool = False

    async def get_by_id(self, connection_id: UUID) -> Connection | None:
        if self.fail:
            raise StoreError("connections unavailable")
        return self._store.get(connection_id)


@dataclass
class FakeProfileReader:
    _profiles: dict[UUID, Profile] = field(default_factory=dict)
    fail: bool = False

    async def get_by_id(self, user_id: UUID) -> Profile | None:
        if self.fail:
            raise StoreError("profiles unavailable")
        return self._profiles.get(user_id)

    async def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, Profile]:
        if self.fail:
            raise StoreError("profiles unavailable")
        return {uid: self._profiles[uid] for uid in user_ids if uid in self._profiles}


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)
    fail: bool = False

    async def list_for_conversation(self, conversation_id: UUID) -> list[Message]:
        if self.fail:
            raise StoreError("messages unavailable")
        rows = [m for m in self._messages if m.conversation_id == conversation_id]
        return sorted(rows, key=lambda m: m.created_at)


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    clock: FixedClock = field(default_factory=FixedClock)
    fail_insert: bool = False
    fail_mark_read: bool = False
    # when set, insert stores the row and then waits here before returning
    insert_gate: asyncio.Event | None = None
    inserts: int = 0

    async def insert(self, message: NewMessage) -> Message:
        if self.fail_insert:
            raise StoreError("insert failed")
        self.inserts += 1
        self.clock.current += timedelta(seconds=1)
        row = Message(
            id=uuid.uuid4(),
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            body=message.body,
            created_at=self.clock.current,
            read=False,
        )
        self._reader._messages.append(row)
        if self.insert_gate is not None:
            await self.insert_gate.wait()
        return row

    async def mark_read(
        self,
        conversation_id: UUID,
        reader_id: UUID,
        ids: Iterable[UUID],
    ) -> list[Message]:
        if self.fail_mark_read:
            raise StoreError("update failed")
        wanted = set(ids)
        changed: list[Message] = []
        for index, m in enumerate(self._reader._messages):
            if (
                m.id in wanted
                and m.conversation_id == conversation_id
                and m.sender_id != reader_id
                and not m.read
            ):
                updated = Message(
                    id=m.id,
                    conversation_id=m.conversation_id,
                    sender_id=m.sender_id,
                    body=m.body,
                    created_at=m.created_at,
                    read=True,
                )
                self._reader._messages[index] = updated
                changed.append(updated)
        return changed

    def get(self, message_id: UUID) -> Message:
        return next(m for m in self._reader._messages if m.id == message_id)


@dataclass
class FakeOutboxWriter:
    _records: list[dict[str, Any]] = field(default_factory=list)
    pending: list[OutboxRecord] = field(default_factory=list)
    sent: list[int] = field(default_factory=list)
    failed: list[tuple[int, datetime]] = field(default_factory=list)
    dead: list[int] = field(default_factory=list)

    async def add(self, event_type: str, conversation_id: UUID, payload: dict[str, Any]) -> None:
        self._records.append(
            {"event_type": event_type, "conversation_id": conversation_id, "payload": payload}
        )

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        batch, self.pending = self.pending[:batch_size], self.pending[batch_size:]
        return batch

    async def mark_sent(self, ids: list[int]) -> None:
        self.sent.extend(ids)

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        self.failed.append((record_id, next_retry_at))

    async def mark_dead(self, ids: list[int]) -> None:
        self.dead.extend(ids)


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests. Also usable as its own async context manager."""
    connections: FakeConnectionReader = field(default_factory=FakeConnectionReader)
    profiles: FakeProfileReader = field(default_factory=FakeProfileReader)
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    outbox: FakeOutboxWriter = field(default_factory=FakeOutboxWriter)
    _committed: bool = False
    _commits: int = 0

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True
        self._commits += 1

    async def rollback(self) -> None:
        pass

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        pass


def seeded_uow(connection: Connection) -> FakeUoW:
    uow = FakeUoW()
    uow.connections._store[connection.id] = connection
    uow.profiles._profiles[connection.mentor_id] = Profile(connection.mentor_id, connection.mentor_name or "")
    uow.profiles._profiles[connection.mentee_id] = Profile(connection.mentee_id, connection.mentee_name or "")
    return uow


@dataclass
class FakeSubscription:
    conversation_id: UUID
    on_insert: OnChange
    on_update: OnChange
    active: bool = True

    async def unsubscribe(self) -> None:
        self.active = False


@dataclass
class FakeChangeFeed:
    subscriptions: list[FakeSubscription] = field(default_factory=list)

    async def subscribe(
        self,
        conversation_id: UUID,
        on_insert: OnChange,
        on_update: OnChange,
    ) -> FakeSubscription:
        sub = FakeSubscription(conversation_id, on_insert, on_update)
        self.subscriptions.append(sub)
        return sub

    @property
    def active(self) -> list[FakeSubscription]:
        return [s for s in self.subscriptions if s.active]

    async def push(self, event: MessageChanged) -> None:
        for sub in self.active:
            if sub.conversation_id != event.message.conversation_id:
                continue
            handler = sub.on_insert if event.kind == "message.inserted" else sub.on_update
            await handler(event)

