from __future__ import annotations

import uuid

import pytest

from mentor_chat.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from mentor_chat.services import message_service
from tests.conftest import MENTEE_ID, MENTOR_ID, make_connection, make_message, seeded_uow


@pytest.fixture
def uow_with_connection():
    conn = make_connection()
    return seeded_uow(conn), conn


@pytest.mark.asyncio
async def test_send_message_creates_message(mentor_principal, uow_with_connection):
    uow, conn = uow_with_connection

    msg = await message_service.send_message(conn.id, mentor_principal, "  hello  ", uow)

    assert msg.body == "hello"
    assert msg.conversation_id == conn.id
    assert msg.sender_id == MENTOR_ID
    assert msg.read is False
    assert uow._committed is True


@pytest.mark.asyncio
async def test_send_message_writes_insert_event(mentor_principal, uow_with_connection):
    uow, conn = uow_with_connection

    msg = await message_service.send_message(conn.id, mentor_principal, "test", uow)

    assert len(uow.outbox._records) == 1
    record = uow.outbox._records[0]
    assert record["event_type"] == "message.inserted"
    assert record["conversation_id"] == conn.id
    assert record["payload"]["id"] == str(msg.id)
    assert record["payload"]["body"] == "test"
    assert record["payload"]["read"] is False


@pytest.mark.asyncio
async def test_send_message_rejects_blank_body_before_io(mentor_principal, uow_with_connection):
    uow, conn = uow_with_connection

    with pytest.raises(ValidationError):
        await message_service.send_message(conn.id, mentor_principal, "   ", uow)

    assert uow.messages_w.inserts == 0
    assert uow._committed is False


@pytest.mark.asyncio
async def test_send_message_rejects_oversized_body(mentor_principal, uow_with_connection):
    uow, conn = uow_with_connection

    with pytest.raises(ValidationError):
        await message_service.send_message(conn.id, mentor_principal, "x" * 11, uow, max_length=10)


@pytest.mark.asyncio
async def test_send_message_forbidden_for_non_participant(stranger_principal, uow_with_connection):
    uow, conn = uow_with_connection

    with pytest.raises(ForbiddenError):
        await message_service.send_message(conn.id, stranger_principal, "hi", uow)


@pytest.mark.asyncio
async def test_send_message_store_failure_propagates(mentor_principal, uow_with_connection):
    uow, conn = uow_with_connection
    uow.messages_w.fail_insert = True

    with pytest.raises(StoreError):
        await message_service.send_message(conn.id, mentor_principal, "hi", uow)

    assert uow.outbox._records == []
    assert uow._committed is False


@pytest.mark.asyncio
async def test_list_messages_unknown_connection(mentor_principal):
    uow = seeded_uow(make_connection())

    with pytest.raises(NotFoundError):
        await message_service.list_messages(uuid.uuid4(), mentor_principal, uow)


@pytest.mark.asyncio
async def test_mark_read_skips_own_and_already_read(mentor_principal, uow_with_connection):
    uow, conn = uow_with_connection
    incoming = make_message(conversation_id=conn.id, sender_id=MENTEE_ID)
    already = make_message(conversation_id=conn.id, sender_id=MENTEE_ID, read=True)
    own = make_message(conversation_id=conn.id, sender_id=MENTOR_ID)
    uow.messages._messages.extend([incoming, already, own])

    changed = await message_service.mark_read(
        conn.id, mentor_principal, [incoming.id, already.id, own.id], uow,
    )

    assert [m.id for m in changed] == [incoming.id]
    assert [r["event_type"] for r in uow.outbox._records] == ["message.updated"]
    assert uow.outbox._records[0]["payload"]["read"] is True
    assert uow._commits == 1


@pytest.mark.asyncio
async def test_mark_read_with_nothing_to_do_does_not_commit(mentor_principal, uow_with_connection):
    uow, conn = uow_with_connection

    assert await message_service.mark_read(conn.id, mentor_principal, [], uow) == []
    assert await message_service.mark_read(conn.id, mentor_principal, [uuid.uuid4()], uow) == []
    assert uow._committed is False


@pytest.mark.asyncio
async def test_resolve_sender_names(uow_with_connection):
    uow, conn = uow_with_connection

    names = await message_service.resolve_sender_names([MENTOR_ID, MENTEE_ID, uuid.uuid4()], uow)

    assert names == {MENTOR_ID: "Ada Mentor", MENTEE_ID: "Ben Mentee"}
