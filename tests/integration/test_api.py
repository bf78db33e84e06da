"""Integration smoke tests for the REST API (in-memory UoW via dependency override)."""
from __future__ import annotations

import uuid

import jwt
import pytest
from fastapi.testclient import TestClient

from mentor_chat.api.deps import get_uow
from mentor_chat.app import create_app
from mentor_chat.config import settings
from tests.conftest import (
    MENTEE_ID,
    MENTOR_ID,
    STRANGER_ID,
    T0,
    make_connection,
    make_message,
    seeded_uow,
)


def _make_token(sub: uuid.UUID = MENTOR_ID) -> str:
    return jwt.encode({"sub": str(sub)}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _auth(sub: uuid.UUID = MENTOR_ID) -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(sub)}"}


@pytest.fixture
def connection():
    return make_connection()


@pytest.fixture
def uow(connection):
    return seeded_uow(connection)


@pytest.fixture
def client(uow):
    app = create_app()

    async def _override():
        yield uow

    app.dependency_overrides[get_uow] = _override
    return TestClient(app, raise_server_exceptions=False)


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_list_messages_in_order(client, uow, connection):
    later = make_message(conversation_id=connection.id, body="second", created_at=T0.replace(minute=5))
    earlier = make_message(conversation_id=connection.id, body="first", created_at=T0)
    uow.messages._messages.extend([later, earlier])

    resp = client.get(f"/api/v1/connections/{connection.id}/messages", headers=_auth())

    assert resp.status_code == 200
    assert [m["body"] for m in resp.json()] == ["first", "second"]


def test_send_message(client, uow, connection):
    resp = client.post(
        f"/api/v1/connections/{connection.id}/messages",
        json={"body": "  see you at 3  "},
        headers=_auth(),
    )

    assert resp.status_code == 201
    data = resp.json()
    assert data["body"] == "see you at 3"
    assert data["sender_id"] == str(MENTOR_ID)
    assert data["read"] is False
    assert uow._committed is True
    assert uow.outbox._records[0]["event_type"] == "message.inserted"


def test_send_blank_message_is_rejected(client, uow, connection):
    resp = client.post(
        f"/api/v1/connections/{connection.id}/messages",
        json={"body": "   "},
        headers=_auth(),
    )

    assert resp.status_code == 422
    assert uow.messages._messages == []


def test_stranger_cannot_read_conversation(client, connection):
    resp = client.get(f"/api/v1/connections/{connection.id}/messages", headers=_auth(STRANGER_ID))
    assert resp.status_code == 403


def test_unknown_connection(client):
    resp = client.get(f"/api/v1/connections/{uuid.uuid4()}/messages", headers=_auth())
    assert resp.status_code == 404


def test_invalid_token(client, connection):
    resp = client.get(
        f"/api/v1/connections/{connection.id}/messages",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert resp.status_code == 401


def test_mark_read_only_touches_counterpart_messages(client, uow, connection):
    theirs = make_message(conversation_id=connection.id, sender_id=MENTEE_ID)
    mine = make_message(conversation_id=connection.id, sender_id=MENTOR_ID)
    uow.messages._messages.extend([theirs, mine])

    resp = client.post(
        f"/api/v1/connections/{connection.id}/messages/read",
        json={"ids": [str(theirs.id), str(mine.id)]},
        headers=_auth(),
    )

    assert resp.status_code == 200
    assert resp.json()["updated"] == [str(theirs.id)]
    assert [r["event_type"] for r in uow.outbox._records] == ["message.updated"]


def test_store_outage_maps_to_503(client, uow, connection):
    uow.messages.fail = True

    resp = client.get(f"/api/v1/connections/{connection.id}/messages", headers=_auth())

    assert resp.status_code == 503
