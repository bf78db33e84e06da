from __future__ import annotations

from typing import Any, Iterable
from uuid import UUID

from mentor_chat.application.dto.principal import Principal
from mentor_chat.application.exceptions import ValidationError
from mentor_chat.application.policies.permissions import assert_connection_access
from mentor_chat.application.uow import UnitOfWork
from mentor_chat.domain.entities.connection import Connection
from mentor_chat.domain.entities.message import Message, NewMessage
from mentor_chat.domain.value_objects.enums import ChangeKind

MAX_BODY_LENGTH = 4000


def normalize_body(body: str | None, max_length: int = MAX_BODY_LENGTH) -> str:
    """Trim the body and reject empty or oversized input before any I/O."""
    text = (body or "").strip()
    if not text:
        raise ValidationError("Message body must not be empty")
    if len(text) > max_length:
        raise ValidationError(f"Message body exceeds {max_length} characters")
    return text


def message_snapshot(message: Message) -> dict[str, Any]:
    """Full row snapshot carried by change feed events."""
    return {
        "id": str(message.id),
        "conversation_id": str(message.conversation_id),
        "sender_id": str(message.sender_id),
        "body": message.body,
        "created_at": message.created_at.isoformat(),
        "read": message.read,
    }


async def get_connection(
    connection_id: UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> Connection:
    connection = await uow.connections.get_by_id(connection_id)
    return assert_connection_access(principal, connection)


async def list_messages(
    connection_id: UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> list[Message]:
    await get_connection(connection_id, principal, uow)
    return await uow.messages.list_for_conversation(connection_id)


async def send_message(
    connection_id: UUID,
    principal: Principal,
    body: str | None,
    uow: UnitOfWork,
    *,
    max_length: int = MAX_BODY_LENGTH,
) -> Message:
    """Insert a message and queue its change feed event in the same transaction."""
    text = normalize_body(body, max_length)
    await get_connection(connection_id, principal, uow)

    msg = await uow.messages_w.insert(
        NewMessage(conversation_id=connection_id, sender_id=principal.user_id, body=text)
    )
    await uow.outbox.add(ChangeKind.INSERT.value, msg.conversation_id, message_snapshot(msg))
    await uow.commit()
    return msg


async def mark_read(
    connection_id: UUID,
    principal: Principal,
    ids: Iterable[UUID],
    uow: UnitOfWork,
) -> list[Message]:
    """Mark other participants' messages read. Own messages are left untouched."""
    wanted = set(ids)
    if not wanted:
        return []
    await get_connection(connection_id, principal, uow)

    changed = await uow.messages_w.mark_read(connection_id, principal.user_id, wanted)
    for msg in changed:
        await uow.outbox.add(ChangeKind.UPDATE.value, msg.conversation_id, message_snapshot(msg))
    if changed:
        await uow.commit()
    return changed


async def resolve_sender_names(
    sender_ids: Iterable[UUID],
    uow: UnitOfWork,
) -> dict[UUID, str]:
    profiles = await uow.profiles.get_many(set(sender_ids))
    return {user_id: profile.name for user_id, profile in profiles.items()}


async def resolve_sender_name(sender_id: UUID, uow: UnitOfWork) -> str | None:
    profile = await uow.profiles.get_by_id(sender_id)
    return profile.name if profile else None
