from __future__ import annotations

from mentor_chat.domain.entities.message import Message
from mentor_chat.infrastructure.db.models import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.connection_id,
        sender_id=model.sender_id,
        body=model.content,
        created_at=model.created_at,
        read=model.read,
    )
