from __future__ import annotations

from mentor_chat.domain.entities.connection import Connection
from mentor_chat.infrastructure.db.models import ConnectionModel


def model_to_entity(model: ConnectionModel) -> Connection:
    return Connection(
        id=model.id,
        mentor_id=model.mentor_id,
        mentee_id=model.mentee_id,
        status=model.status,
        created_at=model.created_at,
        mentor_name=model.mentor.name if model.mentor else None,
        mentee_name=model.mentee.name if model.mentee else None,
    )
