"""Import all models so Base.metadata sees every table."""
from mentor_chat.infrastructure.db.models.connection import ConnectionModel
from mentor_chat.infrastructure.db.models.message import MessageModel
from mentor_chat.infrastructure.db.models.outbox import OutboxMessageModel
from mentor_chat.infrastructure.db.models.profile import ProfileModel

__all__ = [
    "ConnectionModel",
    "MessageModel",
    "OutboxMessageModel",
    "ProfileModel",
]
