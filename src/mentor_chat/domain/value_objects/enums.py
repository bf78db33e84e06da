from __future__ import annotations

from enum import StrEnum


class ConnectionStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ChangeKind(StrEnum):
    INSERT = "message.inserted"
    UPDATE = "message.updated"


class DeliveryState(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    READ = "read"
