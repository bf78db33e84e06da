from __future__ import annotations

from dataclasses import dataclass

from mentor_chat.domain.entities.message import Message
from mentor_chat.domain.value_objects.enums import ChangeKind


@dataclass(frozen=True, slots=True)
class MessageChanged:
    """Change feed event: a full row snapshot after an insert or update."""

    kind: ChangeKind
    message: Message
