from __future__ import annotations

from typing import Any, Callable, Coroutine, Protocol
from uuid import UUID

from mentor_chat.domain.events.message_changed import MessageChanged

OnChange = Callable[[MessageChanged], Coroutine[Any, Any, None]]


class FeedSubscription(Protocol):
    async def unsubscribe(self) -> None: ...


class ChangeFeed(Protocol):
    """Row-level insert/update notifications for one conversation.

    Delivery is at-least-once and each event carries a full row snapshot.
    """

    async def subscribe(
        self,
        conversation_id: UUID,
        on_insert: OnChange,
        on_update: OnChange,
    ) -> FeedSubscription: ...
