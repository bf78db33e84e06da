"""Live view of one two-party conversation.

The view merges three sources into a single ordered list:

* the historical load issued when the view is opened,
* local sends, shown immediately under a provisional id and swapped for the
  stored row once the insert is acknowledged,
* insert/update events pushed by the change feed, consumed one at a time
  from an inbound queue.

Durable ids are unique within the view. Feed events never carry provisional
ids, so echo suppression only compares durable ids.
"""
from __future__ import annotations

import asyncio
import bisect
import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Iterable, Self
from uuid import UUID

from mentor_chat.application.dto.principal import Principal
from mentor_chat.application.exceptions import (
    AppError,
    ConflictError,
    SendInProgressError,
    StoreError,
    UnauthenticatedError,
)
from mentor_chat.application.ports.change_feed import ChangeFeed, FeedSubscription
from mentor_chat.application.ports.clock import Clock, SystemClock
from mentor_chat.application.ports.identity import IdentityProvider
from mentor_chat.application.uow import UnitOfWork
from mentor_chat.domain.entities.connection import Connection
from mentor_chat.domain.entities.entry import OWN_SENDER_FALLBACK, ConversationEntry
from mentor_chat.domain.events.message_changed import MessageChanged
from mentor_chat.domain.value_objects.enums import ChangeKind
from mentor_chat.domain.value_objects.ids import DurableId, EntryKey
from mentor_chat.services import message_service

logger = logging.getLogger(__name__)

UowFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
ChangeListener = Callable[[tuple[ConversationEntry, ...]], None]


@dataclass(slots=True)
class ViewContext:
    """Session state that lives exactly as long as the view is open."""

    principal: Principal
    connection: Connection
    subscription: FeedSubscription | None = None
    consumer: asyncio.Task[None] | None = None
    sending: bool = False


class ConversationView:
    def __init__(
        self,
        conversation_id: UUID,
        identity: IdentityProvider,
        uow_factory: UowFactory,
        feed: ChangeFeed,
        *,
        clock: Clock | None = None,
        max_body_length: int = message_service.MAX_BODY_LENGTH,
    ) -> None:
        self.conversation_id = conversation_id
        self._identity = identity
        self._uow_factory = uow_factory
        self._feed = feed
        self._clock = clock or SystemClock()
        self._max_body_length = max_body_length

        self._ctx: ViewContext | None = None
        self._entries: list[ConversationEntry] = []
        self._durable: set[UUID] = set()
        self._names: dict[UUID, str] = {}
        self._events: asyncio.Queue[MessageChanged] = asyncio.Queue()
        self._side_effects: set[asyncio.Task[None]] = set()
        self._listeners: list[ChangeListener] = []
        self.draft = ""

    # -- state ------------------------------------------------------------

    @property
    def entries(self) -> tuple[ConversationEntry, ...]:
        return tuple(self._entries)

    @property
    def is_open(self) -> bool:
        return self._ctx is not None

    @property
    def is_sending(self) -> bool:
        return self._ctx is not None and self._ctx.sending

    @property
    def viewer_id(self) -> UUID | None:
        return self._ctx.principal.user_id if self._ctx else None

    @property
    def counterpart_name(self) -> str | None:
        if self._ctx is None:
            return None
        return self._ctx.connection.counterpart_name(self._ctx.principal.user_id)

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        self._listeners.remove(listener)

    # -- lifecycle --------------------------------------------------------

    async def open(self) -> None:
        """Load history, then subscribe to the change feed."""
        if self._ctx is not None:
            raise ConflictError("Conversation view is already open")

        principal = await self._identity.current_user()
        if principal is None:
            raise UnauthenticatedError("Sign in to view messages")

        async with self._uow_factory() as uow:
            connection = await message_service.get_connection(
                self.conversation_id, principal, uow,
            )
        ctx = ViewContext(principal=principal, connection=connection)
        self._ctx = ctx

        try:
            await self.load()
            ctx.subscription = await self._feed.subscribe(
                self.conversation_id, self._enqueue, self._enqueue,
            )
        except BaseException:
            self._ctx = None
            raise

        ctx.consumer = asyncio.create_task(
            self._consume(), name=f"conversation-view-{self.conversation_id}",
        )
        logger.info("Conversation view opened: %s", self.conversation_id)

    async def close(self) -> None:
        ctx, self._ctx = self._ctx, None
        if ctx is None:
            return

        if ctx.subscription is not None:
            await ctx.subscription.unsubscribe()
        if ctx.consumer is not None:
            ctx.consumer.cancel()
            try:
                await ctx.consumer
            except asyncio.CancelledError:
                pass
        if self._side_effects:
            await asyncio.gather(*self._side_effects, return_exceptions=True)

        self._events = asyncio.Queue()
        logger.info("Conversation view closed: %s", self.conversation_id)

    async def switch_to(self, conversation_id: UUID) -> None:
        """Tear down the current subscription and open another conversation."""
        await self.close()
        self.conversation_id = conversation_id
        self._entries = []
        self._durable = set()
        self._names = {}
        self.draft = ""
        self._notify()
        await self.open()

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def drain(self) -> None:
        """Wait until queued feed events and read-mark side effects are done."""
        if self._ctx is not None and self._ctx.consumer is not None:
            await self._events.join()
        while self._side_effects:
            await asyncio.gather(*self._side_effects, return_exceptions=True)

    # -- operations -------------------------------------------------------

    async def load(self) -> None:
        """Replace the view with the stored history of the conversation."""
        ctx = self._require_open()
        try:
            async with self._uow_factory() as uow:
                messages = await message_service.list_messages(
                    self.conversation_id, ctx.principal, uow,
                )
                names = await message_service.resolve_sender_names(
                    {m.sender_id for m in messages}, uow,
                )
        except StoreError:
            if self._ctx is ctx:
                self._entries = []
                self._durable = set()
                self._notify()
            raise
        if self._ctx is not ctx:
            return

        self._names.update(names)
        self._entries = [
            ConversationEntry.from_message(m, names.get(m.sender_id)) for m in messages
        ]
        self._durable = {m.id for m in messages}
        self._notify()

        unread = [
            m.id for m in messages
            if m.sender_id != ctx.principal.user_id and not m.read
        ]
        if unread:
            self._spawn(self._mark_read(ctx, unread))

    async def send(self, body: str | None = None) -> ConversationEntry:
        """Send ``body`` (or the current draft) with an optimistic entry.

        On failure or cancellation the provisional entry is dropped, the text
        goes back into ``draft`` and the error propagates. A send that
        completes after the view was closed or switched is not merged into it.
        """
        ctx = self._require_open()
        if ctx.sending:
            raise SendInProgressError("A message is already being sent")
        text = message_service.normalize_body(
            self.draft if body is None else body, self._max_body_length,
        )

        conversation_id = self.conversation_id
        ctx.sending = True
        provisional = ConversationEntry.provisional(
            conversation_id, ctx.principal.user_id, text, self._clock.now(),
        )
        self._entries.append(provisional)
        self.draft = ""
        self._notify()

        try:
            async with self._uow_factory() as uow:
                message = await message_service.send_message(
                    conversation_id,
                    ctx.principal,
                    text,
                    uow,
                    max_length=self._max_body_length,
                )
        except BaseException:
            logger.warning("Send failed in %s, rolling back", conversation_id)
            ctx.sending = False
            self._remove(provisional.key)
            if self._ctx is ctx:
                self.draft = text
            self._notify()
            raise

        sender_name = None
        try:
            sender_name = await self._resolve_name(ctx.principal.user_id)
        finally:
            ctx.sending = False
            entry = ConversationEntry.from_message(message, sender_name or OWN_SENDER_FALLBACK)
            if self._ctx is ctx:
                self._settle(provisional.key, entry)
            else:
                # closed or switched while the insert was pending
                logger.info("Send in %s settled after the view moved on", conversation_id)
                self._remove(provisional.key)
                self._notify()
        return entry

    async def on_remote_insert(self, event: MessageChanged) -> None:
        ctx = self._ctx
        message = event.message
        if ctx is None or message.conversation_id != self.conversation_id:
            return
        if message.id in self._durable:
            logger.debug("Echo suppressed: %s", message.id)
            return

        sender_name = self._names.get(message.sender_id)
        if sender_name is None:
            sender_name = await self._resolve_name(message.sender_id)

        # the view may have moved on, or a send ack landed, during the lookup
        if self._ctx is not ctx or message.id in self._durable:
            return
        self._insert_ordered(ConversationEntry.from_message(message, sender_name))
        self._notify()

        if message.sender_id != ctx.principal.user_id and not message.read:
            self._spawn(self._mark_read(ctx, [message.id]))

    async def on_remote_update(self, event: MessageChanged) -> None:
        message = event.message
        if self._ctx is None or message.id not in self._durable:
            logger.debug("Update for unknown message ignored: %s", message.id)
            return
        index = self._index_of(DurableId(message.id))
        if index is None:
            return
        current = self._entries[index]
        if current.read == message.read:
            return
        self._entries[index] = current.with_read(message.read)
        self._notify()

    # -- internals --------------------------------------------------------

    def _require_open(self) -> ViewContext:
        if self._ctx is None:
            raise ConflictError("Conversation view is not open")
        return self._ctx

    async def _enqueue(self, event: MessageChanged) -> None:
        self._events.put_nowait(event)

    async def _consume(self) -> None:
        while True:
            event = await self._events.get()
            try:
                if event.kind == ChangeKind.INSERT:
                    await self.on_remote_insert(event)
                else:
                    await self.on_remote_update(event)
            except Exception:
                logger.exception("Failed to apply %s for %s", event.kind, event.message.id)
            finally:
                self._events.task_done()

    async def _resolve_name(self, user_id: UUID) -> str | None:
        """Fresh profile lookup; None when the profile is missing or the store fails."""
        try:
            async with self._uow_factory() as uow:
                name = await message_service.resolve_sender_name(user_id, uow)
        except StoreError:
            logger.warning("Sender lookup failed for %s", user_id, exc_info=True)
            return None
        if name is not None:
            self._names[user_id] = name
        return name

    async def _mark_read(self, ctx: ViewContext, ids: Iterable[UUID]) -> None:
        ids = list(ids)
        try:
            async with self._uow_factory() as uow:
                await message_service.mark_read(ctx.connection.id, ctx.principal, ids, uow)
        except AppError:
            logger.warning(
                "Could not mark %d message(s) read in %s",
                len(ids), ctx.connection.id, exc_info=True,
            )

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._side_effects.add(task)
        task.add_done_callback(self._side_effects.discard)

    def _index_of(self, key: EntryKey) -> int | None:
        for index, entry in enumerate(self._entries):
            if entry.key == key:
                return index
        return None

    def _remove(self, key: EntryKey) -> None:
        index = self._index_of(key)
        if index is not None:
            del self._entries[index]

    def _insert_ordered(self, entry: ConversationEntry) -> None:
        if entry.durable_id is not None:
            self._durable.add(entry.durable_id)
        bisect.insort_right(self._entries, entry, key=lambda e: e.created_at)

    def _settle(self, provisional: EntryKey, entry: ConversationEntry) -> None:
        """Swap a provisional entry for its durable row, keeping its position."""
        index = self._index_of(provisional)
        if entry.durable_id in self._durable:
            # the feed delivered the row before the insert returned
            if index is not None:
                del self._entries[index]
        elif index is None:
            self._insert_ordered(entry)
        else:
            self._entries[index] = entry
            if entry.durable_id is not None:
                self._durable.add(entry.durable_id)
        self._notify()

    def _notify(self) -> None:
        snapshot = self.entries
        for listener in list(self._listeners):
            listener(snapshot)
