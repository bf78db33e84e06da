from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from mentor_chat.api.deps import get_verifier
from mentor_chat.application.exceptions import (
    AppError,
    ForbiddenError,
    NotFoundError,
    SendInProgressError,
    StoreError,
    UnauthenticatedError,
    ValidationError,
)
from mentor_chat.config import settings
from mentor_chat.infrastructure.auth.identity import TokenIdentityProvider
from mentor_chat.infrastructure.bus.redis_pubsub import RedisChangeFeed
from mentor_chat.infrastructure.db.uow import open_uow
from mentor_chat.infrastructure.ws.protocol import (
    EntryOut,
    WsInbound,
    WsOutbound,
    render_entries,
)
from mentor_chat.services.conversation_view import ConversationView

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

_CLOSE_CODES: dict[type[AppError], int] = {
    UnauthenticatedError: 4001,
    ForbiddenError: 4003,
    NotFoundError: 4004,
}

_ERROR_CODES: dict[type[AppError], str] = {
    ValidationError: "invalid_message",
    SendInProgressError: "send_in_progress",
    StoreError: "send_failed",
}


def _frame(event_type: str, data: dict[str, Any] | None = None) -> str:
    return WsOutbound(type=event_type, data=data or {}).model_dump_json()


def _snapshot(view: ConversationView) -> str:
    return _frame(
        "view.snapshot",
        {
            "counterpart_name": view.counterpart_name,
            "sending": view.is_sending,
            "draft": view.draft,
            "entries": render_entries(
                view.entries,
                view.viewer_id,
                timedelta(seconds=settings.MESSAGE_GROUP_WINDOW_SECONDS),
            ),
        },
    )


@router.websocket("/ws/connections/{connection_id}")
async def ws_conversation(
    websocket: WebSocket,
    connection_id: UUID,
    token: str = Query(...),
) -> None:
    view = ConversationView(
        connection_id,
        TokenIdentityProvider(get_verifier(), token),
        open_uow,
        RedisChangeFeed(websocket.app.state.redis, settings.change_feed_channel),
        max_body_length=settings.MESSAGE_MAX_LENGTH,
    )
    try:
        await view.open()
    except AppError as exc:
        code = _CLOSE_CODES.get(type(exc), 1011)
        await websocket.close(code=code, reason=exc.detail)
        return

    await websocket.accept()
    dirty = asyncio.Event()
    dirty.set()
    view.add_listener(lambda _entries: dirty.set())

    sends: set[asyncio.Task[None]] = set()
    tasks = [
        asyncio.create_task(_push_snapshots(websocket, view, dirty), name=f"ws-push-{connection_id}"),
        asyncio.create_task(_heartbeat(websocket), name=f"ws-heartbeat-{connection_id}"),
    ]
    try:
        await _read_loop(websocket, view, sends)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for connection %s", connection_id)
    finally:
        await _shutdown(view, [*tasks, *sends])


async def _shutdown(view: ConversationView, tasks: list[asyncio.Task[None]]) -> None:
    """Cancel per-socket tasks, in-flight sends included, before closing the view."""
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await view.close()


async def _push_snapshots(ws: WebSocket, view: ConversationView, dirty: asyncio.Event) -> None:
    while True:
        await dirty.wait()
        dirty.clear()
        await ws.send_text(_snapshot(view))


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(_frame("pong"))
    except asyncio.CancelledError:
        pass
    except Exception:
        pass


async def _read_loop(
    ws: WebSocket,
    view: ConversationView,
    sends: set[asyncio.Task[None]],
) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except Exception:
            await ws.send_text(_frame("error", {"code": "invalid_payload"}))
            continue

        if msg.type == "ping":
            await ws.send_text(_frame("pong"))

        elif msg.type == "message.send":
            # runs concurrently with reads; a second send meets the in-flight guard
            task = asyncio.create_task(_handle_send(ws, view, msg.data.get("body")))
            sends.add(task)
            task.add_done_callback(sends.discard)

        else:
            await ws.send_text(_frame("error", {"code": "unknown_type", "type": msg.type}))


async def _handle_send(ws: WebSocket, view: ConversationView, body: Any) -> None:
    try:
        entry = await view.send(body if isinstance(body, str) else None)
    except AppError as exc:
        code = next(
            (c for cls, c in _ERROR_CODES.items() if isinstance(exc, cls)),
            "send_failed",
        )
        await ws.send_text(
            _frame("error", {"code": code, "detail": exc.detail, "draft": view.draft})
        )
        return
    out = EntryOut.from_entry(entry, viewer_id=view.viewer_id)
    await ws.send_text(_frame("message.sent", out.model_dump(mode="json")))
