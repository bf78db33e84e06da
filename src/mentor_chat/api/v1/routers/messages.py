from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from mentor_chat.api.deps import CurrentPrincipal, UoWDep
from mentor_chat.api.v1.schemas.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessageResponse,
    SendMessageRequest,
)
from mentor_chat.config import settings
from mentor_chat.services import message_service

router = APIRouter(prefix="/api/v1/connections", tags=["messages"])


@router.get("/{connection_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    connection_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[MessageResponse]:
    messages = await message_service.list_messages(connection_id, principal, uow)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post("/{connection_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    connection_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    msg = await message_service.send_message(
        connection_id,
        principal,
        body.body,
        uow,
        max_length=settings.MESSAGE_MAX_LENGTH,
    )
    return MessageResponse.model_validate(msg)


@router.post("/{connection_id}/messages/read", response_model=MarkReadResponse)
async def mark_read(
    connection_id: UUID,
    body: MarkReadRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MarkReadResponse:
    changed = await message_service.mark_read(connection_id, principal, body.ids, uow)
    return MarkReadResponse(updated=[m.id for m in changed])
