from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    body: str


class MarkReadRequest(BaseModel):
    ids: list[UUID] = Field(default_factory=list)


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    body: str
    created_at: datetime
    read: bool

    model_config = {"from_attributes": True}


class MarkReadResponse(BaseModel):
    updated: list[UUID]
