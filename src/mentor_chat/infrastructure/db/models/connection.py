from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mentor_chat.infrastructure.db.base import Base
from mentor_chat.infrastructure.db.models.profile import ProfileModel


class ConnectionModel(Base):
    __tablename__ = "connections"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    mentor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    mentee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        server_default=text("'pending'"),
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )

    mentor: Mapped[ProfileModel] = relationship(foreign_keys=[mentor_id], lazy="joined")
    mentee: Mapped[ProfileModel] = relationship(foreign_keys=[mentee_id], lazy="joined")
    messages = relationship("MessageModel", back_populates="connection")

    __table_args__ = (
        Index("ix_connections_members", "mentor_id", "mentee_id"),
    )
