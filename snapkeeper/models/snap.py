"""Ephemeral snap records shared as stories or direct messages."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, Index, String, false
from sqlalchemy.orm import Mapped, mapped_column

from snapkeeper.db.base_class import Base


class SnapType(str, enum.Enum):
    """Delivery modes for a snap."""
    STORY = "story"
    DIRECT = "direct"


class Snap(Base):
    """A unit of shared content that lives until ``expires_at``.

    ``expires_at`` is an ISO-8601 UTC string in the producer format
    (``2024-05-01T12:00:00.000Z``) so range predicates compare lexicographically.
    Rows are written by the app and only ever read or deleted here.
    """
    __tablename__ = "snaps"
    __table_args__ = (Index("ix_snaps_type_expires_at", "type", "expires_at"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    type: Mapped[SnapType] = mapped_column(
        Enum(SnapType, name="snap_type", values_callable=lambda enum_cls: [e.value for e in enum_cls]),
        nullable=False,
    )
    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    expires_at: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    viewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    image_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
