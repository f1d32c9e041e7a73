"""ActivityLog ORM model: append-only audit trail of back-office actions.

``log_name`` groups entries by area (``planting``, ``crops``, ``orders``,
``pricing``, ``default``); ``event`` is the verb (``created``, ``updated``,
``synced``, ...).  ``subject_type``/``subject_id`` point at the record the
action touched without a foreign key, so entries survive deletions.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import AppendOnlyMixin, Base
from app.models.users import User


class ActivityLog(Base, AppendOnlyMixin):
    """One audit entry."""

    __tablename__ = "activity_log"
    __table_args__ = (
        Index("ix_activity_log_log_name_created", "log_name", "created_at"),
        Index("ix_activity_log_subject", "subject_type", "subject_id"),
    )

    log_name: Mapped[str] = mapped_column(
        String(100), nullable=False, default="default", server_default="default"
    )
    event: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    subject_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subject_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    causer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    properties: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    # ── Relationships ────────────────────────────────────────────────────
    causer: Mapped[User | None] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<ActivityLog id={self.id} log={self.log_name!r} event={self.event!r}>"
