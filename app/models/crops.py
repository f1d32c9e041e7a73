"""Crop ORM model: one tray moving through the growth stages.

Each stage transition stamps its own timestamp column; ``current_stage`` is
derived from whichever of those is the furthest along (see
``app.services.crop_stage``).  Ages and countdowns are computed on read and
never stored.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.catalog import Recipe
from app.models.enums import CropStageEnum


class Crop(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A single tray grown from a recipe."""

    __tablename__ = "crops"
    __table_args__ = (
        Index("ix_crops_recipe_stage", "recipe_id", "current_stage"),
        Index("ix_crops_planted_at", "planted_at"),
    )

    recipe_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("recipes.id", ondelete="RESTRICT"),
        nullable=False,
    )
    order_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
    )
    planting_schedule_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("planting_schedules.id", ondelete="SET NULL"),
        nullable=True,
    )
    tray_number: Mapped[str] = mapped_column(String(50), nullable=False)
    current_stage: Mapped[CropStageEnum] = mapped_column(
        Enum(
            CropStageEnum,
            name="crop_stage",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=CropStageEnum.germination,
        server_default=CropStageEnum.germination.value,
    )
    requires_soaking: Mapped[bool] = mapped_column(
        default=False,
        server_default=text("false"),
        nullable=False,
    )
    planted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    soaking_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    germination_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    blackout_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    light_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    harvested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ────────────────────────────────────────────────────
    recipe: Mapped[Recipe] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<Crop id={self.id} tray={self.tray_number!r} "
            f"stage={self.current_stage}>"
        )
