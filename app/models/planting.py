"""PlantingSchedule ORM model: a planned planting date for one recipe.

A schedule is identified by ``(recipe_id, planting_date, target_harvest_date)``;
the unique constraint backs the synchronizer's no-duplicates rule.  Several
orders and recurring orders may share one schedule, their ids are collected
in ``related_orders`` / ``related_recurring_orders``.
"""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import Date, Enum, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.catalog import Recipe
from app.models.enums import PlantingStatusEnum


class PlantingSchedule(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """When to plant how many trays of a recipe to meet a harvest date."""

    __tablename__ = "planting_schedules"
    __table_args__ = (
        UniqueConstraint(
            "recipe_id",
            "planting_date",
            "target_harvest_date",
            name="uq_planting_schedules_recipe_dates",
        ),
        Index("ix_planting_schedules_planting_date", "planting_date"),
    )

    recipe_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("recipes.id", ondelete="CASCADE"),
        nullable=False,
    )
    planting_date: Mapped[date] = mapped_column(Date, nullable=False)
    target_harvest_date: Mapped[date] = mapped_column(Date, nullable=False)
    trays_required: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    trays_planted: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    status: Mapped[PlantingStatusEnum] = mapped_column(
        Enum(
            PlantingStatusEnum,
            name="planting_status",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=PlantingStatusEnum.pending,
        server_default=PlantingStatusEnum.pending.value,
    )
    related_orders: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    related_recurring_orders: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ────────────────────────────────────────────────────
    recipe: Mapped[Recipe] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<PlantingSchedule id={self.id} recipe={self.recipe_id} "
            f"plant={self.planting_date} harvest={self.target_harvest_date}>"
        )
