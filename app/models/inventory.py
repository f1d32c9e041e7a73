"""Consumable ORM model: seeds, soil, packaging and labels kept in stock."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Enum, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import ConsumableTypeEnum


class Consumable(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A stocked supply with a restock threshold."""

    __tablename__ = "consumables"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    consumable_type: Mapped[ConsumableTypeEnum] = mapped_column(
        Enum(
            ConsumableTypeEnum,
            name="consumable_type",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
    )
    unit: Mapped[str] = mapped_column(
        String(20), nullable=False, default="unit", server_default="unit"
    )
    current_stock: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), nullable=False, default=Decimal("0"), server_default="0"
    )
    restock_threshold: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), nullable=False, default=Decimal("0"), server_default="0"
    )
    is_active: Mapped[bool] = mapped_column(
        default=True,
        server_default=text("true"),
        nullable=False,
    )

    def needs_restock(self) -> bool:
        return self.current_stock <= self.restock_threshold

    def __repr__(self) -> str:
        return (
            f"<Consumable id={self.id} name={self.name!r} "
            f"stock={self.current_stock}{self.unit}>"
        )
