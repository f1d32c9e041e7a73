"""Order, OrderItem, RecurringOrder and RecurringOrderItem ORM models.

A ``RecurringOrder`` is a template: it never ships by itself but spawns
concrete ``Order`` rows (and, through the planting synchronizer,
``PlantingSchedule`` rows) on its cadence.  ``delivery_days`` holds weekday
numbers with 0 = Sunday … 6 = Saturday.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Enum, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.catalog import Product
from app.models.enums import IntervalUnitEnum, OrderStatusEnum, RecurrenceFrequencyEnum

# ═══════════════════════════════════════════════════════════════════════════
# Order
# ═══════════════════════════════════════════════════════════════════════════


class Order(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A concrete customer order with a delivery and harvest date."""

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_delivery_date", "delivery_date"),
        Index("ix_orders_recurring_order_id", "recurring_order_id"),
    )

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    recurring_order_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("recurring_orders.id", ondelete="SET NULL"),
        nullable=True,
    )
    customer_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="retail", server_default="retail"
    )
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    harvest_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[OrderStatusEnum] = mapped_column(
        Enum(
            OrderStatusEnum,
            name="order_status",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=OrderStatusEnum.pending,
        server_default=OrderStatusEnum.pending.value,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ────────────────────────────────────────────────────
    items: Mapped[list[OrderItem]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def total_amount(self) -> Decimal:
        return sum((item.line_total() for item in self.items), Decimal("0"))

    def __repr__(self) -> str:
        return f"<Order id={self.id} delivery={self.delivery_date} status={self.status}>"


class OrderItem(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A product line on an order."""

    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    price_variation_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("price_variations.id", ondelete="SET NULL"),
        nullable=True,
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ────────────────────────────────────────────────────
    order: Mapped[Order] = relationship(back_populates="items")
    product: Mapped[Product] = relationship(lazy="selectin")

    def line_total(self) -> Decimal:
        return Decimal(self.quantity) * Decimal(self.price)


# ═══════════════════════════════════════════════════════════════════════════
# RecurringOrder
# ═══════════════════════════════════════════════════════════════════════════


class RecurringOrder(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Order template that repeats on a weekly/biweekly/monthly/custom cadence."""

    __tablename__ = "recurring_orders"
    __table_args__ = (
        Index("ix_recurring_orders_active_window", "is_active", "start_date", "end_date"),
    )

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    frequency: Mapped[RecurrenceFrequencyEnum] = mapped_column(
        Enum(
            RecurrenceFrequencyEnum,
            name="recurrence_frequency",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=RecurrenceFrequencyEnum.weekly,
        server_default=RecurrenceFrequencyEnum.weekly.value,
    )
    delivery_days: Mapped[list[int]] = mapped_column(
        ARRAY(Integer), nullable=False, default=list, server_default="{}"
    )
    interval: Mapped[int | None] = mapped_column(Integer, nullable=True)
    interval_unit: Mapped[IntervalUnitEnum | None] = mapped_column(
        Enum(
            IntervalUnitEnum,
            name="interval_unit",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=True,
    )
    customer_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="retail", server_default="retail"
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        default=True,
        server_default=text("true"),
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ────────────────────────────────────────────────────
    items: Mapped[list[RecurringOrderItem]] = relationship(
        back_populates="recurring_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<RecurringOrder id={self.id} name={self.name!r} "
            f"frequency={self.frequency} active={self.is_active}>"
        )


class RecurringOrderItem(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A product line repeated on every generated order."""

    __tablename__ = "recurring_order_items"

    recurring_order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("recurring_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ────────────────────────────────────────────────────
    recurring_order: Mapped[RecurringOrder] = relationship(back_populates="items")
    product: Mapped[Product] = relationship(lazy="selectin")
