"""Catalog ORM models: recipes, sellable products and their price variations.

A ``Recipe`` holds the growth parameters of a cultivar.  Stage durations are
stored in (fractional) days except soaking, which is measured in hours::

    germination_days=3, blackout_days=2, light_days=5, seed_soak_hours=8

``days_to_maturity`` overrides the sum of stage durations when set.

``PriceVariation`` rows are either attached to a product or, with
``is_global=True`` and no product, act as templates copied onto products.
"""

from __future__ import annotations

import math
import uuid
from decimal import Decimal

from sqlalchemy import Enum, Float, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import PricingTypeEnum

WHOLESALE_CUSTOMER_CODES = frozenset({"wholesale", "farmers_market"})


# ═══════════════════════════════════════════════════════════════════════════
# CustomerType
# ═══════════════════════════════════════════════════════════════════════════


class CustomerType(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Sales channel classification (retail, wholesale, farmers_market, ...)."""

    __tablename__ = "customer_types"

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        default=True,
        server_default=text("true"),
        nullable=False,
    )
    sort_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    def qualifies_for_wholesale_pricing(self) -> bool:
        return self.code in WHOLESALE_CUSTOMER_CODES

    def __repr__(self) -> str:
        return f"<CustomerType code={self.code!r}>"


# ═══════════════════════════════════════════════════════════════════════════
# Recipe
# ═══════════════════════════════════════════════════════════════════════════


class Recipe(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Growth parameters for a cultivar."""

    __tablename__ = "recipes"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    germination_days: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default="0"
    )
    blackout_days: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default="0"
    )
    light_days: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default="0"
    )
    days_to_maturity: Mapped[float | None] = mapped_column(Float, nullable=True)
    seed_soak_hours: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    expected_yield_grams: Mapped[float | None] = mapped_column(Float, nullable=True)
    seed_density_grams_per_tray: Mapped[float | None] = mapped_column(
        Float, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        default=True,
        server_default=text("true"),
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def total_days(self) -> float:
        """Grow days from germination to harvest."""
        if self.days_to_maturity:
            return float(self.days_to_maturity)
        return float(
            (self.germination_days or 0)
            + (self.blackout_days or 0)
            + (self.light_days or 0)
        )

    def effective_total_days(self) -> float:
        """Grow days including the seed soak period."""
        return (self.seed_soak_hours or 0) / 24 + self.total_days()

    def lead_time_days(self) -> int:
        """Whole days to plant ahead of harvest."""
        return math.ceil(self.total_days())

    def __repr__(self) -> str:
        return f"<Recipe id={self.id} name={self.name!r}>"


# ═══════════════════════════════════════════════════════════════════════════
# Product
# ═══════════════════════════════════════════════════════════════════════════


class Product(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A sellable catalog entry, optionally grown from a recipe."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    base_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    wholesale_discount_percentage: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2), nullable=True
    )
    recipe_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("recipes.id", ondelete="SET NULL"),
        nullable=True,
    )
    expected_yield_grams: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        default=True,
        server_default=text("true"),
        nullable=False,
    )

    # ── Relationships ────────────────────────────────────────────────────
    recipe: Mapped[Recipe | None] = relationship(lazy="selectin")
    price_variations: Mapped[list[PriceVariation]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def yield_grams(self) -> float | None:
        """Expected grams per tray, falling back to the recipe's figure."""
        if self.expected_yield_grams:
            return self.expected_yield_grams
        if self.recipe is not None:
            return self.recipe.expected_yield_grams
        return None

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"


# ═══════════════════════════════════════════════════════════════════════════
# PriceVariation
# ═══════════════════════════════════════════════════════════════════════════


class PriceVariation(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A priced option for a product: segment, packaging, unit and tier."""

    __tablename__ = "price_variations"
    __table_args__ = (
        Index("ix_price_variations_product_active", "product_id", "is_active"),
    )

    product_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=True,
    )
    template_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("price_variations.id", ondelete="SET NULL"),
        nullable=True,
    )
    packaging_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pricing_type: Mapped[PricingTypeEnum] = mapped_column(
        Enum(
            PricingTypeEnum,
            name="pricing_type",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=PricingTypeEnum.retail,
        server_default=PricingTypeEnum.retail.value,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    pricing_unit: Mapped[str] = mapped_column(
        String(20), nullable=False, default="each", server_default="each"
    )
    fill_weight_grams: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True
    )
    min_quantity: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("1"), server_default="1"
    )
    is_default: Mapped[bool] = mapped_column(
        default=False,
        server_default=text("false"),
        nullable=False,
    )
    is_global: Mapped[bool] = mapped_column(
        default=False,
        server_default=text("false"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        default=True,
        server_default=text("true"),
        nullable=False,
    )

    # ── Relationships ────────────────────────────────────────────────────
    product: Mapped[Product | None] = relationship(back_populates="price_variations")

    def __repr__(self) -> str:
        return (
            f"<PriceVariation id={self.id} name={self.name!r} "
            f"type={self.pricing_type} price={self.price}>"
        )
