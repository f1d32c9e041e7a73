"""Customer-type price resolution for products and their price variations."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.catalog import WHOLESALE_CUSTOMER_CODES, Product
from app.models.enums import PricingTypeEnum

logger = structlog.get_logger("trayline.pricing")

CENTS = Decimal("0.01")
RETAIL = "retail"

_TIERED_CUSTOMER_TYPES: dict[str, PricingTypeEnum] = {
	"bulk": PricingTypeEnum.bulk,
	"special": PricingTypeEnum.special,
}

_PRICING_TYPE_NAMES: dict[str, str] = {
	"retail": "Retail",
	"wholesale": "Wholesale",
	"bulk": "Bulk",
	"special": "Special",
	"custom": "Custom",
}

_GRAMS_PER_UNIT: dict[str, float] = {
	"per_g": 1.0,
	"g": 1.0,
	"gram": 1.0,
	"grams": 1.0,
	"per_kg": 1000.0,
	"kg": 1000.0,
	"kilogram": 1000.0,
	"kilograms": 1000.0,
	"per_lb": 453.592,
	"lb": 453.592,
	"lbs": 453.592,
	"pound": 453.592,
	"pounds": 453.592,
	"per_oz": 28.3495,
	"oz": 28.3495,
	"ounce": 28.3495,
	"ounces": 28.3495,
}

_WEIGHT_UNITS = frozenset({"per_lb", "per_kg", "per_g", "per_oz", "lb", "lbs", "kg", "g", "oz"})

_DISPLAY_UNITS: dict[str, str] = {
	"per_g": "grams",
	"g": "grams",
	"gram": "grams",
	"per_kg": "kg",
	"kg": "kg",
	"kilogram": "kg",
	"per_lb": "lbs",
	"lb": "lbs",
	"lbs": "lbs",
	"pound": "lbs",
	"per_oz": "oz",
	"oz": "oz",
	"ounce": "oz",
}


@dataclass(slots=True)
class PriceQuote:
	unit_price: Decimal
	quantity: Decimal
	total: Decimal
	customer_type: str
	pricing_type: str
	variation_id: uuid.UUID | None
	source: str


def _money(value: Any) -> Decimal:
	return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def normalize_customer_type(customer_type: str | None) -> str:
	code = (customer_type or "").strip().lower()
	if code in WHOLESALE_CUSTOMER_CODES or code in _TIERED_CUSTOMER_TYPES or code == RETAIL:
		return code
	return RETAIL


def is_known_customer_type(customer_type: str | None) -> bool:
	code = (customer_type or "").strip().lower()
	return not code or normalize_customer_type(code) == code


def _pricing_type_value(variation: Any) -> str:
	value = getattr(variation, "pricing_type", None)
	return str(getattr(value, "value", value) or RETAIL)


def _candidates(variations: Iterable[Any], packaging_type: str | None) -> list[Any]:
	active = [v for v in variations if getattr(v, "is_active", True)]
	if packaging_type is None:
		return active
	wanted = packaging_type.strip().lower()
	return [v for v in active if (getattr(v, "packaging_type", None) or "").strip().lower() == wanted]


def best_tier(variations: Iterable[Any], pricing_type: str, quantity: Decimal) -> Any | None:
	"""Variation of ``pricing_type`` with the highest ``min_quantity`` reached.

	Ties on the threshold go to the lower price.
	"""
	eligible = [
		v
		for v in variations
		if _pricing_type_value(v) == pricing_type
		and Decimal(str(getattr(v, "min_quantity", None) or 1)) <= quantity
	]
	if not eligible:
		return None
	return min(
		eligible,
		key=lambda v: (-Decimal(str(getattr(v, "min_quantity", None) or 1)), Decimal(str(v.price))),
	)


def standard_price(product: Any, variations: Iterable[Any]) -> tuple[Decimal, Any | None]:
	"""Default variation, then cheapest retail, then cheapest active, then base price."""
	active = [v for v in variations if getattr(v, "is_active", True)]

	for variation in active:
		if getattr(variation, "is_default", False):
			return _money(variation.price), variation

	retail = [v for v in active if _pricing_type_value(v) == RETAIL]
	for pool in (retail, active):
		if pool:
			cheapest = min(pool, key=lambda v: Decimal(str(v.price)))
			return _money(cheapest.price), cheapest

	base_price = getattr(product, "base_price", None)
	if base_price is not None:
		return _money(base_price), None
	return _money(0), None


def wholesale_discounted(product: Any, price: Decimal) -> Decimal:
	discount = Decimal(str(getattr(product, "wholesale_discount_percentage", None) or 0))
	discount = min(max(discount, Decimal("0")), Decimal("100"))
	return _money(price * (Decimal("100") - discount) / Decimal("100"))


def resolve_unit_price(
	product: Any,
	variations: Iterable[Any] | None,
	customer_type: str | None,
	quantity: Decimal | int | float = 1,
	packaging_type: str | None = None,
) -> PriceQuote:
	variations = list(variations if variations is not None else getattr(product, "price_variations", []) or [])
	quantity = Decimal(str(quantity))
	if quantity <= 0:
		raise ValueError("quantity must be positive")

	code = normalize_customer_type(customer_type)
	candidates = _candidates(variations, packaging_type)

	def _quote(price: Decimal, pricing_type: str, variation: Any | None, source: str) -> PriceQuote:
		return PriceQuote(
			unit_price=price,
			quantity=quantity,
			total=_money(price * quantity),
			customer_type=code,
			pricing_type=pricing_type,
			variation_id=getattr(variation, "id", None),
			source=source,
		)

	if code in WHOLESALE_CUSTOMER_CODES:
		tier = best_tier(candidates, PricingTypeEnum.wholesale.value, quantity)
		if tier is not None:
			return _quote(_money(tier.price), PricingTypeEnum.wholesale.value, tier, "tier")
		base, variation = standard_price(product, candidates or variations)
		return _quote(wholesale_discounted(product, base), PricingTypeEnum.wholesale.value, variation, "discount")

	tiered_type = _TIERED_CUSTOMER_TYPES.get(code)
	if tiered_type is not None:
		tier = best_tier(candidates, tiered_type.value, quantity)
		if tier is not None:
			return _quote(_money(tier.price), tiered_type.value, tier, "tier")

	# Unrecognised customer types pay the standard price, never a tier.
	retail_tier = best_tier(candidates, RETAIL, quantity) if is_known_customer_type(customer_type) else None
	if retail_tier is not None and Decimal(str(getattr(retail_tier, "min_quantity", None) or 1)) > 1:
		return _quote(_money(retail_tier.price), RETAIL, retail_tier, "tier")

	price, variation = standard_price(product, candidates or variations)
	return _quote(price, RETAIL, variation, "default")


# ── Weight helpers ──────────────────────────────────────────────────────────


def is_sold_by_weight(pricing_unit: str | None) -> bool:
	return (pricing_unit or "") in _WEIGHT_UNITS


def unit_to_grams_factor(pricing_unit: str | None) -> float:
	return _GRAMS_PER_UNIT.get(pricing_unit or "", 1.0)


def convert_to_grams(quantity: float, pricing_unit: str | None) -> float:
	return quantity * unit_to_grams_factor(pricing_unit)


def display_unit(pricing_unit: str | None) -> str:
	return _DISPLAY_UNITS.get(pricing_unit or "", "units")


def generate_variation_name(pricing_type: str | None, packaging_type: str | None) -> str:
	"""``"Wholesale - Clamshell"``; variations without packaging are ``Package-Free``."""
	code = (pricing_type or RETAIL).lower()
	label = _PRICING_TYPE_NAMES.get(code, code.capitalize())
	return f"{label} - {packaging_type or 'Package-Free'}"


class PricingService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def get_product(self, product_id: uuid.UUID) -> Product:
		row = await self.db.execute(select(Product).where(Product.id == product_id))
		product = row.scalar_one_or_none()
		if product is None:
			raise LookupError(f"Product {product_id} not found")
		return product

	async def quote(
		self,
		product_id: uuid.UUID,
		customer_type: str | None,
		quantity: Decimal | int | float = 1,
		packaging_type: str | None = None,
	) -> PriceQuote:
		product = await self.get_product(product_id)
		quote = resolve_unit_price(product, product.price_variations, customer_type, quantity, packaging_type)
		logger.debug(
			"price_resolved",
			product_id=str(product_id),
			customer_type=quote.customer_type,
			source=quote.source,
			unit_price=str(quote.unit_price),
		)
		return quote
