"""Recurring order cadence, planting requirements and order generation.

Delivery weekdays use the 0 = Sunday convention (``delivery_days=[2, 5]`` is
Tuesday and Friday).  Dates are walked one day at a time from the first
eligible day; after every delivery the cursor jumps by the order's cadence.
"""

from __future__ import annotations

import calendar
import math
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, Mapping

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import IntervalUnitEnum, OrderStatusEnum, RecurrenceFrequencyEnum
from app.models.orders import Order, OrderItem, RecurringOrder
from app.services.activity_service import ActivityLogService
from app.services.pricing import resolve_unit_price

logger = structlog.get_logger("trayline.recurring_orders")

DEFAULT_DATE_COUNT = 10
HARVEST_LEAD_DAYS = 1


@dataclass(slots=True)
class PlantingRequirement:
	planting_date: date
	harvest_date: date
	recipe_id: uuid.UUID
	recipe_name: str
	trays_required: int = 0
	items: list[dict[str, Any]] = field(default_factory=list)
	delivery_dates: list[date] = field(default_factory=list)


def sunday_weekday(day: date) -> int:
	"""Weekday with Sunday as 0."""
	return (day.weekday() + 1) % 7


def add_months(day: date, months: int) -> date:
	month_index = day.month - 1 + months
	year = day.year + month_index // 12
	month = month_index % 12 + 1
	return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def _value(enum_or_str: Any) -> str | None:
	if enum_or_str is None:
		return None
	return str(getattr(enum_or_str, "value", enum_or_str))


def advance_after_delivery(recurring: Any, current: date) -> date:
	frequency = _value(recurring.frequency)
	if frequency == RecurrenceFrequencyEnum.biweekly.value:
		return current + timedelta(weeks=2)
	if frequency == RecurrenceFrequencyEnum.monthly.value:
		return add_months(current, 1)
	if frequency == RecurrenceFrequencyEnum.custom.value:
		interval = getattr(recurring, "interval", None)
		unit = _value(getattr(recurring, "interval_unit", None))
		if interval and unit == IntervalUnitEnum.days.value:
			return current + timedelta(days=interval)
		if interval and unit == IntervalUnitEnum.weeks.value:
			return current + timedelta(weeks=interval)
		if interval and unit == IntervalUnitEnum.months.value:
			return add_months(current, interval)
	return current + timedelta(weeks=1)


def generate_delivery_dates(
	recurring: Any,
	start_from: date | None = None,
	count: int = DEFAULT_DATE_COUNT,
) -> list[date]:
	weekdays = {int(d) for d in (recurring.delivery_days or []) if 0 <= int(d) <= 6}
	current = max(start_from or date.today(), recurring.start_date)
	end_date = recurring.end_date
	if not recurring.is_active or not weekdays or count <= 0:
		return []

	dates: list[date] = []
	while len(dates) < count:
		if end_date is not None and current > end_date:
			break
		if sunday_weekday(current) in weekdays:
			dates.append(current)
			current = advance_after_delivery(recurring, current)
		else:
			current += timedelta(days=1)
	return dates


def item_yield_grams(product: Any, recipe: Any) -> float | None:
	grams = getattr(product, "expected_yield_grams", None)
	if grams:
		return float(grams)
	grams = getattr(recipe, "expected_yield_grams", None)
	return float(grams) if grams else None


def trays_for_quantity(quantity: Any, yield_grams: float | None) -> int:
	if not yield_grams or yield_grams <= 0:
		return 0
	return math.ceil(float(quantity) / (yield_grams / 1000))


def calculate_planting_requirements(
	recurring: Any,
	items: Iterable[Any] | None = None,
	recipes: Mapping[uuid.UUID, Any] | None = None,
	start_from: date | None = None,
	count: int = DEFAULT_DATE_COUNT,
) -> list[PlantingRequirement]:
	"""Trays to plant per (planting date, harvest date, recipe) for upcoming deliveries.

	``recipes`` maps recipe id to recipe; when omitted each item's
	``product.recipe`` relationship is used.
	"""
	items = list(items if items is not None else recurring.items)
	grouped: dict[tuple[date, date, uuid.UUID], PlantingRequirement] = {}

	for delivery_date in generate_delivery_dates(recurring, start_from, count):
		harvest_date = delivery_date - timedelta(days=HARVEST_LEAD_DAYS)
		for item in items:
			product = item.product
			recipe_id = getattr(product, "recipe_id", None)
			if recipe_id is None:
				continue
			recipe = recipes.get(recipe_id) if recipes is not None else getattr(product, "recipe", None)
			if recipe is None:
				continue

			planting_date = harvest_date - timedelta(days=recipe.lead_time_days())
			trays = trays_for_quantity(item.quantity, item_yield_grams(product, recipe))
			key = (planting_date, harvest_date, recipe_id)
			requirement = grouped.get(key)
			if requirement is None:
				requirement = grouped[key] = PlantingRequirement(
					planting_date=planting_date,
					harvest_date=harvest_date,
					recipe_id=recipe_id,
					recipe_name=recipe.name,
				)
			requirement.trays_required += trays
			requirement.items.append(
				{
					"product_id": str(product.id),
					"product_name": product.name,
					"quantity": str(item.quantity),
					"trays_needed": trays,
				}
			)
			if delivery_date not in requirement.delivery_dates:
				requirement.delivery_dates.append(delivery_date)

	return list(grouped.values())


class RecurringOrderService:
	"""Recurring order templates and the concrete orders they spawn."""

	def __init__(self, db: AsyncSession):
		self.db = db

	async def list_active(self) -> list[RecurringOrder]:
		rows = await self.db.execute(
			select(RecurringOrder).where(RecurringOrder.is_active.is_(True)).order_by(RecurringOrder.name)
		)
		return list(rows.scalars().all())

	async def get(self, recurring_id: uuid.UUID) -> RecurringOrder:
		row = await self.db.execute(select(RecurringOrder).where(RecurringOrder.id == recurring_id))
		recurring = row.scalar_one_or_none()
		if recurring is None:
			raise LookupError(f"Recurring order {recurring_id} not found")
		return recurring

	async def upcoming_dates(self, recurring_id: uuid.UUID, start_from: date, count: int) -> list[date]:
		return generate_delivery_dates(await self.get(recurring_id), start_from, count)

	async def _find_order(self, recurring_id: uuid.UUID, delivery_date: date) -> Order | None:
		row = await self.db.execute(
			select(Order).where(
				Order.recurring_order_id == recurring_id,
				Order.delivery_date == delivery_date,
			)
		)
		return row.scalar_one_or_none()

	async def generate_order(self, recurring_id: uuid.UUID, delivery_date: date) -> Order | None:
		recurring = await self.get(recurring_id)
		return await self._generate_for(recurring, delivery_date)

	async def _generate_for(self, recurring: RecurringOrder, delivery_date: date) -> Order | None:
		if (
			not recurring.is_active
			or delivery_date < recurring.start_date
			or (recurring.end_date is not None and delivery_date > recurring.end_date)
		):
			return None

		order = Order(
			user_id=recurring.user_id,
			recurring_order_id=recurring.id,
			customer_type=recurring.customer_type,
			delivery_date=delivery_date,
			harvest_date=delivery_date - timedelta(days=HARVEST_LEAD_DAYS),
			status=OrderStatusEnum.pending,
			notes=f"Auto-generated from recurring order: {recurring.name}",
		)
		for template_item in recurring.items:
			price = template_item.price
			variation_id = None
			if price is None:
				quote = resolve_unit_price(
					template_item.product,
					None,
					recurring.customer_type,
					template_item.quantity,
				)
				price, variation_id = quote.unit_price, quote.variation_id
			order.items.append(
				OrderItem(
					product_id=template_item.product_id,
					price_variation_id=variation_id,
					quantity=template_item.quantity,
					price=Decimal(str(price)),
					notes=template_item.notes,
				)
			)

		self.db.add(order)
		await self.db.flush()
		await ActivityLogService(self.db).record(
			"orders",
			"created",
			f"Order generated from recurring order '{recurring.name}' for {delivery_date.isoformat()}",
			subject=order,
			properties={"recurring_order_id": str(recurring.id), "delivery_date": delivery_date.isoformat()},
		)
		return order

	async def _set_active(self, recurring_id: uuid.UUID, active: bool) -> RecurringOrder:
		recurring = await self.get(recurring_id)
		if recurring.is_active == active:
			return recurring
		recurring.is_active = active
		event = "resumed" if active else "paused"
		await ActivityLogService(self.db).record(
			"orders",
			event,
			f"Recurring order '{recurring.name}' {event}",
			subject=recurring,
		)
		await self.db.flush()
		return recurring

	async def pause(self, recurring_id: uuid.UUID) -> RecurringOrder:
		return await self._set_active(recurring_id, False)

	async def resume(self, recurring_id: uuid.UUID) -> RecurringOrder:
		return await self._set_active(recurring_id, True)

	async def process_due(self, today: date | None = None) -> dict[str, Any]:
		"""Generate the next due order of every active template; retire expired ones."""
		today = today or date.today()
		summary: dict[str, Any] = {"processed": 0, "orders_created": 0, "deactivated": 0, "errors": []}

		for recurring in await self.list_active():
			summary["processed"] += 1
			try:
				if recurring.end_date is not None and recurring.end_date < today:
					recurring.is_active = False
					summary["deactivated"] += 1
					continue

				upcoming = generate_delivery_dates(recurring, today, 1)
				if not upcoming or await self._find_order(recurring.id, upcoming[0]) is not None:
					continue
				if await self._generate_for(recurring, upcoming[0]) is not None:
					summary["orders_created"] += 1
			except Exception as exc:
				logger.exception("recurring_order_failed", recurring_order_id=str(recurring.id))
				summary["errors"].append({"recurring_order_id": str(recurring.id), "error": str(exc)})

		await self.db.flush()
		logger.info(
			"recurring_orders_processed",
			processed=summary["processed"],
			orders_created=summary["orders_created"],
			deactivated=summary["deactivated"],
			errors=len(summary["errors"]),
		)
		return summary

	async def stats(self) -> dict[str, int]:
		rows = await self.db.execute(
			select(RecurringOrder.is_active, func.count(RecurringOrder.id)).group_by(RecurringOrder.is_active)
		)
		counts = {bool(active): int(total) for active, total in rows.all()}
		active = counts.get(True, 0)
		paused = counts.get(False, 0)
		return {"total": active + paused, "active": active, "paused": paused}
