from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from app.models.activity import ActivityLog
from app.models.catalog import Product, Recipe
from app.models.enums import IntervalUnitEnum, OrderStatusEnum, RecurrenceFrequencyEnum
from app.models.orders import Order, RecurringOrder, RecurringOrderItem
from app.services.recurring_orders import (
	RecurringOrderService,
	add_months,
	calculate_planting_requirements,
	generate_delivery_dates,
	sunday_weekday,
	trays_for_quantity,
)

# 2026-03-01 is a Sunday.
SUNDAY = date(2026, 3, 1)


def _recipe(**overrides: object) -> Recipe:
	values: dict[str, object] = {
		"id": uuid.uuid4(),
		"name": "Sunflower",
		"germination_days": 3.0,
		"blackout_days": 2.0,
		"light_days": 5.0,
		"days_to_maturity": None,
		"seed_soak_hours": 0,
		"expected_yield_grams": 500.0,
	}
	values.update(overrides)
	return Recipe(**values)


def _product(recipe: Recipe | None, /, **overrides: object) -> Product:
	values: dict[str, object] = {
		"id": uuid.uuid4(),
		"name": f"{recipe.name if recipe else 'Mixed'} Shoots",
		"recipe_id": recipe.id if recipe else None,
		"recipe": recipe,
		"expected_yield_grams": None,
		"base_price": Decimal("5.00"),
		"wholesale_discount_percentage": Decimal("10"),
	}
	values.update(overrides)
	return Product(**values)


def _recurring(items: list[RecurringOrderItem] | None = None, **overrides: object) -> RecurringOrder:
	values: dict[str, object] = {
		"id": uuid.uuid4(),
		"user_id": None,
		"name": "Cafe weekly",
		"frequency": RecurrenceFrequencyEnum.weekly,
		"delivery_days": [2],
		"interval": None,
		"interval_unit": None,
		"customer_type": "wholesale",
		"start_date": SUNDAY,
		"end_date": None,
		"is_active": True,
		"notes": None,
		"items": items or [],
	}
	values.update(overrides)
	return RecurringOrder(**values)


def _item(product: Product, quantity: str) -> RecurringOrderItem:
	return RecurringOrderItem(
		product=product,
		product_id=product.id,
		quantity=Decimal(quantity),
		price=None,
		notes=None,
	)


def test_sunday_is_weekday_zero() -> None:
	assert sunday_weekday(SUNDAY) == 0
	assert sunday_weekday(date(2026, 3, 3)) == 2
	assert sunday_weekday(date(2026, 3, 7)) == 6


def test_add_months_clamps_to_month_end() -> None:
	assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
	assert add_months(date(2026, 11, 15), 3) == date(2027, 2, 15)


def test_weekly_dates_jump_a_week_after_each_delivery() -> None:
	recurring = _recurring(delivery_days=[2, 5])

	assert generate_delivery_dates(recurring, SUNDAY, 4) == [
		date(2026, 3, 3),
		date(2026, 3, 10),
		date(2026, 3, 17),
		date(2026, 3, 24),
	]


def test_biweekly_dates() -> None:
	recurring = _recurring(frequency=RecurrenceFrequencyEnum.biweekly, delivery_days=[1])

	assert generate_delivery_dates(recurring, SUNDAY, 3) == [
		date(2026, 3, 2),
		date(2026, 3, 16),
		date(2026, 3, 30),
	]


def test_monthly_dates_walk_forward_to_next_delivery_day() -> None:
	recurring = _recurring(frequency=RecurrenceFrequencyEnum.monthly, delivery_days=[2])

	assert generate_delivery_dates(recurring, SUNDAY, 3) == [
		date(2026, 3, 3),
		date(2026, 4, 7),
		date(2026, 5, 12),
	]


def test_custom_interval_in_days() -> None:
	recurring = _recurring(
		frequency=RecurrenceFrequencyEnum.custom,
		delivery_days=[3],
		interval=10,
		interval_unit=IntervalUnitEnum.days,
	)

	assert generate_delivery_dates(recurring, SUNDAY, 3) == [
		date(2026, 3, 4),
		date(2026, 3, 18),
		date(2026, 4, 1),
	]


def test_dates_stop_at_end_date() -> None:
	recurring = _recurring(end_date=date(2026, 3, 15))
	assert generate_delivery_dates(recurring, SUNDAY, 10) == [date(2026, 3, 3), date(2026, 3, 10)]


def test_dates_never_precede_start_date() -> None:
	recurring = _recurring(start_date=date(2026, 3, 12))
	assert generate_delivery_dates(recurring, SUNDAY, 1) == [date(2026, 3, 17)]


def test_inactive_or_dayless_order_has_no_dates() -> None:
	assert generate_delivery_dates(_recurring(is_active=False), SUNDAY) == []
	assert generate_delivery_dates(_recurring(delivery_days=[]), SUNDAY) == []
	assert generate_delivery_dates(_recurring(delivery_days=[9]), SUNDAY) == []


def test_trays_for_quantity() -> None:
	assert trays_for_quantity(Decimal("2"), 500.0) == 4
	assert trays_for_quantity(Decimal("1.2"), 250.0) == 5
	assert trays_for_quantity(Decimal("3"), None) == 0


def test_planting_requirements_group_items_by_recipe_and_dates() -> None:
	recipe = _recipe()
	shoots = _product(recipe)
	bulk_shoots = _product(recipe, name="Sunflower Bulk", expected_yield_grams=1000.0)
	recurring = _recurring([_item(shoots, "2"), _item(bulk_shoots, "3")])

	requirements = calculate_planting_requirements(recurring, start_from=SUNDAY, count=2)

	assert len(requirements) == 2
	first = requirements[0]
	assert first.recipe_id == recipe.id
	assert first.harvest_date == date(2026, 3, 2)
	assert first.planting_date == date(2026, 2, 20)
	assert first.trays_required == 4 + 3
	assert first.delivery_dates == [date(2026, 3, 3)]
	assert [item["trays_needed"] for item in first.items] == [4, 3]


def test_planting_requirements_skip_products_without_recipe() -> None:
	recurring = _recurring([_item(_product(None), "2")])
	assert calculate_planting_requirements(recurring, start_from=SUNDAY, count=3) == []


def test_planting_requirements_use_recipe_mapping() -> None:
	recipe = _recipe(days_to_maturity=7.5)
	product = _product(recipe, recipe=None)
	recurring = _recurring([_item(product, "1")])

	requirements = calculate_planting_requirements(
		recurring,
		recipes={recipe.id: recipe},
		start_from=SUNDAY,
		count=1,
	)

	assert requirements[0].planting_date == date(2026, 2, 22)
	assert requirements[0].trays_required == 2


@pytest.mark.asyncio
async def test_generate_order_prices_items_for_customer_type(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	recipe = _recipe()
	recurring = _recurring([_item(_product(recipe), "2")])
	service = RecurringOrderService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "get", AsyncMock(return_value=recurring))

	order = await service.generate_order(recurring.id, date(2026, 3, 10))

	assert order is not None
	assert order.delivery_date == date(2026, 3, 10)
	assert order.harvest_date == date(2026, 3, 9)
	assert order.status == OrderStatusEnum.pending
	assert order.customer_type == "wholesale"
	assert order.notes == "Auto-generated from recurring order: Cafe weekly"
	assert [item.price for item in order.items] == [Decimal("4.50")]
	added = fake_db_session.added  # type: ignore[attr-defined]
	assert any(isinstance(obj, Order) for obj in added)
	assert any(isinstance(obj, ActivityLog) and obj.log_name == "orders" for obj in added)


@pytest.mark.asyncio
async def test_generate_order_outside_window_returns_none(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	recurring = _recurring(end_date=date(2026, 3, 31))
	service = RecurringOrderService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "get", AsyncMock(return_value=recurring))

	assert await service.generate_order(recurring.id, date(2026, 2, 24)) is None
	assert await service.generate_order(recurring.id, date(2026, 4, 7)) is None
	assert fake_db_session.added == []  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_process_due_creates_next_order_and_retires_expired(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	expired = _recurring(name="Old", end_date=date(2026, 2, 15), start_date=date(2026, 1, 1))
	active = _recurring([_item(_product(_recipe()), "1")], name="Bistro")
	service = RecurringOrderService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "list_active", AsyncMock(return_value=[expired, active]))
	monkeypatch.setattr(service, "_find_order", AsyncMock(return_value=None))

	summary = await service.process_due(SUNDAY)

	assert summary == {"processed": 2, "orders_created": 1, "deactivated": 1, "errors": []}
	assert expired.is_active is False
	orders = [obj for obj in fake_db_session.added if isinstance(obj, Order)]  # type: ignore[attr-defined]
	assert [order.delivery_date for order in orders] == [date(2026, 3, 3)]


@pytest.mark.asyncio
async def test_process_due_skips_existing_order(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	service = RecurringOrderService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "list_active", AsyncMock(return_value=[_recurring()]))
	monkeypatch.setattr(service, "_find_order", AsyncMock(return_value=object()))

	summary = await service.process_due(SUNDAY)

	assert summary["orders_created"] == 0
	assert fake_db_session.added == []  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_delivery_dates_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	recurring = _recurring()
	monkeypatch.setattr(RecurringOrderService, "get", AsyncMock(return_value=recurring))

	response = await client.get(
		f"/api/v1/recurring-orders/{recurring.id}/delivery-dates",
		params={"start_from": "2026-03-01", "count": 2},
	)

	assert response.status_code == 200
	assert response.json()["dates"] == ["2026-03-03", "2026-03-10"]


@pytest.mark.asyncio
async def test_unknown_recurring_order_returns_404(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.setattr(RecurringOrderService, "get", AsyncMock(side_effect=LookupError("missing")))

	response = await client.post(f"/api/v1/recurring-orders/{uuid.uuid4()}/pause")

	assert response.status_code == 404
