from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from app.models.catalog import Product, Recipe
from app.models.crops import Crop
from app.models.enums import CropStageEnum, PlantingStatusEnum, RecurrenceFrequencyEnum
from app.models.orders import RecurringOrder, RecurringOrderItem
from app.models.planting import PlantingSchedule
from app.services.planting_schedule import PlantingScheduleService, derive_status, update_status

START = date(2026, 2, 20)
END = date(2026, 3, 20)


def _recipe() -> Recipe:
	return Recipe(
		id=uuid.uuid4(),
		name="Pea Shoots",
		germination_days=3.0,
		blackout_days=2.0,
		light_days=5.0,
		days_to_maturity=None,
		seed_soak_hours=8,
		expected_yield_grams=500.0,
	)


def _recurring(recipe: Recipe, quantity: str = "2", name: str = "Cafe weekly") -> RecurringOrder:
	product = Product(
		id=uuid.uuid4(),
		name=f"{recipe.name} {name}",
		recipe_id=recipe.id,
		recipe=recipe,
		expected_yield_grams=None,
		base_price=Decimal("5.00"),
		wholesale_discount_percentage=None,
	)
	item = RecurringOrderItem(product=product, product_id=product.id, quantity=Decimal(quantity), price=None, notes=None)
	return RecurringOrder(
		id=uuid.uuid4(),
		name=name,
		frequency=RecurrenceFrequencyEnum.weekly,
		delivery_days=[2],
		interval=None,
		interval_unit=None,
		customer_type="retail",
		start_date=date(2026, 1, 1),
		end_date=None,
		is_active=True,
		items=[item],
	)


def _stub_lookups(
	service: PlantingScheduleService,
	fake_db_session: object,
	recurring_orders: list[RecurringOrder],
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	"""Serve recurring orders from memory and find schedules among the rows already added."""

	async def _active(_start: date, _end: date) -> list[RecurringOrder]:
		return recurring_orders

	async def _find(recipe_id: uuid.UUID, planting_date: date, harvest_date: date) -> PlantingSchedule | None:
		for obj in fake_db_session.added:  # type: ignore[attr-defined]
			if (
				isinstance(obj, PlantingSchedule)
				and obj.recipe_id == recipe_id
				and obj.planting_date == planting_date
				and obj.target_harvest_date == harvest_date
			):
				return obj
		return None

	monkeypatch.setattr(service, "_active_recurring_orders", _active)
	monkeypatch.setattr(service, "_find_schedule", _find)


def _schedules(fake_db_session: object) -> list[PlantingSchedule]:
	return [obj for obj in fake_db_session.added if isinstance(obj, PlantingSchedule)]  # type: ignore[attr-defined]


@pytest.mark.parametrize(
	("planted", "required", "harvest", "expected"),
	[
		(0, 4, date(2026, 3, 10), PlantingStatusEnum.pending),
		(2, 4, date(2026, 3, 10), PlantingStatusEnum.partially_planted),
		(4, 4, date(2026, 3, 10), PlantingStatusEnum.fully_planted),
		(5, 4, date(2026, 3, 10), PlantingStatusEnum.fully_planted),
		(4, 4, date(2026, 3, 1), PlantingStatusEnum.completed),
	],
)
def test_derive_status(planted: int, required: int, harvest: date, expected: PlantingStatusEnum) -> None:
	assert derive_status(planted, required, harvest, date(2026, 3, 5)) == expected


def test_update_status_sets_schedule_status() -> None:
	schedule = PlantingSchedule(trays_planted=1, trays_required=3, target_harvest_date=date(2026, 3, 10))
	assert update_status(schedule, date(2026, 3, 1)) == PlantingStatusEnum.partially_planted
	assert schedule.status == PlantingStatusEnum.partially_planted


@pytest.mark.asyncio
async def test_sync_creates_schedules_inside_range(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	recipe = _recipe()
	recurring = _recurring(recipe)
	service = PlantingScheduleService(fake_db_session)  # type: ignore[arg-type]
	_stub_lookups(service, fake_db_session, [recurring], monkeypatch)

	created = await service.sync_from_recurring_orders(START, END)

	schedules = _schedules(fake_db_session)
	assert created == 5
	assert [s.planting_date for s in schedules] == [
		date(2026, 2, 20),
		date(2026, 2, 27),
		date(2026, 3, 6),
		date(2026, 3, 13),
		date(2026, 3, 20),
	]
	first = schedules[0]
	assert first.target_harvest_date == date(2026, 3, 2)
	assert first.trays_required == 4
	assert first.status == PlantingStatusEnum.pending
	assert first.related_recurring_orders == [str(recurring.id)]
	assert first.notes == "Auto-generated from recurring order: Cafe weekly"


@pytest.mark.asyncio
async def test_sync_is_idempotent(fake_db_session: object, monkeypatch: pytest.MonkeyPatch) -> None:
	recurring = _recurring(_recipe())
	service = PlantingScheduleService(fake_db_session)  # type: ignore[arg-type]
	_stub_lookups(service, fake_db_session, [recurring], monkeypatch)

	assert await service.sync_from_recurring_orders(START, END) == 5
	assert await service.sync_from_recurring_orders(START, END) == 0

	schedules = _schedules(fake_db_session)
	assert len(schedules) == 5
	assert all(s.related_recurring_orders == [str(recurring.id)] for s in schedules)


@pytest.mark.asyncio
async def test_sync_links_orders_sharing_recipe_and_dates(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	recipe = _recipe()
	cafe = _recurring(recipe, quantity="2", name="Cafe weekly")
	market = _recurring(recipe, quantity="3", name="Market weekly")
	service = PlantingScheduleService(fake_db_session)  # type: ignore[arg-type]
	_stub_lookups(service, fake_db_session, [cafe, market], monkeypatch)

	created = await service.sync_from_recurring_orders(START, END)

	schedules = _schedules(fake_db_session)
	assert created == 5
	assert len(schedules) == 5
	assert schedules[0].related_recurring_orders == [str(cafe.id), str(market.id)]
	assert schedules[0].trays_required == 6


@pytest.mark.asyncio
async def test_sync_reopens_fully_planted_schedule_when_requirement_grows(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	recurring = _recurring(_recipe(), quantity="2")
	service = PlantingScheduleService(fake_db_session)  # type: ignore[arg-type]
	_stub_lookups(service, fake_db_session, [recurring], monkeypatch)
	await service.sync_from_recurring_orders(START, END)

	first = _schedules(fake_db_session)[0]
	first.trays_planted = first.trays_required
	first.status = PlantingStatusEnum.fully_planted
	recurring.items[0].quantity = Decimal("6")

	assert await service.sync_from_recurring_orders(START, END) == 0

	assert first.trays_planted == 4
	assert first.trays_required == 12
	assert first.status == PlantingStatusEnum.partially_planted


@pytest.mark.asyncio
async def test_sync_rejects_inverted_range(fake_db_session: object) -> None:
	service = PlantingScheduleService(fake_db_session)  # type: ignore[arg-type]
	with pytest.raises(ValueError):
		await service.sync_from_recurring_orders(END, START)


@pytest.mark.asyncio
async def test_generate_trays_numbers_after_existing_trays(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	recipe = _recipe()
	schedule = PlantingSchedule(
		id=uuid.uuid4(),
		recipe_id=recipe.id,
		recipe=recipe,
		planting_date=date(2026, 3, 6),
		target_harvest_date=date(2026, 3, 16),
		trays_required=5,
		trays_planted=0,
		status=PlantingStatusEnum.pending,
	)
	service = PlantingScheduleService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "get_schedule", AsyncMock(return_value=schedule))
	monkeypatch.setattr(service, "_max_tray_number", AsyncMock(return_value=3))
	planted_at = datetime(2026, 3, 6, 9, 0, tzinfo=UTC)

	crops = await service.generate_trays(schedule.id, 2, planted_at)

	assert [crop.tray_number for crop in crops] == ["4", "5"]
	assert all(crop.current_stage == CropStageEnum.germination for crop in crops)
	assert all(crop.germination_at == planted_at and crop.requires_soaking for crop in crops)
	assert schedule.trays_planted == 2
	assert schedule.status == PlantingStatusEnum.partially_planted
	assert [obj for obj in fake_db_session.added if isinstance(obj, Crop)] == crops  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_generate_trays_rejects_non_positive_count(fake_db_session: object) -> None:
	service = PlantingScheduleService(fake_db_session)  # type: ignore[arg-type]
	with pytest.raises(ValueError):
		await service.generate_trays(uuid.uuid4(), 0)


@pytest.mark.asyncio
async def test_sync_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.setattr(
		PlantingScheduleService,
		"sync_from_recurring_orders",
		AsyncMock(return_value=3),
	)

	response = await client.post("/api/v1/planting-schedules/sync", json={"start": "2026-03-01", "end": "2026-03-28"})

	assert response.status_code == 200
	assert response.json() == {"start": "2026-03-01", "end": "2026-03-28", "created": 3}


@pytest.mark.asyncio
async def test_sync_endpoint_rejects_inverted_range(client: AsyncClient) -> None:
	response = await client.post("/api/v1/planting-schedules/sync", json={"start": "2026-03-28", "end": "2026-03-01"})
	assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_endpoint_maps_value_error(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.setattr(
		PlantingScheduleService,
		"list_schedules",
		AsyncMock(side_effect=ValueError("start date must be on or before end date")),
	)

	response = await client.get("/api/v1/planting-schedules", params={"start": "2026-03-02", "end": "2026-03-01"})

	assert response.status_code == 400
