from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from app.models.activity import ActivityLog
from app.models.catalog import Recipe
from app.models.crops import Crop
from app.models.enums import CropStageEnum
from app.routes import crops as crop_routes
from app.services.crop_service import CropService
from app.services.inventory_service import InventoryService

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def _recipe(blackout_days: float = 2.0) -> Recipe:
	return Recipe(
		id=uuid.uuid4(),
		name="Radish",
		germination_days=3.0,
		blackout_days=blackout_days,
		light_days=5.0,
		days_to_maturity=None,
		seed_soak_hours=0,
		expected_yield_grams=300.0,
	)


def _crop(recipe: Recipe, **fields: object) -> Crop:
	values: dict[str, object] = {
		"id": uuid.uuid4(),
		"recipe_id": recipe.id,
		"recipe": recipe,
		"order_id": None,
		"planting_schedule_id": None,
		"tray_number": "7",
		"current_stage": CropStageEnum.germination,
		"requires_soaking": False,
		"planted_at": NOW - timedelta(days=4),
		"soaking_at": None,
		"germination_at": NOW - timedelta(days=4),
		"blackout_at": None,
		"light_at": None,
		"harvested_at": None,
		"notes": None,
	}
	values.update(fields)
	return Crop(**values)


@pytest.mark.asyncio
async def test_advance_stage_stamps_next_stage(fake_db_session: object, monkeypatch: pytest.MonkeyPatch) -> None:
	crop = _crop(_recipe())
	service = CropService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "get_crop", AsyncMock(return_value=crop))

	await service.advance_stage(crop.id, at=NOW)

	assert crop.blackout_at == NOW
	assert crop.current_stage == CropStageEnum.blackout
	(entry,) = fake_db_session.added  # type: ignore[attr-defined]
	assert isinstance(entry, ActivityLog)
	assert entry.properties == {"from": "germination", "to": "blackout"}


@pytest.mark.asyncio
async def test_advance_stage_skips_blackout_for_recipe_without_it(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	crop = _crop(_recipe(blackout_days=0))
	service = CropService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "get_crop", AsyncMock(return_value=crop))

	await service.advance_stage(crop.id, at=NOW)

	assert crop.blackout_at is None
	assert crop.light_at == NOW
	assert crop.current_stage == CropStageEnum.light


@pytest.mark.asyncio
async def test_advance_stage_rejects_timestamp_before_previous_stage(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	crop = _crop(_recipe())
	service = CropService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "get_crop", AsyncMock(return_value=crop))

	with pytest.raises(ValueError, match="cannot be earlier than 'germination'"):
		await service.advance_stage(crop.id, at=NOW - timedelta(days=10))

	assert crop.blackout_at is None
	assert crop.current_stage == CropStageEnum.germination
	assert fake_db_session.added == []  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_advance_harvested_crop_fails(fake_db_session: object, monkeypatch: pytest.MonkeyPatch) -> None:
	crop = _crop(_recipe(), current_stage=CropStageEnum.harvested, light_at=NOW - timedelta(days=1), harvested_at=NOW)
	service = CropService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "get_crop", AsyncMock(return_value=crop))

	with pytest.raises(ValueError, match="final stage"):
		await service.advance_stage(crop.id)


@pytest.mark.asyncio
async def test_process_crop_tasks_repairs_stages_and_counts_due(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	recipe = _recipe()
	drifted = _crop(recipe, blackout_at=NOW - timedelta(hours=1))
	due = _crop(recipe)
	fresh = _crop(recipe, germination_at=NOW - timedelta(hours=2))
	service = CropService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "_growing_crops", AsyncMock(return_value=[drifted, due, fresh]))

	summary = await service.process_crop_tasks(NOW)

	assert summary["processed"] == 3
	assert summary["stage_updated"] == 1
	assert drifted.current_stage == CropStageEnum.blackout
	assert summary["due"] == 1
	assert summary["due_crop_ids"] == [str(due.id)]
	assert summary["errors"] == 0


@pytest.mark.asyncio
async def test_check_resource_levels_lists_low_stock(
	fake_db_session: object,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	from decimal import Decimal

	from app.models.enums import ConsumableTypeEnum
	from app.models.inventory import Consumable

	seed = Consumable(
		id=uuid.uuid4(),
		name="Radish seed",
		consumable_type=ConsumableTypeEnum.seed,
		unit="kg",
		current_stock=Decimal("0.500"),
		restock_threshold=Decimal("1.000"),
		is_active=True,
	)
	service = InventoryService(fake_db_session)  # type: ignore[arg-type]
	monkeypatch.setattr(service, "low_stock", AsyncMock(return_value=[seed]))

	alerts = await service.check_resource_levels()

	assert alerts == [
		{
			"id": str(seed.id),
			"name": "Radish seed",
			"type": "seed",
			"current_stock": "0.500",
			"restock_threshold": "1.000",
			"unit": "kg",
		}
	]


@pytest.mark.asyncio
async def test_get_crop_endpoint_includes_timing(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	crop = _crop(_recipe(), germination_at=datetime.now(UTC) - timedelta(hours=24))
	crop.created_at = NOW
	monkeypatch.setattr(CropService, "get_crop", AsyncMock(return_value=crop))

	response = await client.get(f"/api/v1/crops/{crop.id}")

	assert response.status_code == 200
	body = response.json()
	assert body["recipe_name"] == "Radish"
	assert body["timing"]["stage_label"] == "Germination"
	assert body["timing"]["stage_age_display"] in {"1d", "23h 59m"}
	assert body["timing"]["stage_age_status"] == "On Track"


@pytest.mark.asyncio
async def test_advance_endpoint_maps_errors(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.setattr(CropService, "advance_stage", AsyncMock(side_effect=ValueError("already final")))
	response = await client.post(f"/api/v1/crops/{uuid.uuid4()}/advance")
	assert response.status_code == 400

	monkeypatch.setattr(CropService, "advance_stage", AsyncMock(side_effect=LookupError("no crop")))
	response = await client.post(f"/api/v1/crops/{uuid.uuid4()}/advance")
	assert response.status_code == 404


@pytest.mark.asyncio
async def test_advance_endpoint_logs_unexpected_errors(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	logger = MagicMock()
	monkeypatch.setattr(crop_routes, "logger", logger)
	monkeypatch.setattr(CropService, "advance_stage", AsyncMock(side_effect=RuntimeError("connection reset")))

	response = await client.post(f"/api/v1/crops/{uuid.uuid4()}/advance")

	assert response.status_code == 500
	assert response.json()["detail"] == "Unexpected crop service failure"
	logger.error.assert_called_once()
	args, kwargs = logger.error.call_args
	assert args == ("unexpected_route_error",)
	assert kwargs["error_type"] == "RuntimeError"
	assert isinstance(kwargs["exc_info"], RuntimeError)
