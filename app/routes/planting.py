"""Planting schedule routes: listing, recurring-order sync, tray generation."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_manager, require_staff
from app.database import get_db
from app.schemas.planting import (
	DateRange,
	GenerateTraysRequest,
	GenerateTraysResponse,
	PlantingScheduleRead,
	SyncResponse,
)
from app.services.planting_schedule import PlantingScheduleService

router = APIRouter(prefix="/planting-schedules", tags=["planting"])
logger = structlog.get_logger("trayline.routes.planting")


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	logger.error("unexpected_route_error", error_type=type(exc).__name__, exc_info=exc)
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail="Unexpected planting schedule failure",
	)


@router.get("", response_model=list[PlantingScheduleRead])
async def list_schedules(
	start: date = Query(...),
	end: date = Query(...),
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_staff),
) -> list[PlantingScheduleRead]:
	try:
		schedules = await PlantingScheduleService(db).list_schedules(start, end)
	except Exception as exc:
		raise _map_error(exc) from exc
	return [PlantingScheduleRead.model_validate(schedule) for schedule in schedules]


@router.post("/sync", response_model=SyncResponse)
async def sync_schedules(
	payload: DateRange,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> SyncResponse:
	try:
		created = await PlantingScheduleService(db).sync_from_recurring_orders(payload.start, payload.end)
	except Exception as exc:
		raise _map_error(exc) from exc
	return SyncResponse(start=payload.start, end=payload.end, created=created)


@router.post("/from-order/{order_id}", response_model=list[PlantingScheduleRead])
async def create_from_order(
	order_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> list[PlantingScheduleRead]:
	try:
		schedules = await PlantingScheduleService(db).create_from_order(order_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return [PlantingScheduleRead.model_validate(schedule) for schedule in schedules]


@router.post("/{schedule_id}/trays", response_model=GenerateTraysResponse, status_code=status.HTTP_201_CREATED)
async def generate_trays(
	schedule_id: uuid.UUID,
	payload: GenerateTraysRequest,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_staff),
) -> GenerateTraysResponse:
	service = PlantingScheduleService(db)
	try:
		crops = await service.generate_trays(schedule_id, payload.count, payload.planted_at)
		schedule = await service.get_schedule(schedule_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return GenerateTraysResponse(
		schedule=PlantingScheduleRead.model_validate(schedule),
		crop_ids=[crop.id for crop in crops],
	)
