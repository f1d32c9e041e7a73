"""Crop tray routes: listing with computed timing, stage advancement."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_staff
from app.database import get_db
from app.models.enums import CropStageEnum
from app.schemas.crops import CropAdvanceRequest, CropRead, CropTaskSummary, CropTimingRead
from app.services import crop_time
from app.services.crop_service import CropService

router = APIRouter(prefix="/crops", tags=["crops"])
logger = structlog.get_logger("trayline.routes.crops")


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	logger.error("unexpected_route_error", error_type=type(exc).__name__, exc_info=exc)
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail="Unexpected crop service failure",
	)


def _to_crop_read(crop: Any, now: datetime) -> CropRead:
	recipe = getattr(crop, "recipe", None)
	timing = crop_time.snapshot(crop, recipe, now)
	return CropRead(
		id=crop.id,
		recipe_id=crop.recipe_id,
		recipe_name=getattr(recipe, "name", None),
		order_id=crop.order_id,
		planting_schedule_id=crop.planting_schedule_id,
		tray_number=crop.tray_number,
		current_stage=crop.current_stage,
		requires_soaking=crop.requires_soaking,
		planted_at=crop.planted_at,
		soaking_at=crop.soaking_at,
		germination_at=crop.germination_at,
		blackout_at=crop.blackout_at,
		light_at=crop.light_at,
		harvested_at=crop.harvested_at,
		notes=crop.notes,
		timing=CropTimingRead(**timing.as_dict()),
	)


@router.get("", response_model=list[CropRead])
async def list_crops(
	stage: CropStageEnum | None = None,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_staff),
) -> list[CropRead]:
	try:
		crops = await CropService(db).list_crops(stage)
	except Exception as exc:
		raise _map_error(exc) from exc
	now = datetime.now(UTC)
	return [_to_crop_read(crop, now) for crop in crops]


@router.get("/{crop_id}", response_model=CropRead)
async def get_crop(
	crop_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_staff),
) -> CropRead:
	try:
		crop = await CropService(db).get_crop(crop_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return _to_crop_read(crop, datetime.now(UTC))


@router.post("/{crop_id}/advance", response_model=CropRead)
async def advance_crop(
	crop_id: uuid.UUID,
	payload: CropAdvanceRequest | None = None,
	db: AsyncSession = Depends(get_db),
	user: Any = Depends(require_staff),
) -> CropRead:
	at = payload.at if payload is not None else None
	try:
		crop = await CropService(db).advance_stage(crop_id, at=at, causer_id=user.id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return _to_crop_read(crop, datetime.now(UTC))


@router.post("/process-tasks", response_model=CropTaskSummary)
async def process_crop_tasks(
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_staff),
) -> CropTaskSummary:
	try:
		summary = await CropService(db).process_crop_tasks()
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropTaskSummary(**summary)
