"""Crop reads, manual stage advancement and the periodic crop task sweep."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.crops import Crop
from app.models.enums import CropStageEnum
from app.services import crop_stage
from app.services.activity_service import ActivityLogService

logger = structlog.get_logger("trayline.crops")


class CropService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def list_crops(self, stage: CropStageEnum | None = None) -> list[Crop]:
		stmt = select(Crop).order_by(Crop.created_at.desc())
		if stage is not None:
			stmt = stmt.where(Crop.current_stage == stage)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def get_crop(self, crop_id: uuid.UUID) -> Crop:
		row = await self.db.execute(select(Crop).where(Crop.id == crop_id))
		crop = row.scalar_one_or_none()
		if crop is None:
			raise LookupError(f"Crop {crop_id} not found")
		return crop

	async def _growing_crops(self) -> list[Crop]:
		rows = await self.db.execute(select(Crop).where(Crop.harvested_at.is_(None)))
		return list(rows.scalars().all())

	async def advance_stage(
		self,
		crop_id: uuid.UUID,
		at: datetime | None = None,
		causer_id: uuid.UUID | None = None,
	) -> Crop:
		crop = await self.get_crop(crop_id)
		previous = crop_stage.calculate_stage(crop)
		target = crop_stage.next_viable_stage(previous, crop.recipe)
		if target is None:
			raise ValueError(f"Crop {crop_id} is already at its final stage")

		field = crop_stage.STAGE_TIMESTAMP_FIELDS[target]
		setattr(crop, field, at or datetime.now(UTC))
		errors = crop_stage.validate_timestamp_sequence(crop)
		if errors:
			setattr(crop, field, None)
			raise ValueError("; ".join(errors))

		crop_stage.update_crop_stage(crop)
		await ActivityLogService(self.db).record(
			"crops",
			"stage_advanced",
			f"Tray {crop.tray_number} advanced from {previous.value} to {target.value}",
			subject=crop,
			causer_id=causer_id,
			properties={"from": previous.value, "to": target.value},
		)
		await self.db.flush()
		return crop

	async def process_crop_tasks(self, now: datetime | None = None) -> dict[str, Any]:
		now = now or datetime.now(UTC)
		summary: dict[str, Any] = {
			"processed": 0,
			"stage_updated": 0,
			"due": 0,
			"errors": 0,
			"due_crop_ids": [],
		}

		for crop in await self._growing_crops():
			summary["processed"] += 1
			try:
				if crop_stage.update_crop_stage(crop):
					summary["stage_updated"] += 1
				check = crop_stage.can_auto_advance(crop, crop.recipe, now)
				if check.can_advance:
					summary["due"] += 1
					summary["due_crop_ids"].append(str(crop.id))
			except Exception:
				summary["errors"] += 1
				logger.exception("crop_task_failed", crop_id=str(crop.id))

		await self.db.flush()
		logger.info(
			"crop_tasks_processed",
			processed=summary["processed"],
			stage_updated=summary["stage_updated"],
			due=summary["due"],
			errors=summary["errors"],
		)
		return summary
