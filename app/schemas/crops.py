"""Pydantic schemas for crop trays and their computed timing."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.enums import CropStageEnum


class CropTimingRead(BaseModel):
	stage_label: str
	stage_age_minutes: int | None = None
	stage_age_display: str
	stage_age_status: str
	total_age_minutes: int | None = None
	total_age_display: str
	total_age_status: str
	time_to_next_stage_minutes: int | None = None
	time_to_next_stage_display: str


class CropRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	recipe_id: uuid.UUID
	recipe_name: str | None = None
	order_id: uuid.UUID | None = None
	planting_schedule_id: uuid.UUID | None = None
	tray_number: str
	current_stage: CropStageEnum
	requires_soaking: bool
	planted_at: datetime | None = None
	soaking_at: datetime | None = None
	germination_at: datetime | None = None
	blackout_at: datetime | None = None
	light_at: datetime | None = None
	harvested_at: datetime | None = None
	notes: str | None = None
	timing: CropTimingRead


class CropAdvanceRequest(BaseModel):
	at: datetime | None = None


class CropTaskSummary(BaseModel):
	processed: int
	stage_updated: int
	due: int
	errors: int
	due_crop_ids: list[str]
