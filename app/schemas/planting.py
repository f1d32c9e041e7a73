"""Pydantic schemas for planting schedules."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.enums import PlantingStatusEnum


class DateRange(BaseModel):
	start: date
	end: date

	@model_validator(mode="after")
	def _ordered(self) -> "DateRange":
		if self.start > self.end:
			raise ValueError("start must be on or before end")
		return self


class PlantingScheduleRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	recipe_id: uuid.UUID
	planting_date: date
	target_harvest_date: date
	trays_required: int
	trays_planted: int
	status: PlantingStatusEnum
	related_orders: list[str] | None = None
	related_recurring_orders: list[str] | None = None
	notes: str | None = None
	created_at: datetime
	updated_at: datetime


class SyncResponse(BaseModel):
	start: date
	end: date
	created: int


class GenerateTraysRequest(BaseModel):
	count: int = Field(gt=0, le=500)
	planted_at: datetime | None = None


class GenerateTraysResponse(BaseModel):
	schedule: PlantingScheduleRead
	crop_ids: list[uuid.UUID]
