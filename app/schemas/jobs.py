"""Pydantic schemas for background task endpoints."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field


class TaskRunRequest(BaseModel):
	start: date | None = None
	end: date | None = None
	parameters: dict[str, Any] = Field(default_factory=dict)


class TaskRunCreateResponse(BaseModel):
	run_id: uuid.UUID
	task_name: str
	status: str
	created_at: datetime


class TaskRunStatusResponse(BaseModel):
	run_id: uuid.UUID
	task_name: str
	status: str
	parameters: dict[str, Any] | None = None
	result: dict[str, Any] | None = None
	created_at: datetime
	started_at: datetime | None = None
	completed_at: datetime | None = None
	error: str | None = None
	updated_at: datetime
