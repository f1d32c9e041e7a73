"""Durable task runs for periodic and on-demand background work."""

from __future__ import annotations

import json
import uuid
from datetime import UTC, date, datetime, timedelta
from typing import Any, Awaitable, Callable

import structlog
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.enums import TaskStatusEnum
from app.models.jobs import TaskRun
from app.schemas.jobs import TaskRunCreateResponse, TaskRunStatusResponse
from app.services.crop_service import CropService
from app.services.inventory_service import InventoryService
from app.services.planting_schedule import PlantingScheduleService
from app.services.recurring_orders import RecurringOrderService

logger = structlog.get_logger("trayline.jobs")

TASK_STATUS_TTL_SECONDS = 60 * 60 * 24

TaskHandler = Callable[[AsyncSession, dict[str, Any]], Awaitable[dict[str, Any]]]


def _date_param(parameters: dict[str, Any], key: str, default: date) -> date:
	value = parameters.get(key)
	if value is None:
		return default
	if isinstance(value, date):
		return value
	return date.fromisoformat(str(value))


async def check_resource_levels(db: AsyncSession, parameters: dict[str, Any]) -> dict[str, Any]:
	alerts = await InventoryService(db).check_resource_levels()
	return {"low_stock": len(alerts), "consumables": alerts}


async def process_crop_tasks(db: AsyncSession, parameters: dict[str, Any]) -> dict[str, Any]:
	return await CropService(db).process_crop_tasks()


async def sync_planting_schedules(db: AsyncSession, parameters: dict[str, Any]) -> dict[str, Any]:
	today = date.today()
	start = _date_param(parameters, "start", today)
	end = _date_param(parameters, "end", start + timedelta(days=get_settings().planting_sync_horizon_days))
	created = await PlantingScheduleService(db).sync_from_recurring_orders(start, end)
	return {"start": start.isoformat(), "end": end.isoformat(), "created": created}


async def process_recurring_orders(db: AsyncSession, parameters: dict[str, Any]) -> dict[str, Any]:
	return await RecurringOrderService(db).process_due(_date_param(parameters, "today", date.today()))


TASK_HANDLERS: dict[str, TaskHandler] = {
	"check_resource_levels": check_resource_levels,
	"process_crop_tasks": process_crop_tasks,
	"sync_planting_schedules": sync_planting_schedules,
	"process_recurring_orders": process_recurring_orders,
}


class JobsService:
	def __init__(self, db: AsyncSession, redis_client: Redis | None = None):
		self.db = db
		self.redis_client = redis_client

	async def create_task_run(
		self,
		task_name: str,
		parameters: dict[str, Any] | None = None,
	) -> TaskRunCreateResponse:
		if task_name not in TASK_HANDLERS:
			raise ValueError(f"Unknown task '{task_name}'")
		run = TaskRun(task_name=task_name, status=TaskStatusEnum.queued, parameters=parameters or {})
		self.db.add(run)
		await self.db.flush()
		await self.db.refresh(run)
		await self._persist_status(run)
		return TaskRunCreateResponse(
			run_id=run.id,
			task_name=run.task_name,
			status=run.status.value,
			created_at=run.created_at,
		)

	async def get_task_status(self, run_id: uuid.UUID) -> TaskRunStatusResponse:
		cached = await self._read_cached_status(run_id)
		if cached is not None:
			return cached

		run = await self._require_run(run_id)
		payload = self._to_status_payload(run)
		await self._persist_status(run)
		return payload

	async def list_runs(self, task_name: str | None = None, limit: int = 20) -> list[TaskRunStatusResponse]:
		stmt = select(TaskRun).order_by(TaskRun.created_at.desc()).limit(limit)
		if task_name is not None:
			stmt = stmt.where(TaskRun.task_name == task_name)
		rows = await self.db.execute(stmt)
		return [self._to_status_payload(run) for run in rows.scalars().all()]

	async def execute(self, run_id: uuid.UUID) -> TaskRunStatusResponse:
		run = await self._require_run(run_id)
		handler = TASK_HANDLERS.get(run.task_name)
		if handler is None:
			raise ValueError(f"Unknown task '{run.task_name}'")

		run.status = TaskStatusEnum.running
		run.started_at = datetime.now(UTC)
		run.error = None
		await self.db.flush()
		await self._persist_status(run)
		log = logger.bind(task_name=run.task_name, run_id=str(run.id))
		log.info("task_started")

		try:
			# A failed handler only rolls back its own savepoint; the run row survives.
			async with self.db.begin_nested():
				result = await handler(self.db, dict(run.parameters or {}))
			run.result = json.loads(json.dumps(result, default=str))
			run.status = TaskStatusEnum.succeeded
			run.completed_at = datetime.now(UTC)
		except Exception as exc:
			run.status = TaskStatusEnum.failed
			run.completed_at = datetime.now(UTC)
			run.error = str(exc)[:2048]
			await self.db.flush()
			await self._persist_status(run)
			log.exception("task_failed")
			raise

		await self.db.flush()
		await self._persist_status(run)
		log.info("task_succeeded")
		return self._to_status_payload(run)

	async def mark_skipped(self, run_id: uuid.UUID, reason: str | None = None) -> TaskRunStatusResponse:
		"""Close a queued run that could not take its task lock."""
		run = await self._require_run(run_id)
		run.status = TaskStatusEnum.failed
		run.completed_at = datetime.now(UTC)
		run.error = reason or f"Skipped: {run.task_name} is already running"
		await self.db.flush()
		await self._persist_status(run)
		logger.info("task_run_skipped", task_name=run.task_name, run_id=str(run.id))
		return self._to_status_payload(run)

	async def run_now(
		self,
		task_name: str,
		parameters: dict[str, Any] | None = None,
	) -> TaskRunStatusResponse:
		created = await self.create_task_run(task_name, parameters)
		return await self.execute(created.run_id)

	async def _require_run(self, run_id: uuid.UUID) -> TaskRun:
		row = await self.db.execute(select(TaskRun).where(TaskRun.id == run_id))
		run = row.scalar_one_or_none()
		if run is None:
			raise LookupError(f"Task run {run_id} not found")
		return run

	async def _persist_status(self, run: TaskRun) -> None:
		if self.redis_client is None:
			return
		payload = self._to_status_payload(run).model_dump(mode="json")
		await self.redis_client.setex(f"task:{run.id}:status", TASK_STATUS_TTL_SECONDS, json.dumps(payload))

	async def _read_cached_status(self, run_id: uuid.UUID) -> TaskRunStatusResponse | None:
		if self.redis_client is None:
			return None
		value = await self.redis_client.get(f"task:{run_id}:status")
		if value is None:
			return None
		return TaskRunStatusResponse(**json.loads(value))

	@staticmethod
	def _to_status_payload(run: TaskRun) -> TaskRunStatusResponse:
		return TaskRunStatusResponse(
			run_id=run.id,
			task_name=run.task_name,
			status=run.status.value,
			parameters=run.parameters,
			result=run.result,
			created_at=run.created_at,
			started_at=run.started_at,
			completed_at=run.completed_at,
			error=run.error,
			updated_at=run.updated_at,
		)
