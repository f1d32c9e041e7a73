"""In-process periodic task runner.

Started from the FastAPI lifespan when ``scheduler_enabled`` is set.  Every
``scheduler_tick_seconds`` the loop checks which tasks are due and runs them
one after another, each in its own database session and recorded as a
``TaskRun``.

Overlapping runs of the same task (another worker, a CLI invocation, a slow
previous tick) are prevented with a Redis ``SET NX EX`` lock per task; with no
Redis available a process-local ``asyncio.Lock`` is used instead.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Awaitable, Callable

import structlog
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import async_session_factory
from app.schemas.jobs import TaskRunStatusResponse
from app.services.jobs_service import JobsService

logger = structlog.get_logger("trayline.scheduler")


@dataclass(slots=True)
class ScheduledTask:
	name: str
	interval: timedelta
	last_run_at: datetime | None = None

	def is_due(self, now: datetime) -> bool:
		return self.last_run_at is None or now - self.last_run_at >= self.interval


def default_tasks(settings: Settings) -> list[ScheduledTask]:
	return [
		ScheduledTask("check_resource_levels", timedelta(minutes=settings.resource_check_interval_minutes)),
		ScheduledTask("process_crop_tasks", timedelta(minutes=settings.crop_task_interval_minutes)),
		ScheduledTask("sync_planting_schedules", timedelta(minutes=settings.planting_sync_interval_minutes)),
	]


class TaskLock:
	"""Per-task mutual exclusion, Redis-backed when a client is available."""

	def __init__(self, redis_client: Redis | None, ttl_seconds: int):
		self.redis_client = redis_client
		self.ttl_seconds = ttl_seconds
		self._local: dict[str, asyncio.Lock] = {}

	@staticmethod
	def key(task_name: str) -> str:
		return f"lock:task:{task_name}"

	@asynccontextmanager
	async def hold(self, task_name: str) -> AsyncIterator[bool]:
		if self.redis_client is None:
			lock = self._local.setdefault(task_name, asyncio.Lock())
			if lock.locked():
				yield False
				return
			async with lock:
				yield True
			return

		token = uuid.uuid4().hex
		acquired = await self.redis_client.set(self.key(task_name), token, nx=True, ex=self.ttl_seconds)
		if not acquired:
			yield False
			return
		try:
			yield True
		finally:
			current = await self.redis_client.get(self.key(task_name))
			if current == token:
				await self.redis_client.delete(self.key(task_name))


class PeriodicScheduler:
	def __init__(
		self,
		redis_client: Redis | None = None,
		settings: Settings | None = None,
		session_factory: Callable[[], Any] = async_session_factory,
		tasks: list[ScheduledTask] | None = None,
	):
		self.settings = settings or get_settings()
		self.redis_client = redis_client
		self.session_factory = session_factory
		self.tasks = tasks if tasks is not None else default_tasks(self.settings)
		self.lock = TaskLock(redis_client, self.settings.task_lock_ttl_seconds)
		self._runner: asyncio.Task | None = None
		self._stopping = asyncio.Event()

	async def run_task(self, task_name: str, parameters: dict[str, Any] | None = None) -> dict[str, Any] | None:
		"""Run one task under its lock; ``None`` when skipped or failed."""
		return await self._run_locked(task_name, lambda service: service.run_now(task_name, parameters))

	async def run_queued(self, run_id: uuid.UUID, task_name: str) -> dict[str, Any] | None:
		"""Execute a run queued over HTTP under the same per-task lock.

		A run that cannot take the lock is closed as failed instead of being
		left queued.
		"""
		return await self._run_locked(
			task_name,
			lambda service: service.execute(run_id),
			on_locked=lambda service: service.mark_skipped(run_id),
		)

	async def _run_locked(
		self,
		task_name: str,
		call: Callable[[JobsService], Awaitable[TaskRunStatusResponse]],
		on_locked: Callable[[JobsService], Awaitable[TaskRunStatusResponse]] | None = None,
	) -> dict[str, Any] | None:
		async with self.lock.hold(task_name) as acquired:
			if not acquired:
				logger.info("task_skipped_locked", task_name=task_name)
				if on_locked is not None:
					async with self.session_factory() as session:
						try:
							await on_locked(JobsService(session, self.redis_client))
						except Exception:
							logger.exception("task_skip_record_failed", task_name=task_name)
							await session.rollback()
							return None
						await self._commit_quietly(session, task_name)
				return None

			async with self.session_factory() as session:
				service = JobsService(session, self.redis_client)
				try:
					status = await call(service)
				except Exception:
					await self._commit_quietly(session, task_name)
					return None
				await session.commit()
				return status.model_dump(mode="json")

	@staticmethod
	async def _commit_quietly(session: AsyncSession, task_name: str) -> None:
		try:
			await session.commit()
		except Exception:
			logger.exception("task_status_commit_failed", task_name=task_name)
			await session.rollback()

	async def tick(self, now: datetime | None = None) -> list[str]:
		now = now or datetime.now(UTC)
		ran: list[str] = []
		for task in self.tasks:
			if not task.is_due(now):
				continue
			task.last_run_at = now
			await self.run_task(task.name)
			ran.append(task.name)
		return ran

	async def run_forever(self) -> None:
		logger.info("scheduler_started", tasks=[task.name for task in self.tasks])
		while not self._stopping.is_set():
			try:
				await self.tick()
			except Exception:
				logger.exception("scheduler_tick_failed")
			try:
				await asyncio.wait_for(self._stopping.wait(), timeout=self.settings.scheduler_tick_seconds)
			except TimeoutError:
				continue
		logger.info("scheduler_stopped")

	def start(self) -> None:
		if self._runner is None or self._runner.done():
			self._stopping.clear()
			self._runner = asyncio.create_task(self.run_forever(), name="trayline-scheduler")

	async def stop(self) -> None:
		self._stopping.set()
		if self._runner is not None:
			await self._runner
			self._runner = None
