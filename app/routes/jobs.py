"""Background task routes: queue a task run on demand, read its status."""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_manager
from app.database import get_db
from app.scheduler import PeriodicScheduler
from app.schemas.jobs import TaskRunCreateResponse, TaskRunRequest, TaskRunStatusResponse
from app.services.jobs_service import JobsService

router = APIRouter(prefix="/jobs", tags=["jobs"])
logger = structlog.get_logger("trayline.jobs")


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	logger.error("unexpected_route_error", error_type=type(exc).__name__, exc_info=exc)
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="task failure")


def _queue_runner(request: Request, redis_client: Any) -> PeriodicScheduler:
	"""Lock holder for queued runs when the periodic scheduler is disabled."""
	runner = getattr(request.app.state, "queue_runner", None)
	if runner is None:
		runner = PeriodicScheduler(redis_client=redis_client, tasks=[])
		request.app.state.queue_runner = runner
	return runner


async def _run_task(run_id: uuid.UUID, task_name: str, scheduler: PeriodicScheduler) -> None:
	await scheduler.run_queued(run_id, task_name)


@router.post(
	"/{task_name}",
	response_model=TaskRunCreateResponse,
	status_code=status.HTTP_202_ACCEPTED,
)
async def create_task_run(
	task_name: str,
	request: Request,
	background_tasks: BackgroundTasks,
	payload: TaskRunRequest | None = None,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> TaskRunCreateResponse:
	parameters: dict[str, Any] = {}
	if payload is not None:
		parameters.update(payload.parameters)
		if payload.start is not None:
			parameters["start"] = payload.start.isoformat()
		if payload.end is not None:
			parameters["end"] = payload.end.isoformat()

	redis_client = getattr(request.app.state, "redis", None)
	service = JobsService(db, redis_client)
	try:
		response = await service.create_task_run(task_name, parameters)
	except Exception as exc:
		raise _map_error(exc) from exc

	scheduler = getattr(request.app.state, "scheduler", None) or _queue_runner(request, redis_client)
	background_tasks.add_task(_run_task, response.run_id, response.task_name, scheduler)
	return response


@router.get("/runs/{run_id}", response_model=TaskRunStatusResponse)
async def get_task_status(
	run_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> TaskRunStatusResponse:
	service = JobsService(db, getattr(request.app.state, "redis", None))
	try:
		return await service.get_task_status(run_id)
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/runs", response_model=list[TaskRunStatusResponse])
async def list_task_runs(
	request: Request,
	task_name: str | None = None,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> list[TaskRunStatusResponse]:
	service = JobsService(db, getattr(request.app.state, "redis", None))
	try:
		return await service.list_runs(task_name)
	except Exception as exc:
		raise _map_error(exc) from exc
