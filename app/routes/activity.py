"""Activity log routes: CSV and JSON export, aggregate statistics."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_manager
from app.database import get_db
from app.services.activity_service import ActivityFilters, ActivityLogService

router = APIRouter(prefix="/activity-logs", tags=["activity"])
logger = structlog.get_logger("trayline.routes.activity")


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	logger.error("unexpected_route_error", error_type=type(exc).__name__, exc_info=exc)
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail="Unexpected activity export failure",
	)


def _filters(
	date_from: date | None = Query(default=None),
	date_to: date | None = Query(default=None),
	user_id: uuid.UUID | None = Query(default=None),
	log_name: str | None = Query(default=None, max_length=100),
) -> ActivityFilters:
	return ActivityFilters(date_from=date_from, date_to=date_to, user_id=user_id, log_name=log_name)


@router.get("/export")
async def export_csv(
	filters: ActivityFilters = Depends(_filters),
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> Response:
	try:
		filename, content = await ActivityLogService(db).export_csv(filters)
	except Exception as exc:
		raise _map_error(exc) from exc
	return Response(
		content=content,
		media_type="text/csv; charset=utf-8",
		headers={"Content-Disposition": f"attachment; filename={filename}"},
	)


@router.get("/export.json")
async def export_json(
	filters: ActivityFilters = Depends(_filters),
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> list[dict[str, Any]]:
	try:
		return await ActivityLogService(db).export_json(filters)
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/stats")
async def activity_stats(
	filters: ActivityFilters = Depends(_filters),
	top: int = Query(default=10, ge=1, le=100),
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> dict[str, Any]:
	try:
		stats = await ActivityLogService(db).stats(filters, top=top)
	except Exception as exc:
		raise _map_error(exc) from exc
	return stats.as_dict()
