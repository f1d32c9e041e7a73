"""Navigation preference and badge routes for the back-office sidebar."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, require_staff
from app.database import get_db
from app.schemas.preferences import (
	NavigationBadges,
	NavigationPreferences,
	ToggleAllRequest,
	ToggleGroupRequest,
)
from app.services.preferences_service import NavigationBadgeService, PreferencesService

router = APIRouter(tags=["navigation"])
logger = structlog.get_logger("trayline.routes.navigation")


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	logger.error("unexpected_route_error", error_type=type(exc).__name__, exc_info=exc)
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail="Unexpected preferences failure",
	)


@router.get("/navigation-preferences", response_model=NavigationPreferences)
async def get_preferences(
	db: AsyncSession = Depends(get_db),
	user: Any = Depends(get_current_user),
) -> NavigationPreferences:
	try:
		return NavigationPreferences(**await PreferencesService(db).get_navigation(user.id))
	except Exception as exc:
		raise _map_error(exc) from exc


@router.post("/navigation-preferences/toggle-group", response_model=NavigationPreferences)
async def toggle_group(
	payload: ToggleGroupRequest,
	db: AsyncSession = Depends(get_db),
	user: Any = Depends(get_current_user),
) -> NavigationPreferences:
	try:
		state = await PreferencesService(db).toggle_group(user.id, payload.group, payload.collapsed)
	except Exception as exc:
		raise _map_error(exc) from exc
	return NavigationPreferences(**state)


@router.post("/navigation-preferences/toggle-all", response_model=NavigationPreferences)
async def toggle_all(
	payload: ToggleAllRequest,
	db: AsyncSession = Depends(get_db),
	user: Any = Depends(get_current_user),
) -> NavigationPreferences:
	try:
		state = await PreferencesService(db).toggle_all(user.id, payload.collapsed)
	except Exception as exc:
		raise _map_error(exc) from exc
	return NavigationPreferences(**state)


@router.get("/navigation-badges", response_model=NavigationBadges)
async def badges(
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_staff),
) -> NavigationBadges:
	return NavigationBadges(**await NavigationBadgeService(db).badges())
