"""Consumable stock routes."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_staff
from app.database import get_db
from app.schemas.inventory import ConsumableRead
from app.services.inventory_service import InventoryService

router = APIRouter(prefix="/inventory", tags=["inventory"])
logger = structlog.get_logger("trayline.routes.inventory")


@router.get("/low-stock", response_model=list[ConsumableRead])
async def low_stock(
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_staff),
) -> list[ConsumableRead]:
	try:
		rows = await InventoryService(db).low_stock()
	except Exception as exc:
		logger.error("unexpected_route_error", error_type=type(exc).__name__, exc_info=exc)
		raise HTTPException(
			status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
			detail="Unexpected inventory failure",
		) from exc
	return [ConsumableRead.model_validate(row) for row in rows]
