"""Recurring order routes: cadence preview, order generation, pause/resume."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_manager, require_staff
from app.database import get_db
from app.schemas.orders import (
	DeliveryDatesResponse,
	GenerateOrderRequest,
	OrderRead,
	ProcessRecurringResponse,
	RecurringOrderRead,
	RecurringOrderStats,
)
from app.services.recurring_orders import RecurringOrderService

router = APIRouter(prefix="/recurring-orders", tags=["recurring-orders"])
logger = structlog.get_logger("trayline.routes.recurring_orders")


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	logger.error("unexpected_route_error", error_type=type(exc).__name__, exc_info=exc)
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail="Unexpected recurring order failure",
	)


@router.get("", response_model=list[RecurringOrderRead])
async def list_active(
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_staff),
) -> list[RecurringOrderRead]:
	try:
		rows = await RecurringOrderService(db).list_active()
	except Exception as exc:
		raise _map_error(exc) from exc
	return [RecurringOrderRead.model_validate(row) for row in rows]


@router.get("/stats", response_model=RecurringOrderStats)
async def stats(
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_staff),
) -> RecurringOrderStats:
	try:
		return RecurringOrderStats(**await RecurringOrderService(db).stats())
	except Exception as exc:
		raise _map_error(exc) from exc


@router.post("/process", response_model=ProcessRecurringResponse)
async def process_due(
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> ProcessRecurringResponse:
	try:
		return ProcessRecurringResponse(**await RecurringOrderService(db).process_due())
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/{recurring_id}/delivery-dates", response_model=DeliveryDatesResponse)
async def delivery_dates(
	recurring_id: uuid.UUID,
	start_from: date | None = None,
	count: int = Query(default=10, ge=1, le=100),
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_staff),
) -> DeliveryDatesResponse:
	try:
		dates = await RecurringOrderService(db).upcoming_dates(recurring_id, start_from or date.today(), count)
	except Exception as exc:
		raise _map_error(exc) from exc
	return DeliveryDatesResponse(recurring_order_id=recurring_id, dates=dates)


@router.post("/{recurring_id}/orders", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def generate_order(
	recurring_id: uuid.UUID,
	payload: GenerateOrderRequest,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> OrderRead:
	try:
		order = await RecurringOrderService(db).generate_order(recurring_id, payload.delivery_date)
	except Exception as exc:
		raise _map_error(exc) from exc
	if order is None:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail="Recurring order is inactive or the delivery date is outside its range",
		)
	return OrderRead.model_validate(order)


@router.post("/{recurring_id}/pause", response_model=RecurringOrderRead)
async def pause(
	recurring_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> RecurringOrderRead:
	try:
		return RecurringOrderRead.model_validate(await RecurringOrderService(db).pause(recurring_id))
	except Exception as exc:
		raise _map_error(exc) from exc


@router.post("/{recurring_id}/resume", response_model=RecurringOrderRead)
async def resume(
	recurring_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
	_user: Any = Depends(require_manager),
) -> RecurringOrderRead:
	try:
		return RecurringOrderRead.model_validate(await RecurringOrderService(db).resume(recurring_id))
	except Exception as exc:
		raise _map_error(exc) from exc
