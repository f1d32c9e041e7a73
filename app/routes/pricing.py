"""Price quote route."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.database import get_db
from app.models.enums import UserRoleEnum
from app.schemas.pricing import PriceQuoteRead, PriceQuoteRequest
from app.services.pricing import PricingService

router = APIRouter(prefix="/pricing", tags=["pricing"])
logger = structlog.get_logger("trayline.routes.pricing")


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	logger.error("unexpected_route_error", error_type=type(exc).__name__, exc_info=exc)
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail="Unexpected pricing failure",
	)


@router.post("/quote", response_model=PriceQuoteRead)
async def quote(
	payload: PriceQuoteRequest,
	db: AsyncSession = Depends(get_db),
	user: Any = Depends(get_current_user),
) -> PriceQuoteRead:
	# Customers are always priced as their own account type.
	customer_type = payload.customer_type
	if getattr(user, "role", None) == UserRoleEnum.customer:
		customer_type = getattr(user, "customer_type", None)

	try:
		result = await PricingService(db).quote(
			payload.product_id,
			customer_type,
			payload.quantity,
			payload.packaging_type,
		)
	except Exception as exc:
		raise _map_error(exc) from exc

	return PriceQuoteRead(
		product_id=payload.product_id,
		customer_type=result.customer_type,
		pricing_type=result.pricing_type,
		variation_id=result.variation_id,
		unit_price=result.unit_price,
		quantity=result.quantity,
		total=result.total,
		source=result.source,
	)
