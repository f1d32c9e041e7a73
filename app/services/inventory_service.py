"""Consumable stock checks."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inventory import Consumable

logger = structlog.get_logger("trayline.inventory")


class InventoryService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def low_stock(self) -> list[Consumable]:
		rows = await self.db.execute(
			select(Consumable)
			.where(
				Consumable.is_active.is_(True),
				Consumable.current_stock <= Consumable.restock_threshold,
			)
			.order_by(Consumable.consumable_type, Consumable.name)
		)
		return list(rows.scalars().all())

	async def count_low_stock(self) -> int:
		row = await self.db.execute(
			select(func.count(Consumable.id)).where(
				Consumable.is_active.is_(True),
				Consumable.current_stock <= Consumable.restock_threshold,
			)
		)
		return int(row.scalar_one() or 0)

	async def check_resource_levels(self) -> list[dict[str, Any]]:
		"""Hourly sweep: warn about every active consumable at or below threshold."""
		alerts: list[dict[str, Any]] = []
		for consumable in await self.low_stock():
			alert = {
				"id": str(consumable.id),
				"name": consumable.name,
				"type": consumable.consumable_type.value,
				"current_stock": str(consumable.current_stock),
				"restock_threshold": str(consumable.restock_threshold),
				"unit": consumable.unit,
			}
			logger.warning("consumable_low_stock", **alert)
			alerts.append(alert)
		logger.info("resource_levels_checked", low_stock=len(alerts))
		return alerts
