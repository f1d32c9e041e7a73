"""Per-user UI preferences (navigation group state) and navigation badges."""

from __future__ import annotations

import copy
import uuid
from datetime import UTC, datetime
from typing import Any, Awaitable, Callable

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.crops import Crop
from app.models.enums import PlantingStatusEnum
from app.models.planting import PlantingSchedule
from app.models.preferences import UserPreference
from app.services import crop_stage
from app.services.inventory_service import InventoryService

logger = structlog.get_logger("trayline.preferences")


def navigation_state(preferences: dict[str, Any] | None) -> dict[str, Any]:
	navigation = dict((preferences or {}).get("navigation") or {})
	navigation["collapsed_groups"] = dict(navigation.get("collapsed_groups") or {})
	return {"navigation": navigation}


class PreferencesService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def _load(self, user_id: uuid.UUID) -> UserPreference | None:
		row = await self.db.execute(select(UserPreference).where(UserPreference.user_id == user_id))
		return row.scalar_one_or_none()

	async def _save(self, user_id: uuid.UUID, preferences: dict[str, Any]) -> None:
		record = await self._load(user_id)
		if record is None:
			self.db.add(UserPreference(user_id=user_id, preferences=preferences))
		else:
			# JSONB is not mutation-tracked; assign a fresh document.
			record.preferences = preferences
		await self.db.flush()

	async def get_navigation(self, user_id: uuid.UUID) -> dict[str, Any]:
		record = await self._load(user_id)
		return navigation_state(record.preferences if record is not None else None)

	async def _update_groups(self, user_id: uuid.UUID, changes: dict[str, bool]) -> dict[str, Any]:
		record = await self._load(user_id)
		preferences = copy.deepcopy(record.preferences) if record is not None and record.preferences else {}
		state = navigation_state(preferences)
		state["navigation"]["collapsed_groups"].update(changes)
		preferences["navigation"] = state["navigation"]
		await self._save(user_id, preferences)
		return state

	async def toggle_group(self, user_id: uuid.UUID, group: str, collapsed: bool) -> dict[str, Any]:
		group = group.strip()
		if not group:
			raise ValueError("group must not be empty")
		return await self._update_groups(user_id, {group: collapsed})

	async def toggle_all(self, user_id: uuid.UUID, collapsed: bool) -> dict[str, Any]:
		current = await self.get_navigation(user_id)
		groups = set(get_settings().navigation_groups) | set(current["navigation"]["collapsed_groups"])
		return await self._update_groups(user_id, {group: collapsed for group in sorted(groups)})


class NavigationBadgeService:
	"""Sidebar counters; a badge that fails to compute is reported as ``None``."""

	def __init__(self, db: AsyncSession):
		self.db = db

	async def pending_schedules(self) -> int:
		row = await self.db.execute(
			select(func.count(PlantingSchedule.id)).where(
				PlantingSchedule.status == PlantingStatusEnum.pending
			)
		)
		return int(row.scalar_one() or 0)

	async def crops_due(self) -> int:
		now = datetime.now(UTC)
		rows = await self.db.execute(select(Crop).where(Crop.harvested_at.is_(None)))
		return sum(
			1 for crop in rows.scalars().all() if crop_stage.can_auto_advance(crop, crop.recipe, now).can_advance
		)

	async def low_stock(self) -> int:
		return await InventoryService(self.db).count_low_stock()

	async def badges(self) -> dict[str, int | None]:
		counters: dict[str, Callable[[], Awaitable[int]]] = {
			"pending_planting_schedules": self.pending_schedules,
			"crops_due_for_transition": self.crops_due,
			"low_stock_consumables": self.low_stock,
		}
		result: dict[str, int | None] = {}
		for name, counter in counters.items():
			try:
				result[name] = await counter()
			except Exception:
				logger.exception("navigation_badge_failed", badge=name)
				result[name] = None
		return result
