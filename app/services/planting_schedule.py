"""Planting schedule synchronization from recurring and concrete orders.

A schedule is identified by ``(recipe_id, planting_date, target_harvest_date)``.
Every order that needs trays from the same recipe on the same dates shares
one schedule row; synchronizing again only links and tops up existing rows.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.crops import Crop
from app.models.enums import CropStageEnum, PlantingStatusEnum
from app.models.orders import Order, RecurringOrder
from app.models.planting import PlantingSchedule
from app.services.activity_service import ActivityLogService
from app.services.recurring_orders import (
	PlantingRequirement,
	calculate_planting_requirements,
	item_yield_grams,
	trays_for_quantity,
)

logger = structlog.get_logger("trayline.planting")

MAX_DELIVERY_DATES = 50

ScheduleKey = tuple[uuid.UUID, date, date]


def derive_status(
	trays_planted: int,
	trays_required: int,
	harvest_date: date,
	today: date,
) -> PlantingStatusEnum:
	if trays_planted <= 0:
		return PlantingStatusEnum.pending
	if trays_planted < trays_required:
		return PlantingStatusEnum.partially_planted
	if harvest_date < today:
		return PlantingStatusEnum.completed
	return PlantingStatusEnum.fully_planted


def update_status(schedule: Any, today: date | None = None) -> PlantingStatusEnum:
	schedule.status = derive_status(
		schedule.trays_planted or 0,
		schedule.trays_required or 0,
		schedule.target_harvest_date,
		today or date.today(),
	)
	return schedule.status


def _with_id(values: list | None, new_id: uuid.UUID) -> list[str]:
	ids = list(values or [])
	if str(new_id) not in ids:
		ids.append(str(new_id))
	return ids


class PlantingScheduleService:
	def __init__(self, db: AsyncSession):
		self.db = db

	# ── lookups ────────────────────────────────────────────────────────────

	async def _active_recurring_orders(self, start: date, end: date) -> list[RecurringOrder]:
		stmt = select(RecurringOrder).where(
			RecurringOrder.is_active.is_(True),
			RecurringOrder.start_date <= end,
			or_(RecurringOrder.end_date.is_(None), RecurringOrder.end_date >= start),
		)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def _find_schedule(
		self,
		recipe_id: uuid.UUID,
		planting_date: date,
		harvest_date: date,
	) -> PlantingSchedule | None:
		row = await self.db.execute(
			select(PlantingSchedule).where(
				PlantingSchedule.recipe_id == recipe_id,
				PlantingSchedule.planting_date == planting_date,
				PlantingSchedule.target_harvest_date == harvest_date,
			)
		)
		return row.scalar_one_or_none()

	async def get_schedule(self, schedule_id: uuid.UUID) -> PlantingSchedule:
		row = await self.db.execute(select(PlantingSchedule).where(PlantingSchedule.id == schedule_id))
		schedule = row.scalar_one_or_none()
		if schedule is None:
			raise LookupError(f"Planting schedule {schedule_id} not found")
		return schedule

	async def list_schedules(self, start: date, end: date) -> list[PlantingSchedule]:
		if start > end:
			raise ValueError("start date must be on or before end date")
		stmt = (
			select(PlantingSchedule)
			.where(
				or_(
					and_(PlantingSchedule.planting_date >= start, PlantingSchedule.planting_date <= end),
					and_(
						PlantingSchedule.target_harvest_date >= start,
						PlantingSchedule.target_harvest_date <= end,
					),
				)
			)
			.order_by(PlantingSchedule.planting_date, PlantingSchedule.target_harvest_date)
		)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	# ── synchronization ────────────────────────────────────────────────────

	async def _resolve(
		self,
		key: ScheduleKey,
		seen: dict[ScheduleKey, PlantingSchedule],
	) -> PlantingSchedule | None:
		if key in seen:
			return seen[key]
		schedule = await self._find_schedule(*key)
		if schedule is not None:
			seen[key] = schedule
		return schedule

	async def sync_from_recurring_orders(self, start: date, end: date) -> int:
		"""Create missing schedules for recurring deliveries in ``[start, end]``.

		Returns the number of rows created; existing rows are linked instead.
		"""
		if start > end:
			raise ValueError("start date must be on or before end date")

		created = 0
		linked = 0
		seen: dict[ScheduleKey, PlantingSchedule] = {}

		for recurring in await self._active_recurring_orders(start, end):
			requirements = calculate_planting_requirements(recurring, start_from=start, count=MAX_DELIVERY_DATES)
			for requirement in requirements:
				if requirement.planting_date < start or requirement.planting_date > end:
					continue
				key = (requirement.recipe_id, requirement.planting_date, requirement.harvest_date)
				schedule = await self._resolve(key, seen)
				if schedule is not None:
					schedule.related_recurring_orders = _with_id(schedule.related_recurring_orders, recurring.id)
					schedule.trays_required = max(schedule.trays_required or 0, requirement.trays_required)
					update_status(schedule)
					linked += 1
					continue

				schedule = self._new_schedule(requirement, f"Auto-generated from recurring order: {recurring.name}")
				schedule.related_recurring_orders = [str(recurring.id)]
				self.db.add(schedule)
				seen[key] = schedule
				created += 1

		await self.db.flush()
		if created:
			await ActivityLogService(self.db).record(
				"planting",
				"synced",
				f"Generated {created} planting schedules from recurring orders",
				properties={"start": start.isoformat(), "end": end.isoformat(), "created": created},
			)
		logger.info(
			"planting_schedules_synced",
			start=start.isoformat(),
			end=end.isoformat(),
			created=created,
			linked=linked,
		)
		return created

	@staticmethod
	def _new_schedule(requirement: PlantingRequirement, notes: str) -> PlantingSchedule:
		return PlantingSchedule(
			id=uuid.uuid4(),
			recipe_id=requirement.recipe_id,
			planting_date=requirement.planting_date,
			target_harvest_date=requirement.harvest_date,
			trays_required=requirement.trays_required,
			trays_planted=0,
			status=PlantingStatusEnum.pending,
			related_orders=[],
			related_recurring_orders=[],
			notes=notes,
		)

	async def create_from_order(self, order_id: uuid.UUID) -> list[PlantingSchedule]:
		row = await self.db.execute(select(Order).where(Order.id == order_id))
		order = row.scalar_one_or_none()
		if order is None:
			raise LookupError(f"Order {order_id} not found")

		grouped: dict[ScheduleKey, PlantingRequirement] = {}
		for item in order.items:
			recipe = getattr(item.product, "recipe", None)
			if recipe is None:
				continue
			planting_date = order.harvest_date - timedelta(days=recipe.lead_time_days())
			key = (recipe.id, planting_date, order.harvest_date)
			requirement = grouped.setdefault(
				key,
				PlantingRequirement(
					planting_date=planting_date,
					harvest_date=order.harvest_date,
					recipe_id=recipe.id,
					recipe_name=recipe.name,
				),
			)
			requirement.trays_required += trays_for_quantity(item.quantity, item_yield_grams(item.product, recipe))

		schedules: list[PlantingSchedule] = []
		seen: dict[ScheduleKey, PlantingSchedule] = {}
		for key, requirement in grouped.items():
			schedule = await self._resolve(key, seen)
			if schedule is None:
				schedule = self._new_schedule(requirement, f"Generated from order {order.id}")
				self.db.add(schedule)
			else:
				schedule.trays_required = (schedule.trays_required or 0) + requirement.trays_required
			schedule.related_orders = _with_id(schedule.related_orders, order.id)
			update_status(schedule)
			schedules.append(schedule)

		await self.db.flush()
		return schedules

	# ── trays ──────────────────────────────────────────────────────────────

	async def _max_tray_number(self, schedule_id: uuid.UUID) -> int:
		rows = await self.db.execute(select(Crop.tray_number).where(Crop.planting_schedule_id == schedule_id))
		numbers = [int(value) for value in rows.scalars().all() if str(value).isdigit()]
		return max(numbers, default=0)

	async def generate_trays(
		self,
		schedule_id: uuid.UUID,
		count: int,
		planted_at: datetime | None = None,
	) -> list[Crop]:
		if count <= 0:
			raise ValueError("tray count must be positive")

		schedule = await self.get_schedule(schedule_id)
		planted_at = planted_at or datetime.now(UTC)
		recipe = schedule.recipe
		start = await self._max_tray_number(schedule_id)

		crops = [
			Crop(
				recipe_id=schedule.recipe_id,
				planting_schedule_id=schedule.id,
				tray_number=str(start + offset),
				current_stage=CropStageEnum.germination,
				requires_soaking=bool(recipe is not None and (recipe.seed_soak_hours or 0) > 0),
				planted_at=planted_at,
				germination_at=planted_at,
			)
			for offset in range(1, count + 1)
		]
		self.db.add_all(crops)

		schedule.trays_planted = (schedule.trays_planted or 0) + count
		update_status(schedule, planted_at.date())
		await self.db.flush()
		await ActivityLogService(self.db).record(
			"planting",
			"trays_generated",
			f"Planted {count} trays for schedule {schedule.id}",
			subject=schedule,
			properties={"count": count, "trays_planted": schedule.trays_planted},
		)
		return crops
