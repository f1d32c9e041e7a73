"""Crop timing values: ages, time to next stage and their display strings.

Nothing here is persisted; every value is a pure function of
``(crop, recipe, now)`` and is recomputed whenever a crop is read.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from app.models.enums import CropStageEnum
from app.services.crop_stage import coerce_stage, stage_label, stage_started_at

CALCULATING = "Calculating..."
OVERDUE = "Overdue"
HARVESTED = "Harvested"
UNKNOWN = "Unknown"


@dataclass(slots=True)
class CropTiming:
	stage_label: str
	stage_age_minutes: int | None
	stage_age_display: str
	stage_age_status: str
	total_age_minutes: int | None
	total_age_display: str
	total_age_status: str
	time_to_next_stage_minutes: int | None
	time_to_next_stage_display: str

	def as_dict(self) -> dict[str, Any]:
		return asdict(self)


def _now(now: datetime | None) -> datetime:
	return now or datetime.now(UTC)


def _minutes_between(start: datetime, end: datetime) -> int:
	return int((end - start).total_seconds() // 60)


def _recipe(crop: Any, recipe: Any) -> Any:
	return recipe if recipe is not None else getattr(crop, "recipe", None)


def expected_stage_duration_days(crop: Any, recipe: Any = None) -> float | None:
	recipe = _recipe(crop, recipe)
	if recipe is None:
		return None
	stage = coerce_stage(getattr(crop, "current_stage", None))
	if stage == CropStageEnum.soaking:
		soak_hours = getattr(recipe, "seed_soak_hours", None)
		return soak_hours / 24 if soak_hours else None
	if stage == CropStageEnum.germination:
		return getattr(recipe, "germination_days", None)
	if stage == CropStageEnum.blackout:
		return getattr(recipe, "blackout_days", None)
	if stage == CropStageEnum.light:
		return getattr(recipe, "light_days", None)
	return None


def stage_age_minutes(crop: Any, now: datetime | None = None) -> int | None:
	started = stage_started_at(crop)
	if started is None:
		return None
	return _minutes_between(started, _now(now))


def total_age_minutes(crop: Any, now: datetime | None = None) -> int | None:
	soaking_at = getattr(crop, "soaking_at", None)
	if getattr(crop, "requires_soaking", False) and soaking_at is not None:
		return _minutes_between(soaking_at, _now(now))
	germination_at = getattr(crop, "germination_at", None)
	if germination_at is not None:
		return _minutes_between(germination_at, _now(now))
	return None


def expected_transition_at(crop: Any, recipe: Any = None) -> datetime | None:
	started = stage_started_at(crop)
	duration = expected_stage_duration_days(crop, recipe)
	if started is None or not duration:
		return None
	return started + timedelta(days=float(duration))


def _minutes_remaining(crop: Any, recipe: Any, now: datetime | None) -> int | None:
	if _recipe(crop, recipe) is None:
		return None
	if coerce_stage(getattr(crop, "current_stage", None)) == CropStageEnum.harvested:
		return None
	transition = expected_transition_at(crop, recipe)
	if transition is None:
		return None
	return _minutes_between(_now(now), transition)


def time_to_next_stage_minutes(crop: Any, recipe: Any = None, now: datetime | None = None) -> int | None:
	remaining = _minutes_remaining(crop, recipe, now)
	if remaining is None:
		return None
	return max(0, remaining)


def format_time_display(minutes: int | None) -> str | None:
	"""Compact duration: ``45m``, ``4h 15m``, ``3d 2h``, ``2w 3d``."""
	if minutes is None:
		return None
	if minutes < 60:
		return f"{minutes}m"

	hours, rem_minutes = divmod(minutes, 60)
	if hours < 24:
		return f"{hours}h {rem_minutes}m" if rem_minutes else f"{hours}h"

	days, rem_hours = divmod(hours, 24)
	if days < 7:
		return f"{days}d {rem_hours}h" if rem_hours else f"{days}d"

	weeks, rem_days = divmod(days, 7)
	return f"{weeks}w {rem_days}d" if rem_days else f"{weeks}w"


def stage_age_display(crop: Any, now: datetime | None = None) -> str:
	return format_time_display(stage_age_minutes(crop, now)) or UNKNOWN


def total_age_display(crop: Any, now: datetime | None = None) -> str:
	return format_time_display(total_age_minutes(crop, now)) or UNKNOWN


def time_to_next_stage_display(crop: Any, recipe: Any = None, now: datetime | None = None) -> str:
	if coerce_stage(getattr(crop, "current_stage", None)) == CropStageEnum.harvested:
		return HARVESTED
	remaining = _minutes_remaining(crop, recipe, now)
	if remaining is None:
		return CALCULATING
	if remaining <= 0:
		return OVERDUE
	return format_time_display(remaining) or CALCULATING


def stage_age_status(crop: Any, recipe: Any = None, now: datetime | None = None) -> str:
	if _recipe(crop, recipe) is None:
		return "No recipe configured"

	age = stage_age_minutes(crop, now)
	duration = expected_stage_duration_days(crop, recipe)
	if not age or not duration:
		return CALCULATING

	percent = age / (float(duration) * 24 * 60) * 100
	if percent < 90:
		return "On Track"
	if percent < 110:
		return "Due Soon"
	return "Overdue"


def total_age_status(crop: Any, recipe: Any = None, now: datetime | None = None) -> str:
	recipe = _recipe(crop, recipe)
	maturity = getattr(recipe, "days_to_maturity", None) if recipe is not None else None
	if not maturity:
		return "No maturity target"

	age = total_age_minutes(crop, now)
	if not age:
		return "Not started"

	percent = age / (float(maturity) * 24 * 60) * 100
	if percent < 80:
		return "Growing"
	if percent < 95:
		return "Nearly Ready"
	if percent < 105:
		return "Ready to Harvest"
	return "Past Due"


def snapshot(crop: Any, recipe: Any = None, now: datetime | None = None) -> CropTiming:
	now = _now(now)
	stage_age = stage_age_minutes(crop, now)
	total_age = total_age_minutes(crop, now)
	return CropTiming(
		stage_label=stage_label(crop),
		stage_age_minutes=stage_age,
		stage_age_display=format_time_display(stage_age) or UNKNOWN,
		stage_age_status=stage_age_status(crop, recipe, now),
		total_age_minutes=total_age,
		total_age_display=format_time_display(total_age) or UNKNOWN,
		total_age_status=total_age_status(crop, recipe, now),
		time_to_next_stage_minutes=time_to_next_stage_minutes(crop, recipe, now),
		time_to_next_stage_display=time_to_next_stage_display(crop, recipe, now),
	)
