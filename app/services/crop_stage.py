"""Crop stage calculation from stage timestamps.

A crop's stage is never trusted on its own: it is derived from which stage
timestamps are set, the most advanced one winning::

    harvested_at > light_at > blackout_at > germination_at > soaking_at

A crop with no timestamps at all sits in ``germination``.  The functions here
accept ORM ``Crop``/``Recipe`` rows or any object exposing the same
attributes (tests use ``SimpleNamespace``).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from app.models.enums import CropStageEnum

STAGE_ORDER: tuple[CropStageEnum, ...] = (
	CropStageEnum.soaking,
	CropStageEnum.germination,
	CropStageEnum.blackout,
	CropStageEnum.light,
	CropStageEnum.harvested,
)

STAGE_TIMESTAMP_FIELDS: dict[CropStageEnum, str] = {
	CropStageEnum.soaking: "soaking_at",
	CropStageEnum.germination: "germination_at",
	CropStageEnum.blackout: "blackout_at",
	CropStageEnum.light: "light_at",
	CropStageEnum.harvested: "harvested_at",
}

STAGE_LABELS: dict[CropStageEnum, str] = {
	CropStageEnum.soaking: "Soaking",
	CropStageEnum.germination: "Germination",
	CropStageEnum.blackout: "Blackout",
	CropStageEnum.light: "Light",
	CropStageEnum.harvested: "Harvested",
}

DEFAULT_STAGE = CropStageEnum.germination
UNKNOWN_STAGE_LABEL = "Unknown stage"


@dataclass(slots=True)
class AdvanceCheck:
	can_advance: bool
	next_stage: CropStageEnum | None
	reason: str


def coerce_stage(value: Any) -> CropStageEnum | None:
	if isinstance(value, CropStageEnum):
		return value
	try:
		return CropStageEnum(str(value))
	except ValueError:
		return None


def stage_started_at(crop: Any, stage: CropStageEnum | None = None) -> datetime | None:
	"""Timestamp at which ``stage`` (default: the crop's current stage) began."""
	stage = stage if stage is not None else coerce_stage(getattr(crop, "current_stage", None))
	if stage is None:
		return None
	return getattr(crop, STAGE_TIMESTAMP_FIELDS[stage], None)


def calculate_stage(crop: Any) -> CropStageEnum:
	for stage in reversed(STAGE_ORDER):
		if getattr(crop, STAGE_TIMESTAMP_FIELDS[stage], None) is not None:
			return stage
	return DEFAULT_STAGE


def update_crop_stage(crop: Any) -> bool:
	"""Align ``crop.current_stage`` with its timestamps; True when it changed."""
	calculated = calculate_stage(crop)
	if coerce_stage(getattr(crop, "current_stage", None)) == calculated:
		return False
	crop.current_stage = calculated
	return True


def validate_timestamp_sequence(crop: Any) -> list[str]:
	errors: list[str] = []
	last_stage: CropStageEnum | None = None
	last_ts: datetime | None = None

	for stage in STAGE_ORDER:
		ts = getattr(crop, STAGE_TIMESTAMP_FIELDS[stage], None)
		if ts is None:
			continue
		if last_ts is not None and ts < last_ts:
			errors.append(
				f"Stage '{stage.value}' timestamp ({ts:%Y-%m-%d %H:%M:%S}) cannot be earlier "
				f"than '{last_stage.value}' timestamp ({last_ts:%Y-%m-%d %H:%M:%S})"
			)
		last_stage, last_ts = stage, ts

	return errors


def stage_duration_days(stage: CropStageEnum, recipe: Any) -> float | None:
	"""Planned days a crop spends in ``stage`` according to ``recipe``."""
	if recipe is None:
		return None
	if stage == CropStageEnum.soaking:
		soak_hours = getattr(recipe, "seed_soak_hours", None)
		return float(math.ceil(soak_hours / 24)) if soak_hours else 1.0
	if stage == CropStageEnum.germination:
		value = getattr(recipe, "germination_days", None)
	elif stage == CropStageEnum.blackout:
		value = getattr(recipe, "blackout_days", None)
	elif stage == CropStageEnum.light:
		value = getattr(recipe, "light_days", None)
	else:
		return None
	return float(value) if value is not None else None


def next_viable_stage(stage: CropStageEnum | str | None, recipe: Any = None) -> CropStageEnum | None:
	stage = coerce_stage(stage)
	if stage is None or stage == CropStageEnum.harvested:
		return None
	if stage == CropStageEnum.soaking:
		return CropStageEnum.germination

	candidate = STAGE_ORDER[STAGE_ORDER.index(stage) + 1]
	if candidate == CropStageEnum.blackout and recipe is not None:
		if (getattr(recipe, "blackout_days", 0) or 0) <= 0:
			return CropStageEnum.light
	return candidate


def can_auto_advance(crop: Any, recipe: Any = None, now: datetime | None = None) -> AdvanceCheck:
	recipe = recipe if recipe is not None else getattr(crop, "recipe", None)
	stage = coerce_stage(getattr(crop, "current_stage", None))
	if stage is None or recipe is None:
		return AdvanceCheck(False, None, "Missing current stage or recipe information")

	next_stage = next_viable_stage(stage, recipe)
	if next_stage is None:
		return AdvanceCheck(False, None, "Already at final stage or no next stage available")

	started = stage_started_at(crop, stage)
	if started is None:
		return AdvanceCheck(False, next_stage, "No start time available for current stage")

	duration = stage_duration_days(stage, recipe)
	if duration is None:
		return AdvanceCheck(False, next_stage, "Stage duration not defined in recipe")

	now = now or datetime.now(UTC)
	hours_in_stage = int((now - started).total_seconds() // 3600)
	required_hours = int(duration * 24)
	if hours_in_stage >= required_hours:
		return AdvanceCheck(True, next_stage, "Ready to advance")
	return AdvanceCheck(
		False,
		next_stage,
		f"Stage duration: {hours_in_stage}h of {required_hours}h required",
	)


def stage_label(crop: Any) -> str:
	stage = coerce_stage(getattr(crop, "current_stage", None))
	if stage is None or stage_started_at(crop, stage) is None:
		return UNKNOWN_STAGE_LABEL
	return STAGE_LABELS[stage]
