from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest

from app.models.enums import CropStageEnum
from app.services import crop_time

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def _recipe(**overrides: object) -> SimpleNamespace:
	values = {
		"germination_days": 3.0,
		"blackout_days": 2.0,
		"light_days": 5.0,
		"seed_soak_hours": 0,
		"days_to_maturity": 10.0,
	}
	values.update(overrides)
	return SimpleNamespace(**values)


def _crop(stage: CropStageEnum, **fields: object) -> SimpleNamespace:
	values: dict[str, object] = {
		"current_stage": stage,
		"requires_soaking": False,
		"soaking_at": None,
		"germination_at": None,
		"blackout_at": None,
		"light_at": None,
		"harvested_at": None,
		"recipe": None,
	}
	values.update(fields)
	return SimpleNamespace(**values)


@pytest.mark.parametrize(
	("minutes", "expected"),
	[
		(0, "0m"),
		(45, "45m"),
		(120, "2h"),
		(255, "4h 15m"),
		(3 * 1440 + 120, "3d 2h"),
		(14 * 1440, "2w"),
		(17 * 1440 + 300, "2w 3d"),
		(None, None),
	],
)
def test_format_time_display(minutes: int | None, expected: str | None) -> None:
	assert crop_time.format_time_display(minutes) == expected


def test_time_to_next_stage_counts_down_from_stage_start() -> None:
	crop = _crop(CropStageEnum.germination, germination_at=NOW - timedelta(hours=24))

	assert crop_time.time_to_next_stage_minutes(crop, _recipe(), NOW) == 48 * 60
	assert crop_time.time_to_next_stage_display(crop, _recipe(), NOW) == "2d"


def test_time_to_next_stage_overdue_is_floored_at_zero() -> None:
	crop = _crop(CropStageEnum.germination, germination_at=NOW - timedelta(days=4))

	assert crop_time.time_to_next_stage_minutes(crop, _recipe(), NOW) == 0
	assert crop_time.time_to_next_stage_display(crop, _recipe(), NOW) == "Overdue"


def test_soaking_uses_fractional_soak_hours() -> None:
	crop = _crop(
		CropStageEnum.soaking,
		requires_soaking=True,
		soaking_at=NOW - timedelta(hours=2),
	)

	assert crop_time.time_to_next_stage_minutes(crop, _recipe(seed_soak_hours=8), NOW) == 6 * 60


def test_harvested_crop_has_no_countdown() -> None:
	crop = _crop(CropStageEnum.harvested, germination_at=NOW - timedelta(days=10), harvested_at=NOW)

	assert crop_time.time_to_next_stage_minutes(crop, _recipe(), NOW) is None
	assert crop_time.time_to_next_stage_display(crop, _recipe(), NOW) == "Harvested"


def test_missing_recipe_is_still_calculating() -> None:
	crop = _crop(CropStageEnum.germination, germination_at=NOW)

	assert crop_time.time_to_next_stage_display(crop, None, NOW) == "Calculating..."
	assert crop_time.stage_age_status(crop, None, NOW) == "No recipe configured"


def test_total_age_starts_at_soaking_when_required() -> None:
	crop = _crop(
		CropStageEnum.germination,
		requires_soaking=True,
		soaking_at=NOW - timedelta(hours=30),
		germination_at=NOW - timedelta(hours=20),
	)

	assert crop_time.total_age_minutes(crop, NOW) == 30 * 60
	assert crop_time.stage_age_minutes(crop, NOW) == 20 * 60
	assert crop_time.total_age_display(crop, NOW) == "1d 6h"


def test_unknown_ages_without_timestamps() -> None:
	crop = _crop(CropStageEnum.germination)

	assert crop_time.stage_age_display(crop, NOW) == "Unknown"
	assert crop_time.total_age_display(crop, NOW) == "Unknown"


@pytest.mark.parametrize(
	("hours", "expected"),
	[(24, "On Track"), (70, "Due Soon"), (80, "Overdue")],
)
def test_stage_age_status_thresholds(hours: int, expected: str) -> None:
	crop = _crop(CropStageEnum.germination, germination_at=NOW - timedelta(hours=hours))
	assert crop_time.stage_age_status(crop, _recipe(), NOW) == expected


@pytest.mark.parametrize(
	("days", "expected"),
	[(5, "Growing"), (9, "Nearly Ready"), (10, "Ready to Harvest"), (11, "Past Due")],
)
def test_total_age_status_thresholds(days: int, expected: str) -> None:
	crop = _crop(CropStageEnum.light, germination_at=NOW - timedelta(days=days), light_at=NOW)
	assert crop_time.total_age_status(crop, _recipe(), NOW) == expected


def test_total_age_status_without_maturity_target() -> None:
	crop = _crop(CropStageEnum.light, germination_at=NOW - timedelta(days=2), light_at=NOW)
	assert crop_time.total_age_status(crop, _recipe(days_to_maturity=None), NOW) == "No maturity target"


def test_snapshot_bundles_all_values() -> None:
	crop = _crop(
		CropStageEnum.blackout,
		germination_at=NOW - timedelta(days=4),
		blackout_at=NOW - timedelta(hours=12),
	)

	timing = crop_time.snapshot(crop, _recipe(), NOW).as_dict()

	assert timing["stage_label"] == "Blackout"
	assert timing["stage_age_minutes"] == 12 * 60
	assert timing["stage_age_display"] == "12h"
	assert timing["total_age_minutes"] == 4 * 1440
	assert timing["time_to_next_stage_minutes"] == 36 * 60
	assert timing["time_to_next_stage_display"] == "1d 12h"
