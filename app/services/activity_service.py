"""Activity log recording, export (CSV download, JSON dump), statistics and pruning."""

from __future__ import annotations

import csv
import io
import json
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Any, Sequence
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy import Select, case, delete, distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.activity import ActivityLog

logger = structlog.get_logger("trayline.activity")

CSV_HEADERS: tuple[str, ...] = (
	"Date/Time",
	"User",
	"Type",
	"Action",
	"Description",
	"Model",
	"Model ID",
	"Properties",
)

SYSTEM_CAUSER = "System"
ERROR_LOG_NAME = "error"
FAILED_EVENT = "failed"
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(slots=True)
class ActivityFilters:
	date_from: date | None = None
	date_to: date | None = None
	user_id: uuid.UUID | None = None
	log_name: str | None = None


@dataclass(slots=True)
class ActivityStats:
	"""Aggregate view of the activity log over a filtered window."""

	total: int
	unique_users: int
	unique_models: int
	first_at: datetime | None
	last_at: datetime | None
	errors: int
	by_type: dict[str, int]
	by_model: dict[str, int]
	top_actions: list[dict[str, Any]]

	@property
	def error_rate(self) -> float:
		if not self.total:
			return 0.0
		return round(self.errors / self.total * 100, 2)

	def as_dict(self) -> dict[str, Any]:
		return {
			"summary": {
				"total_activities": self.total,
				"unique_users": self.unique_users,
				"unique_models": self.unique_models,
				"first_at": display_time(self.first_at),
				"last_at": display_time(self.last_at),
			},
			"by_type": self.by_type,
			"by_model": self.by_model,
			"top_actions": self.top_actions,
			"errors": {"total_errors": self.errors, "error_rate": self.error_rate},
		}


def app_timezone() -> ZoneInfo:
	return ZoneInfo(get_settings().app_timezone)


def display_time(value: datetime | None) -> str | None:
	if value is None:
		return None
	return value.astimezone(app_timezone()).strftime(DISPLAY_FORMAT)


def subject_type_of(subject: Any) -> str:
	cls = type(subject)
	return f"{cls.__module__}.{cls.__qualname__}"


def short_subject_type(subject_type: str | None) -> str:
	if not subject_type:
		return ""
	return subject_type.rsplit(".", 1)[-1].rsplit("\\", 1)[-1]


def export_filename(now: datetime | None = None, extension: str = "csv") -> str:
	stamp = (now or datetime.now(UTC)).astimezone(app_timezone()).strftime("%Y-%m-%d_%H%M%S")
	return f"activity-logs-{stamp}.{extension}"


def _causer_name(entry: Any) -> str:
	causer = getattr(entry, "causer", None)
	if causer is None:
		return SYSTEM_CAUSER
	return getattr(causer, "name", None) or SYSTEM_CAUSER


def activity_row(entry: Any) -> list[str]:
	return [
		display_time(getattr(entry, "created_at", None)) or "",
		_causer_name(entry),
		entry.log_name or "",
		entry.event or "",
		entry.description or "",
		short_subject_type(entry.subject_type),
		str(entry.subject_id) if entry.subject_id is not None else "",
		json.dumps(entry.properties or {}, default=str),
	]


def render_csv(entries: Sequence[Any]) -> str:
	buffer = io.StringIO()
	writer = csv.writer(buffer)
	writer.writerow(CSV_HEADERS)
	for entry in entries:
		writer.writerow(activity_row(entry))
	return buffer.getvalue()


def activity_record(entry: Any) -> dict[str, Any]:
	causer = getattr(entry, "causer", None)
	return {
		"id": entry.id,
		"date_time": display_time(getattr(entry, "created_at", None)),
		"user": (
			{"id": str(causer.id), "name": causer.name, "email": causer.email}
			if causer is not None
			else None
		),
		"type": entry.log_name,
		"action": entry.event,
		"description": entry.description,
		"subject": {
			"type": short_subject_type(entry.subject_type) or None,
			"id": entry.subject_id,
		},
		"properties": entry.properties or {},
	}


def _filtered(stmt: Select, filters: ActivityFilters) -> Select:
	if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
		raise ValueError("date_from must be on or before date_to")

	tz = app_timezone()
	if filters.date_from is not None:
		stmt = stmt.where(ActivityLog.created_at >= datetime.combine(filters.date_from, time.min, tzinfo=tz))
	if filters.date_to is not None:
		end = datetime.combine(filters.date_to + timedelta(days=1), time.min, tzinfo=tz)
		stmt = stmt.where(ActivityLog.created_at < end)
	if filters.user_id is not None:
		stmt = stmt.where(ActivityLog.causer_id == filters.user_id)
	if filters.log_name:
		stmt = stmt.where(ActivityLog.log_name == filters.log_name)
	return stmt


class ActivityLogService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def record(
		self,
		log_name: str,
		event: str | None,
		description: str,
		subject: Any | None = None,
		causer_id: uuid.UUID | None = None,
		properties: dict[str, Any] | None = None,
	) -> ActivityLog:
		entry = ActivityLog(
			log_name=log_name,
			event=event,
			description=description,
			subject_type=subject_type_of(subject) if subject is not None else None,
			subject_id=str(subject.id) if getattr(subject, "id", None) is not None else None,
			causer_id=causer_id,
			properties=properties,
		)
		self.db.add(entry)
		return entry

	async def list_entries(self, filters: ActivityFilters | None = None) -> list[ActivityLog]:
		stmt = select(ActivityLog).order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
		rows = await self.db.execute(_filtered(stmt, filters or ActivityFilters()))
		return list(rows.scalars().all())

	async def stats(self, filters: ActivityFilters | None = None, top: int = 10) -> ActivityStats:
		filters = filters or ActivityFilters()
		entries = func.count(ActivityLog.id)
		is_error = or_(ActivityLog.log_name == ERROR_LOG_NAME, ActivityLog.event == FAILED_EVENT)

		summary = await self.db.execute(
			_filtered(
				select(
					entries,
					func.count(distinct(ActivityLog.causer_id)),
					func.count(distinct(ActivityLog.subject_type)),
					func.min(ActivityLog.created_at),
					func.max(ActivityLog.created_at),
					func.sum(case((is_error, 1), else_=0)),
				),
				filters,
			)
		)
		total, unique_users, unique_models, first_at, last_at, errors = summary.one()

		type_rows = await self.db.execute(
			_filtered(select(ActivityLog.log_name, entries), filters)
			.group_by(ActivityLog.log_name)
			.order_by(entries.desc(), ActivityLog.log_name)
		)
		by_type = {log_name or "default": count for log_name, count in type_rows.all()}

		model_rows = await self.db.execute(
			_filtered(select(ActivityLog.subject_type, entries), filters)
			.where(ActivityLog.subject_type.is_not(None))
			.group_by(ActivityLog.subject_type)
		)
		by_model: dict[str, int] = {}
		for subject_type, count in model_rows.all():
			model = short_subject_type(subject_type)
			by_model[model] = by_model.get(model, 0) + count
		by_model = dict(sorted(by_model.items(), key=lambda item: (-item[1], item[0])))

		action_rows = await self.db.execute(
			_filtered(select(ActivityLog.event, ActivityLog.description, entries), filters)
			.group_by(ActivityLog.event, ActivityLog.description)
			.order_by(entries.desc(), ActivityLog.description)
			.limit(top)
		)
		top_actions = [
			{"action": event, "description": description, "count": count}
			for event, description, count in action_rows.all()
		]

		return ActivityStats(
			total=total or 0,
			unique_users=unique_users or 0,
			unique_models=unique_models or 0,
			first_at=first_at,
			last_at=last_at,
			errors=int(errors or 0),
			by_type=by_type,
			by_model=by_model,
			top_actions=top_actions,
		)

	async def prune(self, older_than_days: int, now: datetime | None = None) -> int:
		"""Delete entries older than the retention window; returns rows removed.

		The prune itself is recorded as a new entry.
		"""
		if older_than_days < 1:
			raise ValueError("older_than_days must be at least 1")

		cutoff = (now or datetime.now(UTC)) - timedelta(days=older_than_days)
		result = await self.db.execute(
			delete(ActivityLog)
			.where(ActivityLog.created_at < cutoff)
			.execution_options(synchronize_session=False)
		)
		removed = result.rowcount or 0
		await self.record(
			"default",
			"pruned",
			f"Pruned {removed} activity log entries",
			properties={"older_than_days": older_than_days, "removed": removed},
		)
		logger.info("activity_pruned", cutoff=cutoff.isoformat(), removed=removed)
		return removed

	async def export_csv(
		self,
		filters: ActivityFilters | None = None,
		now: datetime | None = None,
	) -> tuple[str, str]:
		entries = await self.list_entries(filters)
		logger.info("activity_export", format="csv", rows=len(entries))
		return export_filename(now), render_csv(entries)

	async def export_json(self, filters: ActivityFilters | None = None) -> list[dict[str, Any]]:
		entries = await self.list_entries(filters)
		logger.info("activity_export", format="json", rows=len(entries))
		return [activity_record(entry) for entry in entries]
