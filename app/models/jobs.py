"""Durable task run model for periodic and on-demand background tasks."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import TaskStatusEnum


class TaskRun(Base, UUIDPrimaryKeyMixin, TimestampMixin):
	"""Tracks lifecycle of one execution of a named background task."""

	__tablename__ = "task_runs"
	__table_args__ = (
		Index("ix_task_runs_name_status", "task_name", "status"),
	)

	task_name: Mapped[str] = mapped_column(String(100), nullable=False)
	status: Mapped[TaskStatusEnum] = mapped_column(
		Enum(
			TaskStatusEnum,
			name="task_status",
			create_constraint=False,
			native_enum=True,
		),
		nullable=False,
		default=TaskStatusEnum.queued,
		server_default=TaskStatusEnum.queued.value,
	)
	parameters: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
	result: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
	started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
	completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
	error: Mapped[str | None] = mapped_column(String(2048), nullable=True)

	def __repr__(self) -> str:
		return f"<TaskRun id={self.id} task={self.task_name!r} status={self.status}>"
