"""structlog configuration and per-request logging with x-request-id propagation."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import LogFormat, get_settings

REQUEST_ID_HEADER = "x-request-id"
QUIET_PATHS = frozenset({"/health", "/health/ready"})

_configured = False


def configure_structured_logging(
	level: str | None = None,
	log_format: LogFormat | None = None,
	force: bool = False,
) -> None:
	"""Configure stdlib + structlog once per process (API, scheduler, CLI).

	``level`` and ``log_format`` override the settings, which the CLI uses
	for ``--log-level``/``--log-format``.
	"""
	global _configured
	if _configured and not force:
		return

	settings = get_settings()
	level_name = (level or settings.log_level).upper()
	log_level = getattr(logging, level_name, logging.INFO)
	log_format = log_format or settings.log_format

	shared_processors: list[Any] = [
		structlog.contextvars.merge_contextvars,
		structlog.processors.add_log_level,
		structlog.stdlib.add_logger_name,
		structlog.processors.TimeStamper(fmt="iso", utc=True),
	]

	if log_format == LogFormat.json:
		renderer: Any = structlog.processors.JSONRenderer()
		logging.basicConfig(level=log_level, format="%(message)s", force=force)
	else:
		renderer = structlog.dev.ConsoleRenderer()
		logging.basicConfig(level=log_level, force=force)

	structlog.configure(
		processors=[
			*shared_processors,
			structlog.processors.format_exc_info,
			renderer,
		],
		wrapper_class=structlog.make_filtering_bound_logger(log_level),
		logger_factory=structlog.stdlib.LoggerFactory(),
		cache_logger_on_first_use=True,
	)
	_configured = True


class RequestLoggingMiddleware(BaseHTTPMiddleware):
	"""Bind a request ID for every log line of a request and time the request."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
		request.state.request_id = request_id

		structlog.contextvars.clear_contextvars()
		structlog.contextvars.bind_contextvars(request_id=request_id)

		logger = structlog.get_logger("trayline.request")
		start = time.perf_counter()

		try:
			response = await call_next(request)
		except Exception as exc:
			logger.exception(
				"http_request_failed",
				method=request.method,
				path=request.url.path,
				duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
				error=str(exc),
			)
			raise

		response.headers[REQUEST_ID_HEADER] = request_id
		fields = {
			"method": request.method,
			"path": request.url.path,
			"status_code": response.status_code,
			"duration_ms": round((time.perf_counter() - start) * 1000.0, 2),
		}
		if response.status_code >= 500:
			logger.error("http_request", **fields)
		elif request.url.path in QUIET_PATHS:
			logger.debug("http_request", **fields)
		else:
			logger.info("http_request", **fields)
		return response
