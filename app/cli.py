"""``trayline`` command line: run periodic tasks by hand, export, summarise and prune activity.

Examples::

    trayline sync-schedules --start 2026-03-01 --end 2026-03-28
    trayline process-crop-tasks
    trayline export-activity --from 2026-03-01 --to 2026-03-31 --format json --output march.json
    trayline activity-stats --from 2026-03-01 --to 2026-03-31
    trayline prune-activity --days 180

Task commands go through the same locked runner as the in-process
scheduler, so a manual run never overlaps a scheduled one.
"""

import argparse
import asyncio
import json
import sys
import uuid
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import structlog
from redis.asyncio import Redis

from app.config import LogFormat, get_settings
from app.database import async_session_factory, engine
from app.middleware.logging import configure_structured_logging
from app.scheduler import PeriodicScheduler
from app.services.activity_service import ActivityFilters, ActivityLogService, ActivityStats, export_filename

logger = structlog.get_logger("trayline.cli")

TASK_COMMANDS = {
    "sync-schedules": "sync_planting_schedules",
    "process-crop-tasks": "process_crop_tasks",
    "check-resources": "check_resource_levels",
    "process-recurring-orders": "process_recurring_orders",
}

STATS_DEFAULT_DAYS = 30


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trayline",
        description="Trayline back-office maintenance commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument(
        "--log-format",
        choices=[fmt.value for fmt in LogFormat],
        default=None,
        help="Override LOG_FORMAT",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync-schedules", help="Generate planting schedules from recurring orders")
    sync.add_argument("--start", type=_iso_date, default=None, help="First planting date (default: today)")
    sync.add_argument("--end", type=_iso_date, default=None, help="Last planting date (default: start + horizon)")

    commands.add_parser("process-crop-tasks", help="Repair crop stages and report trays due to advance")
    commands.add_parser("check-resources", help="Report consumables at or below restock threshold")

    recurring = commands.add_parser("process-recurring-orders", help="Generate the next due recurring orders")
    recurring.add_argument("--today", type=_iso_date, default=None)

    export = commands.add_parser("export-activity", help="Export activity logs to CSV or JSON")
    export.add_argument("--from", dest="date_from", type=_iso_date, default=None)
    export.add_argument("--to", dest="date_to", type=_iso_date, default=None)
    export.add_argument("--user", dest="user_id", type=uuid.UUID, default=None)
    export.add_argument("--type", dest="log_name", default=None)
    export.add_argument("--format", dest="fmt", choices=["csv", "json"], default="csv")
    export.add_argument("--output", type=Path, default=None, help="File to write (default: generated name)")

    stats = commands.add_parser("activity-stats", help="Summarise activity logs by type, model and action")
    stats.add_argument("--from", dest="date_from", type=_iso_date, default=None, help="First day (default: 30 days ago)")
    stats.add_argument("--to", dest="date_to", type=_iso_date, default=None, help="Last day (default: today)")
    stats.add_argument("--type", dest="log_name", default=None)
    stats.add_argument("--top", type=int, default=10, help="Number of top actions to list")
    stats.add_argument("--format", dest="fmt", choices=["text", "json"], default="text")

    prune = commands.add_parser("prune-activity", help="Delete activity logs older than the retention window")
    prune.add_argument("--days", type=int, default=None, help="Retention in days (default: ACTIVITY_RETENTION_DAYS)")

    return parser


def task_parameters(args: argparse.Namespace) -> dict[str, Any]:
    if args.command == "sync-schedules":
        start = args.start or date.today()
        end = args.end or start + timedelta(days=get_settings().planting_sync_horizon_days)
        if start > end:
            raise ValueError("--start must be on or before --end")
        return {"start": start.isoformat(), "end": end.isoformat()}
    if args.command == "process-recurring-orders" and args.today is not None:
        return {"today": args.today.isoformat()}
    return {}


async def _connect_redis() -> Redis | None:
    redis = Redis.from_url(get_settings().redis_url, decode_responses=True)
    try:
        await redis.ping()
    except Exception as exc:
        logger.warning("redis_unavailable", error=str(exc))
        await redis.aclose()
        return None
    return redis


async def run_task_command(args: argparse.Namespace) -> int:
    task_name = TASK_COMMANDS[args.command]
    parameters = task_parameters(args)
    redis = await _connect_redis()
    try:
        scheduler = PeriodicScheduler(redis_client=redis, tasks=[])
        status = await scheduler.run_task(task_name, parameters)
    finally:
        if redis is not None:
            await redis.aclose()

    if status is None:
        print(f"{task_name}: skipped or failed (see logs)", file=sys.stderr)
        return 1
    print(json.dumps(status.get("result") or {}, indent=2, default=str))
    return 0


async def run_export(args: argparse.Namespace) -> int:
    filters = ActivityFilters(
        date_from=args.date_from,
        date_to=args.date_to,
        user_id=args.user_id,
        log_name=args.log_name,
    )
    async with async_session_factory() as session:
        service = ActivityLogService(session)
        if args.fmt == "csv":
            filename, content = await service.export_csv(filters)
        else:
            filename = export_filename(extension="json")
            content = json.dumps(await service.export_json(filters), indent=2, default=str)

    output = args.output or Path(filename)
    output.write_text(content, encoding="utf-8")
    print(f"Exported activity logs to {output}")
    return 0


def stats_filters(args: argparse.Namespace, today: date | None = None) -> ActivityFilters:
    date_to = args.date_to or today or date.today()
    date_from = args.date_from or date_to - timedelta(days=STATS_DEFAULT_DAYS)
    if date_from > date_to:
        raise ValueError("--from must be on or before --to")
    return ActivityFilters(date_from=date_from, date_to=date_to, log_name=args.log_name)


def format_stats(stats: ActivityStats, filters: ActivityFilters) -> str:
    lines = [f"Activity from {filters.date_from} to {filters.date_to}", "", "Summary"]
    summary = stats.as_dict()["summary"]
    for key, value in summary.items():
        lines.append(f"  {key.replace('_', ' ')}: {value if value is not None else '-'}")
    lines.append(f"  errors: {stats.errors} ({stats.error_rate}%)")

    for title, counts in (("By type", stats.by_type), ("By model", stats.by_model)):
        lines.extend(["", title])
        lines.extend(f"  {name}: {count}" for name, count in counts.items())
        if not counts:
            lines.append("  (none)")

    lines.extend(["", "Top actions"])
    for action in stats.top_actions:
        lines.append(f"  {action['count']:>6}  {action['action'] or '-'}  {action['description']}")
    if not stats.top_actions:
        lines.append("  (none)")
    return "\n".join(lines)


async def run_stats(args: argparse.Namespace) -> int:
    filters = stats_filters(args)
    async with async_session_factory() as session:
        stats = await ActivityLogService(session).stats(filters, top=args.top)

    if args.fmt == "json":
        print(json.dumps(stats.as_dict(), indent=2, default=str))
    else:
        print(format_stats(stats, filters))
    return 0


async def run_prune(args: argparse.Namespace) -> int:
    days = args.days if args.days is not None else get_settings().activity_retention_days
    async with async_session_factory() as session:
        try:
            removed = await ActivityLogService(session).prune(days)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    print(f"Removed {removed} activity log entries older than {days} days")
    return 0


async def run(args: argparse.Namespace) -> int:
    try:
        if args.command == "export-activity":
            return await run_export(args)
        if args.command == "activity-stats":
            return await run_stats(args)
        if args.command == "prune-activity":
            return await run_prune(args)
        return await run_task_command(args)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_structured_logging(
        level=args.log_level,
        log_format=LogFormat(args.log_format) if args.log_format else None,
    )
    try:
        return asyncio.run(run(args))
    except ValueError as exc:
        parser.error(str(exc))
    return 2


if __name__ == "__main__":
    sys.exit(main())
