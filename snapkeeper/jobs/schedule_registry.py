from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from rq_scheduler import Scheduler

from snapkeeper.core.config import settings
from snapkeeper.jobs.maintenance import delete_expired_snaps_job, delete_expired_stories_job
from snapkeeper.services.task_queue import task_queue

logger = logging.getLogger("snapkeeper.jobs.schedule_registry")


def next_top_of_hour(now: datetime | None = None, tz_name: str | None = None) -> datetime:
    """Return the next full hour in the schedule timezone, as naive UTC for rq-scheduler."""
    zone = ZoneInfo(tz_name or settings.sweep_timezone)
    current = (now or datetime.now(timezone.utc)).astimezone(zone)
    aligned = current.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return aligned.astimezone(timezone.utc).replace(tzinfo=None)


def _schedule_entries() -> list[dict]:
    queue_name = task_queue.maintenance_queue_name
    return [
        {
            "id": "maintenance:delete_expired_stories",
            "func": delete_expired_stories_job,
            "interval": settings.story_sweep_interval_seconds,
            "repeat": None,
            "queue_name": queue_name,
        },
        {
            "id": "maintenance:delete_expired_snaps",
            "func": delete_expired_snaps_job,
            "interval": settings.direct_sweep_interval_seconds,
            "repeat": None,
            "queue_name": queue_name,
        },
    ]


def ensure_schedules() -> None:
    """Idempotently register periodic sweeps with rq-scheduler."""
    if settings.environment.lower() == "test":
        return
    if not task_queue.connection:
        logger.info("Skipping scheduler bootstrap; queue connection is unavailable")
        return
    scheduler = Scheduler(connection=task_queue.connection, queue_name=task_queue.maintenance_queue_name)
    first_run = next_top_of_hour()
    for entry in _schedule_entries():
        if entry["id"] in scheduler:
            continue
        scheduler.schedule(
            scheduled_time=first_run,
            func=entry["func"],
            interval=entry["interval"],
            repeat=entry["repeat"],
            id=entry["id"],
            queue_name=entry["queue_name"],
            result_ttl=int(timedelta(hours=1).total_seconds()),
        )
        logger.info(
            "Scheduled job %s every %ss on queue %s (first run %s UTC, zone %s)",
            entry["id"],
            entry["interval"],
            entry["queue_name"],
            first_run.isoformat(),
            settings.sweep_timezone,
        )
