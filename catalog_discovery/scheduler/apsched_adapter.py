"""APScheduler wrapper running the discovery job in the foreground."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import structlog
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleConfig, ScheduleType

JOB_ID = "discovery::run"


class APSchedulerAdapter:
    """Register one non-overlapping discovery job and block while it runs."""

    def __init__(
        self,
        scheduler: BlockingScheduler | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.scheduler = scheduler or BlockingScheduler()
        self.logger = logger or structlog.get_logger("catalog_discovery").bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.started = True
            self.logger.info("apscheduler_started")
            try:
                self.scheduler.start()
            finally:
                self.started = False

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("apscheduler_stopped")

    def schedule_job(self, schedule: ScheduleConfig, callback: Callable[[], None]) -> None:
        # a slow run delays the next one instead of overlapping it
        self.scheduler.add_job(
            callback,
            trigger=self._build_trigger(schedule),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info("job_scheduled", schedule=schedule.model_dump(mode="json"))

    def _build_trigger(self, schedule: ScheduleConfig):
        if schedule.type is ScheduleType.CRON:
            return CronTrigger.from_crontab(str(schedule.value))
        if schedule.type is ScheduleType.INTERVAL:
            if isinstance(schedule.value, (int, float)):
                return IntervalTrigger(seconds=float(schedule.value))
            if isinstance(schedule.value, dict):
                return IntervalTrigger(**schedule.value)
            raise ValueError("Interval schedule requires seconds or kwargs dict")
        if schedule.type is ScheduleType.ONCE:
            if schedule.value:
                run_date = datetime.fromisoformat(str(schedule.value))
            else:
                run_date = datetime.now(timezone.utc)
            return DateTrigger(run_date=run_date)
        raise ValueError(f"Unknown schedule type: {schedule.type}")

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    # pending jobs have no next run time until the scheduler starts
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter", "JOB_ID"]
