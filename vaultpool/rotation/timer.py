"""Delayed-task facilities that fire rotation tasks."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

logger = logging.getLogger(__name__)


class Timer(ABC):
    """Runs a task once after a delay."""

    @abstractmethod
    def schedule(self, task, delay_ms: int) -> None:
        """
        Arm a one-shot firing of ``task.run()``.

        Args:
            task: Object with a ``run()`` method and a ``name`` attribute
            delay_ms: Delay in milliseconds
        """
        pass


class APSchedulerTimer(Timer):
    """Timer shared by every rotation in the process, backed by APScheduler."""

    def __init__(self, scheduler: Optional[BackgroundScheduler] = None):
        """
        Initialize timer.

        Args:
            scheduler: Existing background scheduler to share (a daemon one is created if omitted)
        """
        self.scheduler = scheduler or BackgroundScheduler(daemon=True, timezone=timezone.utc)

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.debug("Rotation timer started")

    def shutdown(self, wait: bool = True) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.debug("Rotation timer stopped")

    def schedule(self, task, delay_ms: int) -> None:
        run_date = datetime.now(timezone.utc) + timedelta(milliseconds=delay_ms)
        # misfire_grace_time=None: a late firing must still run, a skipped one stops rotation
        self.scheduler.add_job(
            task.run,
            trigger=DateTrigger(run_date=run_date, timezone=timezone.utc),
            name=task.name,
            misfire_grace_time=None,
        )
        logger.debug(f"Armed {task.name} for {run_date.isoformat()}")
