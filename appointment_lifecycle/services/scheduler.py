"""
Background Scheduler for Time-Driven Appointment Transitions
============================================================
Implements APScheduler-based background jobs for:
- Reminder sweep (1-hour and 15-minute patient reminders)
- No-show sweep (auto-cancel when geo check-in never happened)
- Daily maintenance (hooks registered by the deployment)

Every sweep reads a bounded batch from the store and hands each row to the
lifecycle engine in its own transaction. A failing row is logged and the
sweep moves on to the next one.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

import logfire
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from appointment_lifecycle.config import Settings
from appointment_lifecycle.services.lifecycle import (
    AppointmentLifecycleEngine,
    ReminderKind,
)
from appointment_lifecycle.services.store import AppointmentStore

logger = logging.getLogger(__name__)

MaintenanceHook = Callable[[datetime], Awaitable[None]]


@dataclass
class SweepStats:
    """Counters reported by one sweep."""
    scanned: int = 0
    applied: int = 0
    failed: int = 0


class AppointmentScheduler:
    """Manages the recurring sweeps that drive time-based appointment transitions."""

    def __init__(
        self,
        engine: AppointmentLifecycleEngine,
        store: AppointmentStore,
        settings: Settings,
    ):
        self.engine = engine
        self.store = store
        self.settings = settings
        self.scheduler = AsyncIOScheduler(timezone=settings.timezone)
        self.maintenance_hooks: List[MaintenanceHook] = []
        self._stopping = False

    def start(self):
        """Start the background scheduler."""
        if self.scheduler.running:
            return
        self._stopping = False

        self.scheduler.add_job(
            self.run_reminder_sweep,
            IntervalTrigger(minutes=self.settings.reminder_sweep_minutes),
            id='reminder_sweep',
            replace_existing=True,
            name='Appointment Reminder Sweep',
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.add_job(
            self.run_no_show_sweep,
            IntervalTrigger(minutes=self.settings.no_show_sweep_minutes),
            id='no_show_sweep',
            replace_existing=True,
            name='No-Show Sweep',
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.add_job(
            self.run_daily_maintenance,
            CronTrigger(hour=0, minute=0, timezone=self.settings.timezone),
            id='daily_maintenance',
            replace_existing=True,
            name='Daily Maintenance',
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        logger.info("Appointment scheduler started with reminder, no-show and maintenance jobs")

    def stop(self):
        """Stop the background scheduler; an in-flight row still finishes."""
        self._stopping = True
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Appointment scheduler stopped")

    def get_jobs(self) -> List[Dict]:
        """Get list of scheduled jobs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger)
            })
        return jobs

    def add_maintenance_hook(self, hook: MaintenanceHook):
        """Register a coroutine run by the daily maintenance job."""
        self.maintenance_hooks.append(hook)

    async def _apply(self, stats: SweepStats, label: str, appointment_id, step: Awaitable[bool]):
        # Shielded so a shutdown mid-row still lets the row's transaction finish
        try:
            if await asyncio.shield(step):
                stats.applied += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            stats.failed += 1
            logger.error(f"{label} failed for appointment {appointment_id}: {e}")
            logfire.error(f"{label}_row_failed", appointment_id=str(appointment_id), error=str(e))

    async def run_reminder_sweep(self, now: Optional[datetime] = None) -> SweepStats:
        """Send every 1-hour and 15-minute reminder that is due at ``now``."""
        now = now or datetime.now(timezone.utc)
        stats = SweepStats()
        try:
            rows = await self.store.scan_due_reminders(now, self.settings.sweep_batch_size)
        except Exception as e:
            logger.error(f"Appointment reminder sweep error: {e}")
            return stats

        tz = self.settings.timezone
        for appointment in rows:
            if self._stopping:
                break
            stats.scanned += 1
            instant = appointment.instant(tz)
            for kind, flag in (
                (ReminderKind.ONE_HOUR, appointment.reminder_one_hour_sent),
                (ReminderKind.FIFTEEN_MINUTES, appointment.reminder_fifteen_min_sent),
            ):
                if flag:
                    continue
                if now < instant <= now + self.engine.reminder_window(kind):
                    await self._apply(
                        stats,
                        "reminder_sweep",
                        appointment.id,
                        self.engine.send_reminder(appointment.id, kind, now),
                    )

        if stats.applied or stats.failed:
            logfire.info("reminder_sweep", scanned=stats.scanned, sent=stats.applied, failed=stats.failed)
        return stats

    async def run_no_show_sweep(self, now: Optional[datetime] = None) -> SweepStats:
        """Auto-cancel approved appointments whose grace period ran out unverified."""
        now = now or datetime.now(timezone.utc)
        stats = SweepStats()
        try:
            rows = await self.store.scan_due_no_shows(now, self.settings.sweep_batch_size)
        except Exception as e:
            logger.error(f"No-show sweep error: {e}")
            return stats

        for appointment in rows:
            if self._stopping:
                break
            stats.scanned += 1
            await self._apply(
                stats,
                "no_show_sweep",
                appointment.id,
                self.engine.expire_no_show(appointment.id, now),
            )

        if stats.applied or stats.failed:
            logfire.info("no_show_sweep", scanned=stats.scanned, cancelled=stats.applied, failed=stats.failed)
        return stats

    async def run_daily_maintenance(self, now: Optional[datetime] = None) -> int:
        """Run registered maintenance hooks; returns how many succeeded."""
        now = now or datetime.now(timezone.utc)
        succeeded = 0
        for hook in self.maintenance_hooks:
            try:
                await hook(now)
                succeeded += 1
            except Exception as e:
                logger.error(f"Daily maintenance hook {getattr(hook, '__name__', hook)} failed: {e}")
        logger.info("Daily maintenance completed")
        return succeeded
