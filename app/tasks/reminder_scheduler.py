"""Inspection Scheduler - daily background jobs.

- Reminds assigned teknisi ahead of their inspection windows, with a lead time
  that depends on the schedule frequency (daily H-1, weekly H-3, longer H-7).
- Marks active APARs past their expiry date as expired.
- Prunes the inspection audit trail beyond the retention period.
"""

import logging
from datetime import datetime, date, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import async_session_maker
from app.models.apar import Apar
from app.models.inspection_log import InspectionLog
from app.models.inspection_schedule import InspectionSchedule
from app.services import notification_service

logger = logging.getLogger(__name__)

# Days before the scheduled date on which the reminder goes out
REMINDER_LEAD_DAYS = {
    "daily": 1,
    "weekly": 3,
    "monthly": 7,
    "quarterly": 7,
    "semiannual": 7,
}
DEFAULT_LEAD_DAYS = 7

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance."""
    global scheduler
    if scheduler is None:
        scheduler = AsyncIOScheduler(timezone=settings.APP_TIMEZONE)
    return scheduler


def _today() -> date:
    return datetime.now(ZoneInfo(settings.APP_TIMEZONE)).date()


def reminder_due(schedule: InspectionSchedule, today: date) -> bool:
    """True when ``today`` is exactly the lead time before the scheduled date."""
    lead = REMINDER_LEAD_DAYS.get(schedule.frequency, DEFAULT_LEAD_DAYS)
    return (schedule.scheduled_date - today).days == lead


async def process_inspection_reminders(db: AsyncSession, today: date, now: datetime) -> int:
    """Queue reminder notifications for schedules whose lead day is ``today``.

    Each schedule is reminded at most once; ``reminder_sent_at`` marks it.
    """
    horizon = today + timedelta(days=max(REMINDER_LEAD_DAYS.values()))
    result = await db.execute(
        select(InspectionSchedule).where(
            InspectionSchedule.is_active == True,  # noqa: E712
            InspectionSchedule.is_completed == False,  # noqa: E712
            InspectionSchedule.assigned_user_id.isnot(None),
            InspectionSchedule.reminder_sent_at.is_(None),
            InspectionSchedule.scheduled_date > today,
            InspectionSchedule.scheduled_date <= horizon,
        )
    )

    sent = 0
    for schedule in result.scalars().all():
        if not reminder_due(schedule, today):
            continue
        notification_service.notify_schedule_reminder(db, schedule, source="scheduler")
        schedule.reminder_sent_at = now
        sent += 1

    return sent


async def process_apar_expiry(db: AsyncSession, today: date) -> int:
    """Mark active APARs whose expiry date has passed as expired."""
    result = await db.execute(
        update(Apar)
        .where(Apar.status == "active", Apar.expired_at.isnot(None), Apar.expired_at < today)
        .values(status="expired")
    )
    return result.rowcount or 0


async def process_log_cleanup(db: AsyncSession, now: datetime, retention_days: int) -> int:
    """Delete audit rows older than ``retention_days``."""
    cutoff = now - timedelta(days=retention_days)
    result = await db.execute(delete(InspectionLog).where(InspectionLog.created_at < cutoff))
    return result.rowcount or 0


async def send_inspection_reminders():
    """Daily job: reminder notifications for upcoming inspection windows."""
    logger.info("Starting inspection reminder check...")
    try:
        async with async_session_maker() as db:
            sent = await process_inspection_reminders(db, _today(), datetime.now(timezone.utc))
            await db.commit()
        logger.info(f"Inspection reminder check complete. Sent: {sent}")
    except Exception as e:
        logger.error(f"Fatal error in reminder check: {e}", exc_info=True)


async def update_apar_status():
    """Daily job: expire APARs past their expiry date."""
    try:
        async with async_session_maker() as db:
            updated = await process_apar_expiry(db, _today())
            await db.commit()
        logger.info(f"Marked {updated} APARs as expired")
    except Exception as e:
        logger.error(f"Error updating APAR statuses: {e}", exc_info=True)


async def cleanup_inspection_logs():
    """Weekly job: enforce the audit log retention period."""
    try:
        async with async_session_maker() as db:
            deleted = await process_log_cleanup(
                db, datetime.now(timezone.utc), settings.AUDIT_LOG_RETENTION_DAYS
            )
            await db.commit()
        logger.info(f"Deleted {deleted} inspection logs older than {settings.AUDIT_LOG_RETENTION_DAYS} days")
    except Exception as e:
        logger.error(f"Error cleaning up inspection logs: {e}", exc_info=True)


def start_scheduler():
    """Start the scheduler with all configured jobs."""
    global scheduler

    scheduler = get_scheduler()

    # Expire APARs at midnight, before reminders go out
    scheduler.add_job(
        update_apar_status,
        CronTrigger(hour=0, minute=5),
        id="update_apar_status",
        name="Expire APARs",
        replace_existing=True,
    )

    scheduler.add_job(
        send_inspection_reminders,
        CronTrigger(hour=7, minute=0),
        id="inspection_reminders",
        name="Send inspection reminders",
        replace_existing=True,
    )

    scheduler.add_job(
        cleanup_inspection_logs,
        CronTrigger(day_of_week="sun", hour=2, minute=0),
        id="cleanup_inspection_logs",
        name="Clean up inspection logs",
        replace_existing=True,
    )

    if not scheduler.running:
        scheduler.start()
        logger.info("Inspection scheduler started")
        logger.info("Jobs scheduled:")
        for job in scheduler.get_jobs():
            logger.info(f"  - {job.name}: {job.trigger}")


def shutdown_scheduler():
    """Stop the scheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Inspection scheduler stopped")
