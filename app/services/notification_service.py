"""
In-app notification helpers.

Schedule and repair workflows call these to queue Notification rows on the
current session; the caller commits.
"""
import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification
from app.models.user import User

logger = logging.getLogger(__name__)


def notify_user(
    db: AsyncSession,
    user_id: int,
    *,
    type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    metadata: Optional[dict] = None,
    source: str = "system",
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        link=link,
        extra_data=metadata,
        source=source,
    )
    db.add(notification)
    return notification


async def notify_roles(
    db: AsyncSession,
    roles: Iterable[str],
    *,
    type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    metadata: Optional[dict] = None,
    source: str = "system",
) -> list[Notification]:
    """Notify every active user holding one of ``roles``."""
    result = await db.execute(
        select(User.id).where(User.role.in_(list(roles)), User.is_active == True)  # noqa: E712
    )
    user_ids = result.scalars().all()
    return [
        notify_user(
            db, user_id, type=type, title=title, message=message,
            link=link, metadata=metadata, source=source,
        )
        for user_id in user_ids
    ]


def _schedule_text(schedule) -> str:
    apar = schedule.apar
    where = f"{apar.serial_number} at {apar.location_name}" if apar is not None else f"APAR #{schedule.apar_id}"
    return (
        f"{where} on {schedule.scheduled_date:%Y-%m-%d} "
        f"{schedule.start_time:%H:%M}-{schedule.end_time:%H:%M}"
    )


def _schedule_metadata(schedule) -> dict:
    return {"entity_type": "schedule", "entity_id": schedule.id, "apar_id": schedule.apar_id}


def notify_schedule_assigned(db: AsyncSession, schedule) -> Optional[Notification]:
    if schedule.assigned_user_id is None:
        return None
    return notify_user(
        db,
        schedule.assigned_user_id,
        type="schedule",
        title="New inspection schedule",
        message=f"You have been scheduled to inspect {_schedule_text(schedule)}.",
        link="/schedules/my-schedules",
        metadata=_schedule_metadata(schedule),
    )


def notify_schedule_updated(db: AsyncSession, schedule, changes: list[str]) -> Optional[Notification]:
    if schedule.assigned_user_id is None or not changes:
        return None
    return notify_user(
        db,
        schedule.assigned_user_id,
        type="schedule",
        title="Inspection schedule updated",
        message=f"Your schedule for {_schedule_text(schedule)} changed ({', '.join(changes)}).",
        link="/schedules/my-schedules",
        metadata={**_schedule_metadata(schedule), "changes": changes},
    )


def notify_schedule_cancelled(db: AsyncSession, schedule) -> Optional[Notification]:
    if schedule.assigned_user_id is None:
        return None
    return notify_user(
        db,
        schedule.assigned_user_id,
        type="schedule",
        title="Inspection schedule cancelled",
        message=f"Your schedule for {_schedule_text(schedule)} has been cancelled.",
        metadata=_schedule_metadata(schedule),
    )


def notify_schedule_reminder(db: AsyncSession, schedule, source: str = "system") -> Notification:
    return notify_user(
        db,
        schedule.assigned_user_id,
        type="reminder",
        title="Inspection reminder",
        message=f"Reminder: inspection of {_schedule_text(schedule)}.",
        link="/schedules/my-schedules",
        metadata=_schedule_metadata(schedule),
        source=source,
    )


async def notify_repair_needed(db: AsyncSession, inspection, apar) -> list[Notification]:
    """Tell supervisors and admins that an inspection found a defect."""
    return await notify_roles(
        db,
        ("supervisor", "admin"),
        type="repair",
        title="Repair approval needed",
        message=(
            f"APAR {apar.serial_number} at {apar.location_name} was inspected as "
            f"'{inspection.condition}' and awaits repair approval."
        ),
        link="/repair-approvals/pending",
        metadata={"entity_type": "inspection", "entity_id": inspection.id, "apar_id": apar.id},
    )


def notify_repair_status(db: AsyncSession, approval, inspection) -> Notification:
    """Tell the inspecting technician about a repair approval transition."""
    notes = f" Notes: {approval.admin_notes}" if approval.admin_notes else ""
    return notify_user(
        db,
        inspection.user_id,
        type="repair",
        title=f"Repair {approval.status}",
        message=f"The repair request for inspection #{inspection.id} is now {approval.status}.{notes}",
        link=f"/inspections/{inspection.id}",
        metadata={"entity_type": "repair_approval", "entity_id": approval.id, "status": approval.status},
    )
