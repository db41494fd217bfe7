"""Inspection schedules API.

Supervisors and admins plan inspection windows per APAR and assign them to
teknisi; technicians see their own windows. Windows are interpreted in the
application timezone.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, and_, or_
from typing import Optional, Literal
from datetime import date, datetime, timedelta
import logging

from app.api.deps import DbSession, CurrentUser, Now, AppTimezone, require_permission
from app.exceptions import NotFoundError, ForbiddenError, ValidationError, BusinessRuleError
from app.models.apar import Apar
from app.models.inspection_schedule import InspectionSchedule
from app.models.user import User
from app.schemas.schedule import ScheduleCreate, ScheduleUpdate, ScheduleResponse, ScheduleListResponse
from app.security.rbac import Permission, Role, has_permission
from app.services import notification_service
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter()

StatusFilter = Literal["overdue", "today", "upcoming", "all"]
ActiveFilter = Literal["active", "inactive", "all"]

# Fields whose change is reported to the assigned technician
TRACKED_FIELDS = ("apar_id", "scheduled_date", "start_time", "end_time", "frequency", "is_active", "notes")


def _local_now(now: datetime, tz) -> tuple[date, object]:
    local = now.astimezone(tz)
    return local.date(), local.time().replace(tzinfo=None)


def apply_status_filter(query, status_filter: str, now: datetime, tz):
    """Restrict ``query`` to schedules in the given window state at ``now``."""
    if status_filter == "all":
        return query

    today, now_time = _local_now(now, tz)
    yesterday = today - timedelta(days=1)
    same_day = InspectionSchedule.end_time > InspectionSchedule.start_time
    pending = InspectionSchedule.is_completed == False  # noqa: E712

    if status_filter == "today":
        return query.where(InspectionSchedule.scheduled_date == today)
    if status_filter == "upcoming":
        return query.where(
            pending,
            or_(
                InspectionSchedule.scheduled_date > today,
                and_(InspectionSchedule.scheduled_date == today, InspectionSchedule.start_time > now_time),
            ),
        )
    # overdue: the window has closed without an inspection
    return query.where(
        pending,
        InspectionSchedule.is_active == True,  # noqa: E712
        or_(
            InspectionSchedule.scheduled_date < yesterday,
            and_(
                InspectionSchedule.scheduled_date == yesterday,
                or_(same_day, InspectionSchedule.end_time < now_time),
            ),
            and_(
                InspectionSchedule.scheduled_date == today,
                same_day,
                InspectionSchedule.end_time < now_time,
            ),
        ),
    )


def apply_active_filter(query, active: str):
    if active == "active":
        return query.where(InspectionSchedule.is_active == True)  # noqa: E712
    if active == "inactive":
        return query.where(InspectionSchedule.is_active == False)  # noqa: E712
    return query


def normalize_end_time(scheduled_date: date, start_time, end_time):
    """An end at or before the start becomes start + 1 hour."""
    if end_time > start_time:
        return end_time
    return (datetime.combine(scheduled_date, start_time) + timedelta(hours=1)).time()


async def load_schedule(db, schedule_id: int) -> InspectionSchedule:
    result = await db.execute(
        select(InspectionSchedule)
        .where(InspectionSchedule.id == schedule_id)
        .execution_options(populate_existing=True)
    )
    schedule = result.scalar_one_or_none()
    if not schedule:
        raise NotFoundError("Schedule", schedule_id)
    return schedule


async def _validate_apar(db, apar_id: int) -> Apar:
    apar = (await db.execute(select(Apar).where(Apar.id == apar_id))).scalar_one_or_none()
    if not apar:
        raise NotFoundError("APAR", apar_id)
    return apar


async def _validate_assignee(db, user_id: Optional[int]) -> None:
    if user_id is None:
        return
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user or not user.is_active or user.role != Role.TEKNISI.value:
        raise ValidationError(
            "Schedules can only be assigned to an active teknisi",
            errors=[{"field": "assigned_user_id", "message": "Not an active teknisi", "type": "value_error"}],
        )


async def _list_response(db, query, page, per_page, now, tz) -> ScheduleListResponse:
    schedules, total = await paginate(db, query, page, per_page)
    return ScheduleListResponse(
        items=[ScheduleResponse.from_model(s, now, tz) for s in schedules],
        total=total,
        page=page,
        per_page=per_page,
    )


def _ordered(query):
    return query.order_by(
        InspectionSchedule.scheduled_date,
        InspectionSchedule.start_time,
        InspectionSchedule.id,
    )


@router.get(
    "",
    response_model=ScheduleListResponse,
    dependencies=[Depends(require_permission(Permission.MANAGE_SCHEDULES))],
)
async def list_schedules(
    db: DbSession,
    now: Now,
    tz: AppTimezone,
    status: StatusFilter = "all",
    active: ActiveFilter = "all",
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """List schedules with window-state, active and APAR search filters."""
    query = select(InspectionSchedule)
    query = apply_status_filter(query, status, now, tz)
    query = apply_active_filter(query, active)

    if search:
        pattern = f"%{search}%"
        query = query.join(Apar, Apar.id == InspectionSchedule.apar_id).where(
            or_(Apar.serial_number.ilike(pattern), Apar.location_name.ilike(pattern))
        )

    return await _list_response(db, _ordered(query), page, per_page, now, tz)


@router.get("/my-schedules", response_model=ScheduleListResponse)
async def my_schedules(
    db: DbSession,
    current_user: CurrentUser,
    now: Now,
    tz: AppTimezone,
    status: StatusFilter = "all",
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """Schedules assigned to the caller."""
    query = select(InspectionSchedule).where(
        InspectionSchedule.assigned_user_id == current_user.id,
        InspectionSchedule.is_active == True,  # noqa: E712
    )
    query = apply_status_filter(query, status, now, tz)
    return await _list_response(db, _ordered(query), page, per_page, now, tz)


@router.get("/upcoming", response_model=list[ScheduleResponse])
async def upcoming_schedules(
    db: DbSession,
    current_user: CurrentUser,
    now: Now,
    tz: AppTimezone,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    """Active, open schedules dated within [start_date, end_date] (default: the next 7 days)."""
    today, _ = _local_now(now, tz)
    start_date = start_date or today
    end_date = end_date or start_date + timedelta(days=7)
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")

    query = select(InspectionSchedule).where(
        InspectionSchedule.is_active == True,  # noqa: E712
        InspectionSchedule.is_completed == False,  # noqa: E712
        InspectionSchedule.scheduled_date >= start_date,
        InspectionSchedule.scheduled_date <= end_date,
    )
    if not has_permission(current_user, Permission.MANAGE_SCHEDULES):
        query = query.where(InspectionSchedule.assigned_user_id == current_user.id)

    result = await db.execute(_ordered(query))
    return [ScheduleResponse.from_model(s, now, tz) for s in result.scalars().all()]


@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(schedule_id: int, db: DbSession, current_user: CurrentUser, now: Now, tz: AppTimezone):
    schedule = await load_schedule(db, schedule_id)
    if (
        not has_permission(current_user, Permission.MANAGE_SCHEDULES)
        and schedule.assigned_user_id != current_user.id
    ):
        raise ForbiddenError("This schedule is not assigned to you")
    return ScheduleResponse.from_model(schedule, now, tz)


@router.post(
    "",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Permission.MANAGE_SCHEDULES))],
)
async def create_schedule(
    data: ScheduleCreate,
    db: DbSession,
    current_user: CurrentUser,
    now: Now,
    tz: AppTimezone,
):
    await _validate_apar(db, data.apar_id)
    await _validate_assignee(db, data.assigned_user_id)

    today, _ = _local_now(now, tz)
    if data.scheduled_date < today:
        raise ValidationError(
            "scheduled_date cannot be in the past",
            errors=[{"field": "scheduled_date", "message": "Must be today or later", "type": "value_error"}],
        )

    values = data.model_dump()
    values["end_time"] = normalize_end_time(data.scheduled_date, data.start_time, data.end_time)

    schedule = InspectionSchedule(**values)
    db.add(schedule)
    await db.flush()

    schedule = await load_schedule(db, schedule.id)
    notification_service.notify_schedule_assigned(db, schedule)
    await db.commit()

    logger.info(f"Schedule {schedule.id} created for APAR {schedule.apar_id} by user {current_user.id}")
    return ScheduleResponse.from_model(schedule, now, tz)


@router.put(
    "/{schedule_id}",
    response_model=ScheduleResponse,
    dependencies=[Depends(require_permission(Permission.MANAGE_SCHEDULES))],
)
async def update_schedule(
    schedule_id: int,
    data: ScheduleUpdate,
    db: DbSession,
    now: Now,
    tz: AppTimezone,
):
    schedule = await load_schedule(db, schedule_id)
    update_data = data.model_dump(exclude_unset=True)

    if "apar_id" in update_data:
        await _validate_apar(db, update_data["apar_id"])
    if "assigned_user_id" in update_data:
        await _validate_assignee(db, update_data["assigned_user_id"])

    previous_assignee = schedule.assigned_user_id
    before = {field: getattr(schedule, field) for field in TRACKED_FIELDS}

    for field, value in update_data.items():
        setattr(schedule, field, value)
    schedule.end_time = normalize_end_time(schedule.scheduled_date, schedule.start_time, schedule.end_time)

    changes = [field for field in TRACKED_FIELDS if getattr(schedule, field) != before[field]]
    await db.flush()
    schedule = await load_schedule(db, schedule.id)

    if schedule.assigned_user_id != previous_assignee:
        if previous_assignee is not None:
            notification_service.notify_user(
                db,
                previous_assignee,
                type="schedule",
                title="Inspection schedule reassigned",
                message=f"Schedule #{schedule.id} has been reassigned to another technician.",
                metadata={"entity_type": "schedule", "entity_id": schedule.id},
            )
        notification_service.notify_schedule_assigned(db, schedule)
    else:
        notification_service.notify_schedule_updated(db, schedule, changes)

    await db.commit()
    return ScheduleResponse.from_model(schedule, now, tz)


@router.delete(
    "/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission(Permission.MANAGE_SCHEDULES))],
)
async def delete_schedule(schedule_id: int, db: DbSession):
    schedule = await load_schedule(db, schedule_id)
    notification_service.notify_schedule_cancelled(db, schedule)
    await db.delete(schedule)
    await db.commit()
    logger.info(f"Schedule {schedule_id} deleted")


@router.patch(
    "/{schedule_id}/mark-completed",
    response_model=ScheduleResponse,
    dependencies=[Depends(require_permission(Permission.MANAGE_SCHEDULES))],
)
async def mark_schedule_completed(schedule_id: int, db: DbSession, now: Now, tz: AppTimezone):
    schedule = await load_schedule(db, schedule_id)
    schedule.is_completed = True
    await db.commit()
    schedule = await load_schedule(db, schedule_id)
    return ScheduleResponse.from_model(schedule, now, tz)


@router.post(
    "/{schedule_id}/send-reminder",
    dependencies=[Depends(require_permission(Permission.SEND_REMINDERS))],
)
async def send_schedule_reminder(schedule_id: int, db: DbSession, current_user: CurrentUser, now: Now):
    """Manually remind the assigned technician about an open schedule."""
    schedule = await load_schedule(db, schedule_id)

    if not schedule.is_active or schedule.is_completed:
        raise BusinessRuleError("Reminders can only be sent for active, uncompleted schedules")
    if schedule.assigned_user_id is None:
        raise BusinessRuleError("Schedule has no assigned technician")

    notification_service.notify_schedule_reminder(db, schedule, source="user")
    schedule.reminder_sent_at = now
    await db.commit()

    logger.info(f"Reminder for schedule {schedule_id} sent by user {current_user.id}")
    return {"message": "Reminder sent", "schedule_id": schedule_id, "user_id": schedule.assigned_user_id}
