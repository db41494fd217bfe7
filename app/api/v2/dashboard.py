from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from datetime import date, datetime, time, timedelta, timezone
from pydantic import BaseModel
from typing import Optional

from app.api.deps import DbSession, Now, AppTimezone, require_permission
from app.exceptions import BusinessRuleError
from app.models.apar import Apar
from app.models.inspection import Inspection, RepairApproval, REPAIR_CONDITIONS
from app.models.inspection_schedule import InspectionSchedule
from app.schemas.inspection import InspectionResponse
from app.security.rbac import Permission
from app.api.v2.reports import count_by
from app.api.v2.schedules import apply_status_filter

router = APIRouter(dependencies=[Depends(require_permission(Permission.VIEW_REPORTS))])

MAX_RANGE_DAYS = 366
RECENT_LIMIT = 5


class DashboardStats(BaseModel):
    """Headline counters."""
    total_apar: int
    active_apar: int
    pending_repairs: int
    expired_apar: int
    inactive_apar: int
    overdue_inspections: int


class AparStatusChart(BaseModel):
    active: int = 0
    refill: int = 0
    damaged: int = 0
    expired: int = 0
    inactive: int = 0


class RepairStatusChart(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    completed: int = 0


class DailyInspections(BaseModel):
    date: date
    day: str
    good: int = 0
    needs_repair: int = 0
    total: int = 0


class DateRange(BaseModel):
    start: date
    end: date


class DashboardFullStats(BaseModel):
    stats: DashboardStats
    apar_status_chart: AparStatusChart
    repair_status_chart: RepairStatusChart
    inspections_by_date: list[DailyInspections]
    recent_inspections: list[InspectionResponse]
    date_range: DateRange


def _local_date(value: datetime, tz) -> date:
    # SQLite hands timestamps back naive; they are stored in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).date()


async def _inspections_by_date(db, start: date, end: date, tz) -> list[DailyInspections]:
    days = {}
    current = start
    while current <= end:
        days[current] = DailyInspections(date=current, day=current.strftime("%a"))
        current += timedelta(days=1)

    lower = datetime.combine(start, time.min, tzinfo=tz).astimezone(timezone.utc)
    upper = datetime.combine(end, time.max, tzinfo=tz).astimezone(timezone.utc)
    rows = await db.execute(
        select(Inspection.condition, Inspection.created_at).where(
            Inspection.created_at >= lower, Inspection.created_at <= upper
        )
    )
    for condition, created_at in rows.all():
        bucket = days.get(_local_date(created_at, tz))
        if bucket is None:
            continue
        bucket.total += 1
        if condition in REPAIR_CONDITIONS:
            bucket.needs_repair += 1
        else:
            bucket.good += 1
    return list(days.values())


@router.get("/stats", response_model=DashboardFullStats)
async def get_dashboard_stats(
    db: DbSession,
    now: Now,
    tz: AppTimezone,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    """Counters, charts and recent activity. The date range defaults to the current Monday-Sunday week."""
    today = now.astimezone(tz).date()
    week_start = today - timedelta(days=today.weekday())
    start = start_date or week_start
    end = end_date or start + timedelta(days=6)

    if end < start:
        raise BusinessRuleError("end_date must not be before start_date")
    if (end - start).days >= MAX_RANGE_DAYS:
        raise BusinessRuleError(f"Date range may span at most {MAX_RANGE_DAYS} days")

    by_status = await count_by(db, Apar.status)
    repairs = await count_by(db, RepairApproval.status)

    overdue_query = apply_status_filter(select(func.count(InspectionSchedule.id)), "overdue", now, tz)
    overdue = (await db.execute(overdue_query)).scalar() or 0

    recent = await db.execute(
        select(Inspection).order_by(Inspection.created_at.desc(), Inspection.id.desc()).limit(RECENT_LIMIT)
    )

    return DashboardFullStats(
        stats=DashboardStats(
            total_apar=sum(by_status.values()),
            active_apar=by_status.get("active", 0),
            pending_repairs=by_status.get("refill", 0) + by_status.get("damaged", 0),
            expired_apar=by_status.get("expired", 0),
            inactive_apar=by_status.get("inactive", 0),
            overdue_inspections=overdue,
        ),
        apar_status_chart=AparStatusChart(
            **{k: v for k, v in by_status.items() if k in AparStatusChart.model_fields}
        ),
        repair_status_chart=RepairStatusChart(
            **{k: v for k, v in repairs.items() if k in RepairStatusChart.model_fields}
        ),
        inspections_by_date=await _inspections_by_date(db, start, end, tz),
        recent_inspections=[InspectionResponse.model_validate(i) for i in recent.scalars().all()],
        date_range=DateRange(start=start, end=end),
    )
