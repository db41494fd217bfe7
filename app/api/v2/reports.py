"""Reports API - inspection summaries, overdue schedules and CSV exports."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from typing import Literal
from datetime import datetime, timedelta
import logging

from app.api.deps import DbSession, CurrentUser, Now, AppTimezone, require_permission
from app.models.apar import Apar
from app.models.inspection import Inspection, RepairApproval
from app.models.inspection_schedule import InspectionSchedule
from app.schemas.inspection import InspectionResponse
from app.schemas.schedule import ScheduleResponse
from app.security.rbac import Permission, ensure_permission
from app.api.v2.audit_logs import build_audit_query, audit_csv, EXPORT_LIMIT
from app.api.v2.schedules import apply_status_filter
from app.utils.csv_export import csv_response

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_permission(Permission.VIEW_REPORTS))])

Period = Literal["week", "month", "quarter", "year"]
ExportType = Literal["inspections", "summary", "overdue", "audit"]

PERIOD_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
}


def period_start(period: str, now: datetime) -> datetime:
    return now - timedelta(days=PERIOD_DAYS[period])


async def count_by(db, column) -> dict:
    result = await db.execute(select(column, func.count()).group_by(column))
    return {row[0]: row[1] for row in result.all()}


async def build_summary(db, period: str, now: datetime, tz) -> dict:
    since = period_start(period, now)

    apars_by_status = await count_by(db, Apar.status)
    apars_by_location = await count_by(db, Apar.location_type)

    inspections_by_condition = {
        row[0]: row[1]
        for row in (
            await db.execute(
                select(Inspection.condition, func.count())
                .where(Inspection.created_at >= since)
                .group_by(Inspection.condition)
            )
        ).all()
    }

    pending_repairs = (
        await db.execute(select(func.count(RepairApproval.id)).where(RepairApproval.status == "pending"))
    ).scalar() or 0

    overdue_query = apply_status_filter(select(func.count(InspectionSchedule.id)), "overdue", now, tz)
    overdue = (await db.execute(overdue_query)).scalar() or 0

    return {
        "period": period,
        "since": since.isoformat(),
        "generated_at": now.isoformat(),
        "apars": {
            "total": sum(apars_by_status.values()),
            "by_status": apars_by_status,
            "by_location_type": apars_by_location,
        },
        "inspections": {
            "total": sum(inspections_by_condition.values()),
            "by_condition": inspections_by_condition,
        },
        "pending_repairs": pending_repairs,
        "overdue_schedules": overdue,
    }


async def fetch_period_inspections(db, period: str, now: datetime, limit: int):
    result = await db.execute(
        select(Inspection)
        .where(Inspection.created_at >= period_start(period, now))
        .order_by(Inspection.created_at.desc(), Inspection.id.desc())
        .limit(limit)
    )
    return result.scalars().all()


async def fetch_overdue(db, now: datetime, tz):
    query = apply_status_filter(select(InspectionSchedule), "overdue", now, tz).order_by(
        InspectionSchedule.scheduled_date, InspectionSchedule.start_time, InspectionSchedule.id
    )
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/summary")
async def get_summary(db: DbSession, now: Now, tz: AppTimezone, period: Period = "month"):
    return await build_summary(db, period, now, tz)


@router.get("/inspections")
async def get_inspection_report(
    db: DbSession,
    now: Now,
    period: Period = "month",
    limit: int = Query(500, ge=1, le=5000),
):
    inspections = await fetch_period_inspections(db, period, now, limit)
    return {
        "period": period,
        "total": len(inspections),
        "items": [InspectionResponse.model_validate(i) for i in inspections],
    }


@router.get("/overdue")
async def get_overdue_report(db: DbSession, now: Now, tz: AppTimezone):
    schedules = await fetch_overdue(db, now, tz)
    return {
        "total": len(schedules),
        "items": [ScheduleResponse.from_model(s, now, tz) for s in schedules],
    }


@router.get("/export/{export_type}")
async def export_report(
    export_type: ExportType,
    db: DbSession,
    current_user: CurrentUser,
    now: Now,
    tz: AppTimezone,
    period: Period = "month",
):
    """Download a report as CSV."""
    stamp = now.astimezone(tz).strftime("%Y%m%d")
    logger.info(f"User {current_user.id} exporting {export_type} report ({period})")

    if export_type == "inspections":
        inspections = await fetch_period_inspections(db, period, now, EXPORT_LIMIT)
        return csv_response(
            f"inspections_{period}_{stamp}.csv",
            ["id", "created_at", "apar_serial", "location", "inspector", "condition",
             "location_valid", "repair_status", "schedule_id", "notes"],
            (
                [i.id, i.created_at, i.apar.serial_number if i.apar else "",
                 i.apar.location_name if i.apar else "", i.user.name if i.user else "",
                 i.condition, i.location_valid, i.repair_status, i.schedule_id, i.notes]
                for i in inspections
            ),
        )

    if export_type == "summary":
        summary = await build_summary(db, period, now, tz)
        rows = [["apars", "total", summary["apars"]["total"]]]
        rows += [["apar_status", k, v] for k, v in sorted(summary["apars"]["by_status"].items())]
        rows += [["apar_location_type", k, v] for k, v in sorted(summary["apars"]["by_location_type"].items())]
        rows += [["inspections", "total", summary["inspections"]["total"]]]
        rows += [["inspection_condition", k, v] for k, v in sorted(summary["inspections"]["by_condition"].items())]
        rows += [
            ["repairs", "pending", summary["pending_repairs"]],
            ["schedules", "overdue", summary["overdue_schedules"]],
        ]
        return csv_response(f"summary_{period}_{stamp}.csv", ["section", "key", "value"], rows)

    if export_type == "overdue":
        schedules = await fetch_overdue(db, now, tz)
        return csv_response(
            f"overdue_{stamp}.csv",
            ["schedule_id", "apar_serial", "location", "assigned_to", "scheduled_date",
             "start_time", "end_time", "frequency"],
            (
                [s.id, s.apar.serial_number if s.apar else "", s.apar.location_name if s.apar else "",
                 s.assigned_user.name if s.assigned_user else "", s.scheduled_date,
                 s.start_time, s.end_time, s.frequency]
                for s in schedules
            ),
        )

    # audit
    ensure_permission(current_user, Permission.VIEW_AUDIT_LOGS)
    query = build_audit_query(tz, start_date=period_start(period, now).astimezone(tz).date())
    result = await db.execute(query.limit(EXPORT_LIMIT))
    return audit_csv(result.scalars().all(), f"audit_{period}_{stamp}.csv")
