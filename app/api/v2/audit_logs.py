"""Audit log API (admin only) over the inspection trail."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from typing import Optional
from datetime import date, datetime, time
from pydantic import BaseModel, ConfigDict
import logging

from app.api.deps import DbSession, AppTimezone, require_permission
from app.models.inspection_log import InspectionLog
from app.schemas.auth import UserSummary
from app.security.rbac import Permission
from app.utils.csv_export import csv_response
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_permission(Permission.VIEW_AUDIT_LOGS))])

EXPORT_LIMIT = 10_000


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    apar_id: int
    user_id: Optional[int] = None
    inspection_id: Optional[int] = None
    action: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_info: Optional[dict] = None
    details: Optional[str] = None
    is_successful: bool
    user: Optional[UserSummary] = None
    created_at: Optional[datetime] = None


def build_audit_query(
    tz,
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    apar_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    is_successful: Optional[bool] = None,
):
    query = select(InspectionLog)
    if action:
        query = query.where(InspectionLog.action == action)
    if user_id is not None:
        query = query.where(InspectionLog.user_id == user_id)
    if apar_id is not None:
        query = query.where(InspectionLog.apar_id == apar_id)
    if start_date:
        query = query.where(InspectionLog.created_at >= datetime.combine(start_date, time.min, tzinfo=tz))
    if end_date:
        query = query.where(InspectionLog.created_at <= datetime.combine(end_date, time.max, tzinfo=tz))
    if is_successful is not None:
        query = query.where(InspectionLog.is_successful == is_successful)
    return query.order_by(InspectionLog.created_at.desc(), InspectionLog.id.desc())


def audit_csv(logs, filename: str = "audit_logs.csv"):
    return csv_response(
        filename,
        ["id", "created_at", "action", "apar_id", "user_id", "inspection_id",
         "is_successful", "lat", "lng", "ip_address", "details"],
        (
            [log.id, log.created_at, log.action, log.apar_id, log.user_id, log.inspection_id,
             log.is_successful, log.lat, log.lng, log.ip_address, log.details]
            for log in logs
        ),
    )


@router.get("")
async def list_audit_logs(
    db: DbSession,
    tz: AppTimezone,
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    apar_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    is_successful: Optional[bool] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
):
    query = build_audit_query(tz, action, user_id, apar_id, start_date, end_date, is_successful)
    logs, total = await paginate(db, query, page, per_page)
    return {
        "items": [AuditLogResponse.model_validate(log) for log in logs],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


@router.get("/export")
async def export_audit_logs(
    db: DbSession,
    tz: AppTimezone,
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    apar_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    is_successful: Optional[bool] = None,
):
    """Download the filtered audit trail as CSV."""
    query = build_audit_query(tz, action, user_id, apar_id, start_date, end_date, is_successful)
    result = await db.execute(query.limit(EXPORT_LIMIT))
    logs = result.scalars().all()
    logger.info(f"Exporting {len(logs)} audit log rows")
    return audit_csv(logs)
