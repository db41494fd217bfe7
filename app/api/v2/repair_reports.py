"""Repair reports API.

A report records the field work on an approved repair: a description,
before/after photos and where the repair was done. Filing a report completes
the approval. Technicians see and edit their own reports; holders of
``approve_repairs`` see and edit all of them and are the only ones who can
delete.
"""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy import select, func
from typing import Optional
from datetime import datetime
import logging

from app.api.deps import DbSession, CurrentUser, Now, AppTimezone, require_permission
from app.exceptions import NotFoundError, ForbiddenError, ConflictError, BusinessRuleError
from app.models.inspection import RepairApproval
from app.models.repair_report import RepairReport
from app.schemas.repair_report import RepairReportDetail, RepairReportListResponse, RepairReportStats
from app.security.rbac import Permission, has_permission
from app.services import file_storage
from app.api.v2.repair_approvals import load_approval, mark_completed
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_permission(Permission.REPORT_REPAIRS))])

BEFORE_FOLDER = "repairs/before"
AFTER_FOLDER = "repairs/after"


async def load_report(db, report_id: int) -> RepairReport:
    result = await db.execute(
        select(RepairReport)
        .where(RepairReport.id == report_id)
        .execution_options(populate_existing=True)
    )
    report = result.scalar_one_or_none()
    if not report:
        raise NotFoundError("Repair report", report_id)
    return report


def _ensure_can_access(report: RepairReport, user) -> None:
    if report.reported_by != user.id and not has_permission(user, Permission.APPROVE_REPAIRS):
        raise ForbiddenError("You can only access your own repair reports")


def _aware(value: datetime, tz) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=tz)


@router.get("", response_model=RepairReportListResponse)
async def list_repair_reports(
    db: DbSession,
    current_user: CurrentUser,
    status: Optional[str] = Query(None, description="Filter by repair approval status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """Newest reports first."""
    query = select(RepairReport)
    if status:
        query = query.join(RepairApproval, RepairApproval.id == RepairReport.repair_approval_id).where(
            RepairApproval.status == status
        )
    if not has_permission(current_user, Permission.APPROVE_REPAIRS):
        query = query.where(RepairReport.reported_by == current_user.id)
    query = query.order_by(RepairReport.created_at.desc(), RepairReport.id.desc())

    reports, total = await paginate(db, query, page, per_page)
    return RepairReportListResponse(
        items=[RepairReportDetail.model_validate(r) for r in reports],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/stats", response_model=RepairReportStats)
async def repair_report_stats(db: DbSession, now: Now, tz: AppTimezone):
    local = now.astimezone(tz)
    year_start = local.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    month_start = year_start.replace(month=local.month)

    async def count_since(since: Optional[datetime]) -> int:
        query = select(func.count(RepairReport.id))
        if since is not None:
            query = query.where(RepairReport.created_at >= since)
        return (await db.execute(query)).scalar() or 0

    return RepairReportStats(
        total=await count_since(None),
        this_month=await count_since(month_start),
        this_year=await count_since(year_start),
    )


@router.get("/{report_id}", response_model=RepairReportDetail)
async def get_repair_report(report_id: int, db: DbSession, current_user: CurrentUser):
    report = await load_report(db, report_id)
    _ensure_can_access(report, current_user)
    return report


@router.post("", response_model=RepairReportDetail, status_code=status.HTTP_201_CREATED)
async def create_repair_report(
    db: DbSession,
    current_user: CurrentUser,
    now: Now,
    tz: AppTimezone,
    repair_approval_id: int = Form(...),
    repair_description: str = Form(..., min_length=1),
    repair_completed_at: datetime = Form(...),
    repair_lat: Optional[float] = Form(None, ge=-90, le=90),
    repair_lng: Optional[float] = Form(None, ge=-180, le=180),
    before_photo: UploadFile = File(...),
    after_photo: UploadFile = File(...),
):
    """File the report for an approved repair and mark the repair completed."""
    approval = await load_approval(db, repair_approval_id)
    if approval.repair_report is not None:
        raise ConflictError(f"Repair approval {approval.id} already has a report")
    if approval.status != "approved":
        raise BusinessRuleError(f"Only approved repairs can be reported (status is {approval.status})")

    before_data = await file_storage.read_image(before_photo, "before_photo")
    after_data = await file_storage.read_image(after_photo, "after_photo")
    before_url = file_storage.save_image(before_data, before_photo.content_type, BEFORE_FOLDER)
    after_url = file_storage.save_image(after_data, after_photo.content_type, AFTER_FOLDER)

    try:
        report = RepairReport(
            repair_approval_id=approval.id,
            reported_by=current_user.id,
            repair_description=repair_description,
            before_photo_url=before_url,
            after_photo_url=after_url,
            repair_lat=repair_lat,
            repair_lng=repair_lng,
            repair_completed_at=_aware(repair_completed_at, tz),
        )
        db.add(report)
        mark_completed(db, approval, now, repair_description)
        await db.commit()
    except Exception:
        await db.rollback()
        file_storage.delete_image(before_url)
        file_storage.delete_image(after_url)
        logger.exception(f"Failed to file repair report for approval {approval.id}")
        raise

    logger.info(f"Repair report {report.id} filed by user {current_user.id} for approval {approval.id}")
    return await load_report(db, report.id)


@router.put("/{report_id}", response_model=RepairReportDetail)
async def update_repair_report(
    report_id: int,
    db: DbSession,
    current_user: CurrentUser,
    tz: AppTimezone,
    repair_description: Optional[str] = Form(None, min_length=1),
    repair_completed_at: Optional[datetime] = Form(None),
    repair_lat: Optional[float] = Form(None, ge=-90, le=90),
    repair_lng: Optional[float] = Form(None, ge=-180, le=180),
    before_photo: Optional[UploadFile] = File(None),
    after_photo: Optional[UploadFile] = File(None),
):
    """Partial update. A replaced photo's old file is removed once the change is saved."""
    report = await load_report(db, report_id)
    _ensure_can_access(report, current_user)

    if repair_description is not None:
        report.repair_description = repair_description
        report.repair_approval.inspection.repair_notes = repair_description
    if repair_completed_at is not None:
        report.repair_completed_at = _aware(repair_completed_at, tz)
    if repair_lat is not None:
        report.repair_lat = repair_lat
    if repair_lng is not None:
        report.repair_lng = repair_lng

    uploads = []
    for upload, field, folder in (
        (before_photo, "before_photo", BEFORE_FOLDER),
        (after_photo, "after_photo", AFTER_FOLDER),
    ):
        if upload is not None:
            uploads.append((field, folder, upload.content_type, await file_storage.read_image(upload, field)))

    replaced = []
    for field, folder, content_type, data in uploads:
        column = f"{field}_url"
        replaced.append(getattr(report, column))
        setattr(report, column, file_storage.save_image(data, content_type, folder))

    await db.commit()
    for old_path in replaced:
        file_storage.delete_image(old_path)

    return await load_report(db, report_id)


@router.delete(
    "/{report_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission(Permission.APPROVE_REPAIRS))],
)
async def delete_repair_report(report_id: int, db: DbSession):
    """Delete a report and its photos. The approval stays completed."""
    report = await load_report(db, report_id)
    photos = (report.before_photo_url, report.after_photo_url)

    await db.delete(report)
    await db.commit()

    for path in photos:
        file_storage.delete_image(path)
    logger.info(f"Repair report {report_id} deleted")
