"""Inspections API.

Recording an inspection runs the eligibility rules against the APAR and its
schedules at the injected clock time. Accepted submissions persist the
inspection, its evidence photos, audit rows, an optional repair approval and
the matched schedule's completion in a single commit.
"""

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from typing import Optional, Literal
from datetime import date, datetime, time
import logging

from app.api.deps import DbSession, CurrentUser, Now, AppTimezone, require_permission
from app.exceptions import NotFoundError, ForbiddenError
from app.models.apar import Apar
from app.models.inspection import Inspection, RepairApproval, REPAIR_CONDITIONS
from app.models.inspection_schedule import InspectionSchedule
from app.schemas.inspection import (
    InspectionUpdate,
    InspectionResponse,
    InspectionCreatedResponse,
    InspectionRejectedResponse,
    InspectionListResponse,
)
from app.security.rbac import Permission, has_permission
from app.services import audit_service, eligibility, file_storage, notification_service
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter()

Condition = Literal["good", "needs_refill", "expired", "damaged"]

# APAR status after an inspection reporting each defect
CONDITION_STATUS = {
    "needs_refill": "refill",
    "expired": "expired",
    "damaged": "damaged",
}


async def load_inspection(db, inspection_id: int) -> Inspection:
    result = await db.execute(
        select(Inspection)
        .where(Inspection.id == inspection_id)
        .execution_options(populate_existing=True)
    )
    inspection = result.scalar_one_or_none()
    if not inspection:
        raise NotFoundError("Inspection", inspection_id)
    return inspection


def _day_bounds(start_date: Optional[date], end_date: Optional[date], tz):
    start = datetime.combine(start_date, time.min, tzinfo=tz) if start_date else None
    end = datetime.combine(end_date, time.max, tzinfo=tz) if end_date else None
    return start, end


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=InspectionCreatedResponse,
    responses={422: {"model": InspectionRejectedResponse}},
    dependencies=[Depends(require_permission(Permission.RECORD_INSPECTION))],
)
async def create_inspection(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    now: Now,
    tz: AppTimezone,
    apar_id: int = Form(...),
    apar_qr_code: str = Form(..., alias="apar_qrCode"),
    condition: Condition = Form(...),
    notes: Optional[str] = Form(None),
    lat: Optional[float] = Form(None, ge=-90, le=90),
    lng: Optional[float] = Form(None, ge=-180, le=180),
    photo: UploadFile = File(...),
    selfie: UploadFile = File(...),
):
    """Record an inspection if the caller is allowed to inspect this APAR right now."""
    apar = (await db.execute(select(Apar).where(Apar.id == apar_id))).scalar_one_or_none()
    if not apar:
        raise NotFoundError("APAR", apar_id)

    photo_data = await file_storage.read_image(photo, "photo")
    selfie_data = await file_storage.read_image(selfie, "selfie")

    audit_service.record_inspection_log(
        db,
        action=audit_service.START_INSPECTION,
        apar_id=apar.id,
        request=request,
        user_id=current_user.id,
        lat=lat,
        lng=lng,
    )

    schedules = (
        await db.execute(select(InspectionSchedule).where(InspectionSchedule.apar_id == apar.id))
    ).scalars().all()

    submission = eligibility.Submission(
        asset_id=apar_id,
        qr_code=apar_qr_code,
        latitude=lat,
        longitude=lng,
        condition=condition,
        notes=notes,
        has_photo=bool(photo_data),
        has_selfie=bool(selfie_data),
    )
    asset = eligibility.AssetSnapshot.from_model(apar)
    decision = eligibility.evaluate(
        submission,
        asset,
        [eligibility.ScheduleSnapshot.from_model(s) for s in schedules],
        eligibility.UserSnapshot.from_model(current_user),
        now,
        tz=tz,
    )

    if not decision.valid:
        audit_service.record_inspection_log(
            db,
            action=audit_service.VALIDATION_FAILED,
            apar_id=apar.id,
            request=request,
            user_id=current_user.id,
            lat=lat,
            lng=lng,
            details=decision.reason.value,
            is_successful=False,
        )
        await db.commit()
        logger.info(
            f"Inspection rejected for user {current_user.id} on APAR {apar.id}: {decision.reason.value}"
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=InspectionRejectedResponse(
                reason=decision.reason.value, message=decision.message
            ).model_dump(),
        )

    if submission.has_location:
        location_valid = eligibility.is_within_radius(asset, lat, lng)
    else:
        location_valid = not asset.is_geofenced

    photo_url = file_storage.save_image(photo_data, photo.content_type, "inspections/photos")
    selfie_url = file_storage.save_image(selfie_data, selfie.content_type, "inspections/selfies")

    try:
        requires_repair = condition in REPAIR_CONDITIONS
        inspection = Inspection(
            apar_id=apar.id,
            user_id=current_user.id,
            schedule_id=decision.schedule_id,
            condition=condition,
            notes=notes,
            photo_url=photo_url,
            selfie_url=selfie_url,
            inspection_lat=lat,
            inspection_lng=lng,
            location_valid=location_valid,
            status="completed",
            requires_repair=requires_repair,
            repair_status="pending_approval" if requires_repair else "none",
        )
        db.add(inspection)
        await db.flush()

        if requires_repair:
            db.add(RepairApproval(inspection_id=inspection.id, status="pending"))
            apar.status = CONDITION_STATUS[condition]
            await notification_service.notify_repair_needed(db, inspection, apar)

        if decision.schedule_id is not None:
            matched = next(s for s in schedules if s.id == decision.schedule_id)
            matched.is_completed = True

        audit_service.record_inspection_log(
            db,
            action=audit_service.SUBMIT_INSPECTION,
            apar_id=apar.id,
            request=request,
            user_id=current_user.id,
            inspection_id=inspection.id,
            lat=lat,
            lng=lng,
            details=f"condition={condition}",
        )
        await db.commit()
    except Exception:
        await db.rollback()
        file_storage.delete_image(photo_url)
        file_storage.delete_image(selfie_url)
        logger.exception(f"Failed to record inspection for APAR {apar.id}")
        raise

    inspection = await load_inspection(db, inspection.id)
    logger.info(
        f"Inspection {inspection.id} recorded by user {current_user.id} on APAR {apar.id} "
        f"(schedule={decision.schedule_id})"
    )
    return InspectionCreatedResponse(
        message="Inspection recorded successfully",
        inspection=InspectionResponse.model_validate(inspection),
    )


@router.get(
    "",
    response_model=InspectionListResponse,
    dependencies=[Depends(require_permission(Permission.VIEW_ALL_INSPECTIONS))],
)
async def list_inspections(
    db: DbSession,
    tz: AppTimezone,
    apar_id: Optional[int] = None,
    user_id: Optional[int] = None,
    condition: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    query = select(Inspection)
    if apar_id is not None:
        query = query.where(Inspection.apar_id == apar_id)
    if user_id is not None:
        query = query.where(Inspection.user_id == user_id)
    if condition:
        query = query.where(Inspection.condition == condition)

    start, end = _day_bounds(start_date, end_date, tz)
    if start:
        query = query.where(Inspection.created_at >= start)
    if end:
        query = query.where(Inspection.created_at <= end)

    query = query.order_by(Inspection.created_at.desc(), Inspection.id.desc())
    inspections, total = await paginate(db, query, page, per_page)
    return InspectionListResponse(
        items=[InspectionResponse.model_validate(i) for i in inspections],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/my-inspections", response_model=InspectionListResponse)
async def my_inspections(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """Inspections recorded by the caller."""
    query = (
        select(Inspection)
        .where(Inspection.user_id == current_user.id)
        .order_by(Inspection.created_at.desc(), Inspection.id.desc())
    )
    inspections, total = await paginate(db, query, page, per_page)
    return InspectionListResponse(
        items=[InspectionResponse.model_validate(i) for i in inspections],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{inspection_id}", response_model=InspectionResponse)
async def get_inspection(inspection_id: int, db: DbSession, current_user: CurrentUser):
    inspection = await load_inspection(db, inspection_id)
    if (
        inspection.user_id != current_user.id
        and not has_permission(current_user, Permission.VIEW_ALL_INSPECTIONS)
    ):
        raise ForbiddenError("You can only view your own inspections")
    return inspection


@router.put(
    "/{inspection_id}",
    response_model=InspectionResponse,
    dependencies=[Depends(require_permission(Permission.EDIT_INSPECTIONS))],
)
async def update_inspection(inspection_id: int, data: InspectionUpdate, db: DbSession):
    """Correct the condition or notes of an inspection.

    Moving to a defect condition opens a repair approval if none exists;
    moving back to ``good`` withdraws a still-pending one. While the repair
    is still open the APAR status follows the corrected condition.
    """
    inspection = await load_inspection(db, inspection_id)
    update_data = data.model_dump(exclude_unset=True)

    if "notes" in update_data:
        inspection.notes = update_data["notes"]

    new_condition = update_data.get("condition")
    if new_condition and new_condition != inspection.condition:
        old_condition = inspection.condition
        inspection.condition = new_condition
        inspection.requires_repair = new_condition in REPAIR_CONDITIONS
        approval = inspection.repair_approval
        apar = inspection.apar

        if inspection.requires_repair and approval is None:
            db.add(RepairApproval(inspection_id=inspection.id, status="pending"))
            inspection.repair_status = "pending_approval"
            apar.status = CONDITION_STATUS[new_condition]
            await notification_service.notify_repair_needed(db, inspection, apar)
        elif approval is not None and approval.status == "pending":
            if inspection.requires_repair:
                apar.status = CONDITION_STATUS[new_condition]
            else:
                inspection.repair_approval = None
                inspection.repair_status = "none"
                if apar.status == CONDITION_STATUS.get(old_condition):
                    apar.status = "active"

    await db.commit()
    return await load_inspection(db, inspection_id)


@router.delete(
    "/{inspection_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission(Permission.DELETE_INSPECTIONS))],
)
async def delete_inspection(inspection_id: int, db: DbSession):
    """Delete an inspection together with its stored photos and any repair report photos."""
    inspection = await load_inspection(db, inspection_id)
    photos = [inspection.photo_url, inspection.selfie_url]
    report = inspection.repair_approval.repair_report if inspection.repair_approval else None
    if report is not None:
        photos += [report.before_photo_url, report.after_photo_url]

    await db.delete(inspection)
    await db.commit()

    for path in photos:
        file_storage.delete_image(path)
    logger.info(f"Inspection {inspection_id} deleted")
