"""Repair approvals API (supervisor/admin).

pending -> approved -> completed, or pending -> rejected. Each transition is
mirrored on the inspection's ``repair_status`` and reported to the technician
who recorded the inspection.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from typing import Optional
import logging

from app.api.deps import DbSession, CurrentUser, Now, require_permission
from app.exceptions import NotFoundError, BusinessRuleError
from app.models.inspection import Inspection, RepairApproval
from app.schemas.inspection import (
    RepairApprovalDetail,
    RepairApprovalListResponse,
    RepairDecisionRequest,
    RepairRejectRequest,
    RepairCompleteRequest,
    RepairStatsResponse,
)
from app.security.rbac import Permission
from app.services import notification_service
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_permission(Permission.APPROVE_REPAIRS))])

# Inspection.repair_status for each approval status
INSPECTION_REPAIR_STATUS = {
    "pending": "pending_approval",
    "approved": "approved",
    "rejected": "rejected",
    "completed": "completed",
}


async def load_approval(db, approval_id: int) -> RepairApproval:
    result = await db.execute(
        select(RepairApproval)
        .where(RepairApproval.id == approval_id)
        .execution_options(populate_existing=True)
    )
    approval = result.scalar_one_or_none()
    if not approval:
        raise NotFoundError("Repair approval", approval_id)
    return approval


def set_status(db, approval: RepairApproval, new_status: str) -> None:
    approval.status = new_status
    inspection = approval.inspection
    inspection.repair_status = INSPECTION_REPAIR_STATUS[new_status]
    notification_service.notify_repair_status(db, approval, inspection)


def mark_completed(db, approval: RepairApproval, now, repair_notes: Optional[str] = None) -> None:
    """Close an approved repair and return a refill/damaged APAR to service. Does not commit."""
    if approval.status != "approved":
        raise BusinessRuleError(f"Only approved repairs can be completed (status is {approval.status})")

    approval.completed_at = now
    if repair_notes:
        approval.repair_notes = repair_notes
        approval.inspection.repair_notes = repair_notes

    apar = approval.inspection.apar
    if apar is not None and apar.status in ("refill", "damaged"):
        apar.status = "active"
    set_status(db, approval, "completed")


async def _transition(db, approval: RepairApproval, new_status: str) -> RepairApprovalDetail:
    set_status(db, approval, new_status)
    await db.commit()

    logger.info(f"Repair approval {approval.id} -> {new_status}")
    approval = await load_approval(db, approval.id)
    return RepairApprovalDetail.model_validate(approval)


@router.get("", response_model=RepairApprovalListResponse)
async def list_repair_approvals(
    db: DbSession,
    status: Optional[str] = None,
    apar_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    query = select(RepairApproval)
    if status:
        query = query.where(RepairApproval.status == status)
    if apar_id is not None:
        query = query.join(Inspection, Inspection.id == RepairApproval.inspection_id).where(
            Inspection.apar_id == apar_id
        )
    query = query.order_by(RepairApproval.created_at.desc(), RepairApproval.id.desc())

    approvals, total = await paginate(db, query, page, per_page)
    return RepairApprovalListResponse(
        items=[RepairApprovalDetail.model_validate(a) for a in approvals],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/pending", response_model=list[RepairApprovalDetail])
async def list_pending_approvals(db: DbSession):
    """Pending approvals, oldest first."""
    result = await db.execute(
        select(RepairApproval)
        .where(RepairApproval.status == "pending")
        .order_by(RepairApproval.created_at, RepairApproval.id)
    )
    return [RepairApprovalDetail.model_validate(a) for a in result.scalars().all()]


@router.get("/stats", response_model=RepairStatsResponse)
async def repair_approval_stats(db: DbSession):
    result = await db.execute(
        select(RepairApproval.status, func.count(RepairApproval.id)).group_by(RepairApproval.status)
    )
    counts = {row[0]: row[1] for row in result.all()}
    return RepairStatsResponse(
        pending=counts.get("pending", 0),
        approved=counts.get("approved", 0),
        rejected=counts.get("rejected", 0),
        completed=counts.get("completed", 0),
        total=sum(counts.values()),
    )


@router.get("/{approval_id}", response_model=RepairApprovalDetail)
async def get_repair_approval(approval_id: int, db: DbSession):
    return await load_approval(db, approval_id)


@router.post("/{approval_id}/approve", response_model=RepairApprovalDetail)
async def approve_repair(
    approval_id: int,
    db: DbSession,
    current_user: CurrentUser,
    now: Now,
    data: Optional[RepairDecisionRequest] = None,
):
    approval = await load_approval(db, approval_id)
    if approval.status != "pending":
        raise BusinessRuleError(f"Only pending approvals can be approved (status is {approval.status})")

    approval.approved_by = current_user.id
    approval.approved_at = now
    if data and data.admin_notes:
        approval.admin_notes = data.admin_notes
    return await _transition(db, approval, "approved")


@router.post("/{approval_id}/reject", response_model=RepairApprovalDetail)
async def reject_repair(
    approval_id: int,
    data: RepairRejectRequest,
    db: DbSession,
    current_user: CurrentUser,
    now: Now,
):
    approval = await load_approval(db, approval_id)
    if approval.status != "pending":
        raise BusinessRuleError(f"Only pending approvals can be rejected (status is {approval.status})")

    approval.approved_by = current_user.id
    approval.approved_at = now
    approval.admin_notes = data.admin_notes
    return await _transition(db, approval, "rejected")


@router.post("/{approval_id}/mark-completed", response_model=RepairApprovalDetail)
async def complete_repair(
    approval_id: int,
    db: DbSession,
    now: Now,
    data: Optional[RepairCompleteRequest] = None,
):
    """Close an approved repair and return the APAR to service."""
    approval = await load_approval(db, approval_id)
    mark_completed(db, approval, now, data.repair_notes if data else None)
    await db.commit()

    logger.info(f"Repair approval {approval.id} -> completed")
    approval = await load_approval(db, approval.id)
    return RepairApprovalDetail.model_validate(approval)
