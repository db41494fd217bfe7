"""APAR API - fire extinguisher registry.

Provides CRUD for APARs, QR lookups for the field app and the per-unit
inspection history.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import select, or_, delete
from typing import Optional
import logging
import secrets
import string

from app.api.deps import DbSession, CurrentUser, require_permission
from app.config import settings
from app.exceptions import NotFoundError, ConflictError
from app.models.apar import Apar
from app.models.inspection import Inspection
from app.models.inspection_schedule import InspectionSchedule
from app.schemas.apar import AparCreate, AparUpdate, AparResponse, AparListResponse
from app.schemas.inspection import InspectionResponse
from app.security.rbac import Permission
from app.services.audit_service import record_inspection_log, SCAN_QR
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter()

QR_PREFIX = "APAR-"
QR_ALPHABET = string.ascii_uppercase + string.digits
QR_LENGTH = 10


def generate_qr_code() -> str:
    """Random QR payload such as ``APAR-X8K2M9QZ1B``."""
    return QR_PREFIX + "".join(secrets.choice(QR_ALPHABET) for _ in range(QR_LENGTH))


async def _unique_qr_code(db) -> str:
    while True:
        code = generate_qr_code()
        exists = await db.execute(select(Apar.id).where(Apar.qr_code == code))
        if exists.scalar_one_or_none() is None:
            return code


async def get_apar_or_404(db, apar_id: int) -> Apar:
    result = await db.execute(select(Apar).where(Apar.id == apar_id))
    apar = result.scalar_one_or_none()
    if not apar:
        raise NotFoundError("APAR", apar_id)
    return apar


async def _ensure_serial_free(db, serial_number: str, exclude_id: Optional[int] = None) -> None:
    query = select(Apar.id).where(Apar.serial_number == serial_number)
    if exclude_id is not None:
        query = query.where(Apar.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none() is not None:
        raise ConflictError(f"Serial number {serial_number} is already registered")


@router.get("", response_model=AparListResponse)
async def list_apars(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    location_type: Optional[str] = None,
    search: Optional[str] = None,
):
    """List APARs with optional filtering."""
    query = select(Apar)

    if status:
        query = query.where(Apar.status == status)
    if location_type:
        query = query.where(Apar.location_type == location_type)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Apar.serial_number.ilike(pattern), Apar.location_name.ilike(pattern)))

    query = query.order_by(Apar.serial_number)
    apars, total = await paginate(db, query, page, per_page)

    return AparListResponse(
        items=[AparResponse.model_validate(a) for a in apars],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post(
    "",
    response_model=AparResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Permission.MANAGE_APARS))],
)
async def create_apar(data: AparCreate, db: DbSession, current_user: CurrentUser):
    """Register an APAR and assign it a fresh QR code."""
    await _ensure_serial_free(db, data.serial_number)

    values = data.model_dump()
    if values.get("valid_radius") is None:
        values["valid_radius"] = settings.DEFAULT_VALID_RADIUS

    apar = Apar(**values, qr_code=await _unique_qr_code(db))
    db.add(apar)
    await db.commit()
    await db.refresh(apar)

    logger.info(f"APAR {apar.serial_number} registered by user {current_user.id}")
    return apar


@router.get("/qr/{qr_code}", response_model=AparResponse)
async def get_apar_by_qr(qr_code: str, request: Request, db: DbSession, current_user: CurrentUser):
    """Resolve a scanned QR code. Every successful scan is audited."""
    result = await db.execute(select(Apar).where(Apar.qr_code == qr_code))
    apar = result.scalar_one_or_none()
    if not apar:
        raise NotFoundError("APAR", qr_code)

    record_inspection_log(
        db,
        action=SCAN_QR,
        apar_id=apar.id,
        request=request,
        user_id=current_user.id,
        details=f"Scanned {qr_code}",
    )
    await db.commit()
    return apar


@router.get("/{apar_id}", response_model=AparResponse)
async def get_apar(apar_id: int, db: DbSession, current_user: CurrentUser):
    return await get_apar_or_404(db, apar_id)


@router.put(
    "/{apar_id}",
    response_model=AparResponse,
    dependencies=[Depends(require_permission(Permission.MANAGE_APARS))],
)
async def update_apar(apar_id: int, data: AparUpdate, db: DbSession):
    apar = await get_apar_or_404(db, apar_id)
    update_data = data.model_dump(exclude_unset=True)

    if "serial_number" in update_data and update_data["serial_number"] != apar.serial_number:
        await _ensure_serial_free(db, update_data["serial_number"], exclude_id=apar.id)

    for field, value in update_data.items():
        setattr(apar, field, value)

    await db.commit()
    await db.refresh(apar)
    return apar


@router.delete(
    "/{apar_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission(Permission.DELETE_APARS))],
)
async def delete_apar(apar_id: int, db: DbSession):
    """Delete an APAR that has never been inspected, along with its schedules."""
    apar = await get_apar_or_404(db, apar_id)

    inspected = await db.execute(select(Inspection.id).where(Inspection.apar_id == apar_id).limit(1))
    if inspected.scalar_one_or_none() is not None:
        raise ConflictError("APAR has inspection history; set its status to inactive instead")

    await db.execute(delete(InspectionSchedule).where(InspectionSchedule.apar_id == apar_id))
    await db.delete(apar)
    await db.commit()
    logger.info(f"APAR {apar_id} deleted")


@router.get("/{apar_id}/inspections")
async def list_apar_inspections(
    apar_id: int,
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """Inspection history of one APAR, newest first."""
    await get_apar_or_404(db, apar_id)

    query = (
        select(Inspection)
        .where(Inspection.apar_id == apar_id)
        .order_by(Inspection.created_at.desc(), Inspection.id.desc())
    )
    inspections, total = await paginate(db, query, page, per_page)
    return {
        "items": [InspectionResponse.model_validate(i) for i in inspections],
        "total": total,
        "page": page,
        "per_page": per_page,
    }
