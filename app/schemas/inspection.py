"""Inspection and repair approval schemas."""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal
from datetime import datetime

from app.schemas.apar import AparSummary
from app.schemas.auth import UserSummary


Condition = Literal["good", "needs_refill", "expired", "damaged"]
RepairStatus = Literal["pending", "approved", "rejected", "completed"]


class InspectionUpdate(BaseModel):
    condition: Optional[Condition] = None
    notes: Optional[str] = None


class RepairApprovalSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    admin_notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class InspectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    apar_id: int
    user_id: int
    schedule_id: Optional[int] = None
    condition: str
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    selfie_url: Optional[str] = None
    inspection_lat: Optional[float] = None
    inspection_lng: Optional[float] = None
    location_valid: bool
    status: str
    requires_repair: bool
    repair_status: str
    repair_notes: Optional[str] = None
    apar: Optional[AparSummary] = None
    user: Optional[UserSummary] = None
    repair_approval: Optional[RepairApprovalSummary] = None
    created_at: Optional[datetime] = None


class InspectionCreatedResponse(BaseModel):
    message: str
    inspection: InspectionResponse


class InspectionRejectedResponse(BaseModel):
    """Body of a 422 returned when the eligibility check refuses a submission."""

    valid: bool = False
    reason: str
    message: str


class InspectionListResponse(BaseModel):
    items: list[InspectionResponse]
    total: int
    page: int
    per_page: int


# ---- Repair approvals ----

class RepairApprovalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    inspection_id: int
    approved_by: Optional[int] = None
    status: str
    admin_notes: Optional[str] = None
    repair_notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    approver: Optional[UserSummary] = None
    created_at: Optional[datetime] = None


class RepairApprovalDetail(RepairApprovalResponse):
    inspection: Optional[InspectionResponse] = None


class RepairApprovalListResponse(BaseModel):
    items: list[RepairApprovalDetail]
    total: int
    page: int
    per_page: int


class RepairDecisionRequest(BaseModel):
    admin_notes: Optional[str] = None


class RepairRejectRequest(BaseModel):
    admin_notes: str = Field(..., min_length=1)


class RepairCompleteRequest(BaseModel):
    repair_notes: Optional[str] = None


class RepairStatsResponse(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    completed: int = 0
    total: int = 0
