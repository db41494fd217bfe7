"""Repair report schemas."""

from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.schemas.auth import UserSummary
from app.schemas.inspection import RepairApprovalDetail


class RepairReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    repair_approval_id: int
    reported_by: int
    repair_description: str
    before_photo_url: Optional[str] = None
    after_photo_url: Optional[str] = None
    repair_lat: Optional[float] = None
    repair_lng: Optional[float] = None
    repair_completed_at: datetime
    reporter: Optional[UserSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RepairReportDetail(RepairReportResponse):
    repair_approval: Optional[RepairApprovalDetail] = None


class RepairReportListResponse(BaseModel):
    items: list[RepairReportDetail]
    total: int
    page: int
    per_page: int


class RepairReportStats(BaseModel):
    total: int = 0
    this_month: int = 0
    this_year: int = 0
