from app.schemas.apar import (
    AparCreate,
    AparUpdate,
    AparResponse,
    AparListResponse,
)
from app.schemas.schedule import (
    ScheduleCreate,
    ScheduleUpdate,
    ScheduleResponse,
    ScheduleListResponse,
)
from app.schemas.inspection import (
    InspectionResponse,
    InspectionListResponse,
    RepairApprovalResponse,
    RepairApprovalListResponse,
)
from app.schemas.repair_report import (
    RepairReportResponse,
    RepairReportListResponse,
)
from app.schemas.auth import (
    UserCreate,
    UserResponse,
    Token,
    TokenData,
    LoginRequest,
)

__all__ = [
    "AparCreate",
    "AparUpdate",
    "AparResponse",
    "AparListResponse",
    "ScheduleCreate",
    "ScheduleUpdate",
    "ScheduleResponse",
    "ScheduleListResponse",
    "InspectionResponse",
    "InspectionListResponse",
    "RepairApprovalResponse",
    "RepairApprovalListResponse",
    "RepairReportResponse",
    "RepairReportListResponse",
    "UserCreate",
    "UserResponse",
    "Token",
    "TokenData",
    "LoginRequest",
]
