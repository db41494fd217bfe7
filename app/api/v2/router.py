from fastapi import APIRouter
from app.api.v2 import (
    auth,
    users,
    apars,
    schedules,
    inspections,
    repair_approvals,
    repair_reports,
    notifications,
    dashboard,
    reports,
    audit_logs,
)

api_router = APIRouter()

# Include all v2 routers
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(apars.router, prefix="/apar", tags=["apar"])
api_router.include_router(schedules.router, prefix="/schedules", tags=["schedules"])
api_router.include_router(inspections.router, prefix="/inspections", tags=["inspections"])
api_router.include_router(repair_approvals.router, prefix="/repair-approvals", tags=["repair-approvals"])
api_router.include_router(repair_reports.router, prefix="/repair-reports", tags=["repair-reports"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])
