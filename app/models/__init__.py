from app.models.user import User
from app.models.apar import Apar
from app.models.inspection_schedule import InspectionSchedule
from app.models.inspection import Inspection, RepairApproval
from app.models.repair_report import RepairReport
from app.models.notification import Notification
from app.models.inspection_log import InspectionLog

__all__ = [
    "User",
    "Apar",
    "InspectionSchedule",
    "Inspection",
    "RepairApproval",
    "RepairReport",
    "Notification",
    "InspectionLog",
]
