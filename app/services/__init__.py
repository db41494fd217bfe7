# Services module
from app.services import audit_service, eligibility, file_storage, notification_service

__all__ = [
    "audit_service",
    "eligibility",
    "file_storage",
    "notification_service",
]
