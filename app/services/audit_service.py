"""
Inspection audit trail.

Every QR scan and inspection attempt leaves an InspectionLog row with the
caller's coordinates, IP and a coarse device fingerprint. Rows are added to
the caller's session and committed with the surrounding unit of work.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inspection_log import InspectionLog

logger = logging.getLogger(__name__)

SCAN_QR = "scan_qr"
START_INSPECTION = "start_inspection"
VALIDATION_FAILED = "validation_failed"
SUBMIT_INSPECTION = "submit_inspection"

# Checked in order; first match wins
_BROWSERS = (
    ("Edg", "Edge"),
    ("OPR", "Opera"),
    ("Chrome", "Chrome"),
    ("Firefox", "Firefox"),
    ("Safari", "Safari"),
)
_PLATFORMS = (
    ("Android", "Android"),
    ("iPhone", "iOS"),
    ("iPad", "iOS"),
    ("Windows", "Windows"),
    ("Mac OS", "macOS"),
    ("Linux", "Linux"),
)


def get_client_ip(request) -> str:
    """Extract real client IP from request, respecting proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def parse_device_info(user_agent: Optional[str]) -> dict:
    """Best-effort browser/platform detection from a User-Agent header."""
    ua = user_agent or ""
    browser = next((name for token, name in _BROWSERS if token in ua), "Unknown")
    platform = next((name for token, name in _PLATFORMS if token in ua), "Unknown")
    return {
        "browser": browser,
        "platform": platform,
        "is_mobile": "Mobile" in ua or platform in ("Android", "iOS"),
    }


def record_inspection_log(
    db: AsyncSession,
    *,
    action: str,
    apar_id: int,
    request=None,
    user_id: Optional[int] = None,
    inspection_id: Optional[int] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    details: Optional[str] = None,
    is_successful: bool = True,
) -> InspectionLog:
    """Add an audit row to ``db``. The caller commits."""
    user_agent = request.headers.get("user-agent") if request is not None else None
    log = InspectionLog(
        apar_id=apar_id,
        user_id=user_id,
        inspection_id=inspection_id,
        action=action,
        lat=lat,
        lng=lng,
        ip_address=get_client_ip(request) if request is not None else None,
        user_agent=user_agent,
        device_info=parse_device_info(user_agent) if request is not None else None,
        details=details,
        is_successful=is_successful,
    )
    db.add(log)
    logger.info(
        f"Audit {action} apar={apar_id} user={user_id} ok={is_successful}",
        extra={"action": action, "apar_id": apar_id, "user_id": user_id},
    )
    return log
