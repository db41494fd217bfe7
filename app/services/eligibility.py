"""Inspection eligibility rules.

Decides whether a user may record an inspection against an APAR at a given
instant, and which schedule the new inspection should be linked to.

Everything here is a pure function of its inputs: callers snapshot the APAR,
its schedules and the submitting user, and pass the evaluation time in
explicitly. Rejections are returned as values, never raised.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from app.utils.geo import haversine_meters

OVERRIDE_ROLES = frozenset({"supervisor", "admin"})


class RejectionReason(str, Enum):
    ASSET_MISMATCH = "asset_mismatch"
    OUTSIDE_SCHEDULE_WINDOW = "outside_schedule_window"
    UNAUTHORIZED_LOCATION = "unauthorized_location"
    INACTIVE_ASSET = "inactive_asset"


REJECTION_MESSAGES = {
    RejectionReason.ASSET_MISMATCH: "The scanned QR code does not belong to this APAR",
    RejectionReason.OUTSIDE_SCHEDULE_WINDOW: "Inspections can only be recorded during a scheduled window",
    RejectionReason.UNAUTHORIZED_LOCATION: "You are outside the valid radius of this APAR",
    RejectionReason.INACTIVE_ASSET: "This APAR is not active",
}


@dataclass(frozen=True)
class Submission:
    asset_id: int
    qr_code: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    condition: Optional[str] = None
    notes: Optional[str] = None
    has_photo: bool = False
    has_selfie: bool = False

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class AssetSnapshot:
    id: int
    qr_code: str
    location_type: str
    valid_radius: int
    status: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @classmethod
    def from_model(cls, apar) -> "AssetSnapshot":
        return cls(
            id=apar.id,
            qr_code=apar.qr_code,
            location_type=apar.location_type,
            valid_radius=apar.valid_radius,
            status=apar.status,
            latitude=apar.latitude,
            longitude=apar.longitude,
        )

    @property
    def is_geofenced(self) -> bool:
        return (
            self.location_type == "fixed"
            and self.latitude is not None
            and self.longitude is not None
        )


@dataclass(frozen=True)
class ScheduleSnapshot:
    id: int
    apar_id: int
    scheduled_date: date
    start_time: time
    end_time: time
    assigned_user_id: Optional[int] = None
    is_active: bool = True
    is_completed: bool = False

    @classmethod
    def from_model(cls, schedule) -> "ScheduleSnapshot":
        return cls(
            id=schedule.id,
            apar_id=schedule.apar_id,
            scheduled_date=schedule.scheduled_date,
            start_time=schedule.start_time,
            end_time=schedule.end_time,
            assigned_user_id=schedule.assigned_user_id,
            is_active=bool(schedule.is_active),
            is_completed=bool(schedule.is_completed),
        )


@dataclass(frozen=True)
class UserSnapshot:
    id: int
    role: str
    is_active: bool = True

    @classmethod
    def from_model(cls, user) -> "UserSnapshot":
        return cls(id=user.id, role=user.role, is_active=bool(user.is_active))


@dataclass(frozen=True)
class Accepted:
    schedule_id: Optional[int] = None

    valid = True


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason

    valid = False

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self.reason]


Decision = Union[Accepted, Rejected]
UsabilityPredicate = Callable[[ScheduleSnapshot, UserSnapshot], bool]


def assigned_or_open(schedule: ScheduleSnapshot, user: UserSnapshot) -> bool:
    """A schedule is usable by its assignee, or by anyone when unassigned."""
    return schedule.assigned_user_id is None or schedule.assigned_user_id == user.id


def schedule_window(
    scheduled_date: date, start_time: time, end_time: time, tz: tzinfo = timezone.utc
) -> tuple[datetime, datetime]:
    """Aware ``(start, end)`` bounds of a schedule window in ``tz``.

    An end time at or before the start time means the window runs past midnight.
    """
    start = datetime.combine(scheduled_date, start_time, tzinfo=tz)
    end = datetime.combine(scheduled_date, end_time, tzinfo=tz)
    if end <= start:
        end += timedelta(days=1)
    return start, end


def find_current_schedule(
    schedules: Iterable[ScheduleSnapshot], now: datetime, tz: tzinfo = timezone.utc
) -> Optional[ScheduleSnapshot]:
    """The schedule whose window contains ``now``; earliest start, then lowest id, wins."""
    current = []
    for schedule in schedules:
        start, end = schedule_window(schedule.scheduled_date, schedule.start_time, schedule.end_time, tz)
        if start <= now <= end:
            current.append((start, schedule.id, schedule))
    if not current:
        return None
    return min(current, key=lambda item: (item[0], item[1]))[2]


def is_within_radius(asset: AssetSnapshot, latitude: float, longitude: float) -> bool:
    if not asset.is_geofenced:
        return True
    distance = haversine_meters(asset.latitude, asset.longitude, latitude, longitude)
    return distance <= asset.valid_radius


def can_override(user: UserSnapshot) -> bool:
    return user.role in OVERRIDE_ROLES


def evaluate(
    submission: Submission,
    asset: AssetSnapshot,
    schedules: Iterable[ScheduleSnapshot],
    user: UserSnapshot,
    now: datetime,
    *,
    is_usable: UsabilityPredicate = assigned_or_open,
    tz: tzinfo = timezone.utc,
) -> Decision:
    """Decide whether ``user`` may record ``submission`` against ``asset`` at ``now``.

    Teknisi must be inside a usable schedule window (and, for geofenced APARs,
    inside the valid radius). Supervisors and admins bypass both checks and are
    linked to the current window only when one happens to exist.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    if not (submission.has_photo and submission.has_selfie):
        raise ValueError("photo and selfie must be attached before evaluation")

    if submission.asset_id != asset.id or submission.qr_code != asset.qr_code:
        return Rejected(RejectionReason.ASSET_MISMATCH)
    if asset.status != "active":
        return Rejected(RejectionReason.INACTIVE_ASSET)

    open_schedules = [
        s for s in schedules
        if s.is_active and not s.is_completed and s.apar_id == asset.id
    ]

    if can_override(user):
        current = find_current_schedule(open_schedules, now, tz)
        return Accepted(current.id if current else None)

    usable = [s for s in open_schedules if is_usable(s, user)]
    current = find_current_schedule(usable, now, tz)
    if current is None:
        return Rejected(RejectionReason.OUTSIDE_SCHEDULE_WINDOW)

    if submission.has_location and not is_within_radius(asset, submission.latitude, submission.longitude):
        return Rejected(RejectionReason.UNAUTHORIZED_LOCATION)

    return Accepted(current.id)
