"""Inspection schedule schemas."""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, Literal
from datetime import date, time, datetime

from app.schemas.apar import AparSummary
from app.schemas.auth import UserSummary
from app.schemas.validators import reject_null


Frequency = Literal["daily", "weekly", "monthly", "quarterly", "semiannual"]
ScheduleStatus = Literal["inactive", "completed", "overdue", "ongoing", "upcoming"]


class ScheduleCreate(BaseModel):
    apar_id: int
    assigned_user_id: Optional[int] = None
    scheduled_date: date
    start_time: time
    end_time: time
    frequency: Frequency = "monthly"
    is_active: bool = True
    notes: Optional[str] = None


class ScheduleUpdate(BaseModel):
    """Schema for updating a schedule (all fields optional)."""

    apar_id: Optional[int] = None
    assigned_user_id: Optional[int] = None
    scheduled_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    frequency: Optional[Frequency] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator("apar_id", "scheduled_date", "start_time", "end_time", "frequency", "is_active")
    @classmethod
    def required_not_null(cls, value):
        return reject_null(value)


class ScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    apar_id: int
    assigned_user_id: Optional[int] = None
    scheduled_date: date
    start_time: time
    end_time: time
    frequency: str
    is_active: bool
    is_completed: bool
    notes: Optional[str] = None
    reminder_sent_at: Optional[datetime] = None
    current_status: Optional[ScheduleStatus] = None
    apar: Optional[AparSummary] = None
    assigned_user: Optional[UserSummary] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, schedule, now: datetime, tz) -> "ScheduleResponse":
        """Build a response with ``current_status`` computed at ``now``."""
        response = cls.model_validate(schedule)
        response.current_status = schedule.status_at(now, tz)
        return response


class ScheduleListResponse(BaseModel):
    items: list[ScheduleResponse]
    total: int
    page: int
    per_page: int
